"""
Listing query engine.

Pure functions over an in-memory list of listings: search, categorical and
price filters AND-ed together, then a stable sort. Safe to call on every
keystroke; nothing here touches the network.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Iterable, Optional

from ..errors import ValidationFailed
from ..schemas.listing import CYLINDER_SIZES, Listing


class SortKey(str, enum.Enum):
    NEWEST     = "newest"
    PRICE_LOW  = "price-low"
    PRICE_HIGH = "price-high"


LISTING_TYPES = ("all", "full", "refill")


@dataclass(frozen=True)
class ListingQuery:
    search: str = ""
    size: str = "all"
    listing_type: str = "all"
    price_min: float = 0
    price_max: Optional[float] = None      # None: no upper bound
    sort: SortKey = SortKey.NEWEST

    @classmethod
    def parse(cls, search=None, size=None, listing_type=None,
              price_min=None, price_max=None, sort=None) -> "ListingQuery":
        """Build a query from loosely typed request values."""
        errors: dict[str, str] = {}

        size = (size or "all").strip()
        if size != "all" and size not in CYLINDER_SIZES:
            errors["size"] = "Unknown cylinder size"

        listing_type = (listing_type or "all").strip().lower()
        if listing_type not in LISTING_TYPES:
            errors["type"] = "Type must be all, full or refill"

        try:
            sort_key = SortKey((sort or SortKey.NEWEST.value).strip().lower())
        except ValueError:
            sort_key = SortKey.NEWEST
            errors["sort"] = "Sort must be newest, price-low or price-high"

        bounds = {}
        for name, raw in (("min_price", price_min), ("max_price", price_max)):
            if raw in (None, ""):
                bounds[name] = None
                continue
            try:
                bounds[name] = float(raw)
            except (TypeError, ValueError):
                errors[name] = "Price must be a number"

        if errors:
            raise ValidationFailed(errors)

        return cls(
            search=(search or "").strip(),
            size=size,
            listing_type=listing_type,
            price_min=bounds["min_price"] or 0,
            price_max=bounds["max_price"],
            sort=sort_key,
        )


def matches(listing: Listing, query: ListingQuery) -> bool:
    if query.search:
        needle = query.search.lower()
        haystack = (listing.title or "", listing.brand or "", listing.location or "")
        if not any(needle in field.lower() for field in haystack):
            return False

    if query.size != "all" and listing.cylinder_size != query.size:
        return False

    if query.listing_type == "refill" and not listing.is_refill:
        return False
    if query.listing_type == "full" and listing.is_refill:
        return False

    if listing.price < query.price_min:
        return False
    if query.price_max is not None and listing.price > query.price_max:
        return False

    return True


def sort_listings(records: Iterable[Listing], key: SortKey) -> list[Listing]:
    # sorted() is stable, reverse=True included, so ties keep input order
    if key == SortKey.PRICE_LOW:
        return sorted(records, key=lambda l: l.price)
    if key == SortKey.PRICE_HIGH:
        return sorted(records, key=lambda l: l.price, reverse=True)
    return sorted(records, key=lambda l: l.created_at, reverse=True)


def filter_listings(records: Iterable[Listing], query: ListingQuery) -> list[Listing]:
    return sort_listings((r for r in records if matches(r, query)), query.sort)


def price_bounds(records: Iterable[Listing], fallback_ceiling: float = 10000,
                 step: float = 1000) -> tuple[float, float]:
    """
    Slider range for a freshly fetched record set.

    The ceiling is the max price rounded *up* to the next ``step``, so the
    most expensive listing always stays inside the range.
    """
    prices = [r.price for r in records]
    if not prices:
        return 0, fallback_ceiling
    top = max(prices)
    ceiling = math.ceil(top / step) * step
    if ceiling < top:
        ceiling += step
    return 0, ceiling
