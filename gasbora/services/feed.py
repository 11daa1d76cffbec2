from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from ..backends.base import DataBackend
from ..schemas.listing import Listing
from .query import ListingQuery, filter_listings, price_bounds

logger = logging.getLogger(__name__)


class Generation:
    """Monotonic ticket counter; results carrying an old ticket are stale."""

    def __init__(self) -> None:
        self._current = 0

    def next(self) -> int:
        self._current += 1
        return self._current

    def is_current(self, ticket: int) -> bool:
        return ticket == self._current

    @property
    def current(self) -> int:
        return self._current


@dataclass(frozen=True)
class FeedSnapshot:
    records: list[Listing]
    bounds: tuple[float, float]
    current: bool = True

    def visible(self, query: ListingQuery) -> list[Listing]:
        if query.price_max is None:
            query = replace(query, price_max=self.bounds[1])
        return filter_listings(self.records, query)


class ListingFeed:
    """
    Last fetched set of available listings plus the price range derived from it.

    Each ``refresh`` hands its own fetch back to the caller. The shared
    snapshot is only replaced by the refresh that was *started* last, so a
    late answer to an older fetch never overwrites a newer one.
    """

    def __init__(self, backend: DataBackend, fallback_ceiling: float = 10000, step: float = 1000):
        self.backend = backend
        self.fallback_ceiling = fallback_ceiling
        self.step = step
        self.snapshot = FeedSnapshot([], (0, fallback_ceiling))
        self.generation = Generation()

    @property
    def records(self) -> list[Listing]:
        return self.snapshot.records

    @property
    def bounds(self) -> tuple[float, float]:
        return self.snapshot.bounds

    async def refresh(self) -> FeedSnapshot:
        ticket = self.generation.next()
        records = await self.backend.list_listings(status="available")
        fetched = FeedSnapshot(records, price_bounds(records, self.fallback_ceiling, self.step))
        if not self.generation.is_current(ticket):
            logger.debug("stale listing fetch ticket=%s current=%s, shared snapshot kept",
                         ticket, self.generation.current)
            return replace(fetched, current=False)
        self.snapshot = fetched
        return fetched

    def visible(self, query: ListingQuery) -> list[Listing]:
        return self.snapshot.visible(query)
