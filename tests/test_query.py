import random

import pytest

from gasbora.errors import ValidationFailed
from gasbora.schemas.listing import CYLINDER_SIZES
from gasbora.services.query import (
    ListingQuery, SortKey, filter_listings, matches, price_bounds, sort_listings,
)

from conftest import make_listing

WORDS = ["Total", "K-Gas", "Hashi", "Pro Gas", "Afrigas", "Kilimani", "Westlands", "Thika", ""]


def _random_listings(rng, n):
    out = []
    for i in range(n):
        out.append(make_listing(
            i,
            title=f"{rng.choice(WORDS)} cylinder {i}",
            brand=rng.choice(WORDS) or None,
            location=rng.choice(WORDS) or None,
            cylinder_size=rng.choice(CYLINDER_SIZES),
            is_refill=rng.random() < 0.5,
            price=float(rng.choice([500, 800, 1200, 1200, 2800, 4500])),
            created_at=make_listing(rng.randint(0, 5)).created_at,
        ))
    return out


def _expected(records, q):
    out = []
    for r in records:
        text = q.search.lower()
        fields = [r.title or "", r.brand or "", r.location or ""]
        if text and not any(text in f.lower() for f in fields):
            continue
        if q.size != "all" and r.cylinder_size != q.size:
            continue
        if q.listing_type == "refill" and not r.is_refill:
            continue
        if q.listing_type == "full" and r.is_refill:
            continue
        if not (q.price_min <= r.price <= q.price_max):
            continue
        out.append(r)
    return out


def test_filter_is_exactly_the_and_of_all_predicates():
    rng = random.Random(1234)
    for _ in range(200):
        records = _random_listings(rng, rng.randint(0, 25))
        q = ListingQuery(
            search=rng.choice(["", "gas", "KILI", "thika", "cyl", "zzz"]),
            size=rng.choice(["all"] + CYLINDER_SIZES),
            listing_type=rng.choice(["all", "full", "refill"]),
            price_min=rng.choice([0, 500, 1000]),
            price_max=rng.choice([800, 1200, 5000]),
            sort=rng.choice(list(SortKey)),
        )
        got = filter_listings(records, q)
        assert {r.id for r in got} == {r.id for r in _expected(records, q)}
        assert len(got) == len(_expected(records, q))


@pytest.mark.parametrize("key", list(SortKey))
def test_sorting_is_stable_for_equal_keys(key):
    rng = random.Random(99)
    records = _random_listings(rng, 40)
    result = sort_listings(records, key)
    position = {r.id: i for i, r in enumerate(records)}

    def sort_key(r):
        return r.created_at if key == SortKey.NEWEST else r.price

    for a, b in zip(result, result[1:]):
        if sort_key(a) == sort_key(b):
            assert position[a.id] < position[b.id]


def test_sort_orders():
    a = make_listing(1, price=900)
    b = make_listing(2, price=300)
    c = make_listing(3, price=1500)
    assert [r.id for r in sort_listings([a, b, c], SortKey.NEWEST)] == ["L3", "L2", "L1"]
    assert [r.id for r in sort_listings([a, b, c], SortKey.PRICE_LOW)] == ["L2", "L1", "L3"]
    assert [r.id for r in sort_listings([a, b, c], SortKey.PRICE_HIGH)] == ["L3", "L1", "L2"]


def test_search_matches_title_brand_or_location_case_insensitive():
    listing = make_listing(1, title="13kg cylinder", brand="Total", location="Kilimani")
    assert matches(listing, ListingQuery(search="TOTAL"))
    assert matches(listing, ListingQuery(search="kili"))
    assert matches(listing, ListingQuery(search="13KG"))
    assert not matches(listing, ListingQuery(search="hashi"))


def test_missing_optional_fields_count_as_empty():
    listing = make_listing(1, title="Cylinder", brand=None, location=None)
    assert not matches(listing, ListingQuery(search="nairobi"))
    assert matches(listing, ListingQuery(search=""))


def test_type_filter():
    refill = make_listing(1, is_refill=True)
    full = make_listing(2, is_refill=False)
    assert filter_listings([refill, full], ListingQuery(listing_type="refill")) == [refill]
    assert filter_listings([refill, full], ListingQuery(listing_type="full")) == [full]


def test_price_range_is_inclusive():
    low = make_listing(1, price=500)
    high = make_listing(2, price=1500)
    q = ListingQuery(price_min=500, price_max=1500)
    assert len(filter_listings([low, high], q)) == 2


def test_empty_records_give_empty_result():
    assert filter_listings([], ListingQuery(search="gas")) == []


def test_price_bounds_round_up_to_step():
    records = [make_listing(1, price=800), make_listing(2, price=4500)]
    assert price_bounds(records) == (0, 5000)


def test_price_bounds_keep_exact_multiple():
    assert price_bounds([make_listing(1, price=3000)]) == (0, 3000)


def test_price_bounds_never_exclude_the_max():
    for price in (0.5, 999.99, 1000.01, 123456.78, 1_000_000):
        lo, hi = price_bounds([make_listing(1, price=price)])
        assert hi >= price


def test_price_bounds_fallback_when_empty():
    assert price_bounds([], fallback_ceiling=10000) == (0, 10000)


def test_parse_defaults():
    q = ListingQuery.parse()
    assert q.size == "all" and q.listing_type == "all" and q.sort == SortKey.NEWEST
    assert q.price_min == 0 and q.price_max is None


def test_parse_coerces_prices():
    q = ListingQuery.parse(price_min="100", price_max="2500", sort="price-high")
    assert q.price_min == 100.0 and q.price_max == 2500.0
    assert q.sort == SortKey.PRICE_HIGH


def test_parse_rejects_unknown_values():
    with pytest.raises(ValidationFailed) as exc:
        ListingQuery.parse(size="7kg", listing_type="cheap", sort="oldest", price_min="abc")
    assert set(exc.value.errors) == {"size", "type", "sort", "min_price"}
