"""Tests for the in-memory catalog fetcher ordering and filtering."""

import asyncio

import pytest

from cosmic_index.adapters.catalog import CatalogQuery, CatalogUnavailableError, InMemoryCatalogFetcher
from cosmic_index.services.cursor_codec import SortPosition
from cosmic_index.services.pagination import CursorPageRequest, OffsetPageRequest

RECORDS = [
    {"id": "a", "name": "A", "diameterKm": 5.0, "kind": "asteroid", "neo": True, "pha": False, "orbitClass": "APO"},
    {"id": "b", "name": "B", "diameterKm": None, "kind": "comet", "neo": False, "pha": False, "orbitClass": "JFc"},
    {"id": "c", "name": "C", "diameterKm": 1.0, "kind": "asteroid", "neo": True, "pha": True, "orbitClass": "ATE"},
    {"id": "d", "name": "D", "diameterKm": 5.0, "kind": "asteroid", "neo": False, "pha": False, "orbitClass": "MBA"},
]


@pytest.fixture
def fetcher() -> InMemoryCatalogFetcher:
    return InMemoryCatalogFetcher({"small-bodies": RECORDS})


def ids(fetcher, *, sort_field="diameterKm", direction="asc", filters=None, page_request=None):
    query = CatalogQuery(
        catalog="small-bodies",
        filters=filters or {},
        sort_field=sort_field,
        direction=direction,
        page_request=page_request or OffsetPageRequest(page=1, limit=50),
    )
    return [r["id"] for r in asyncio.run(fetcher.fetch_page(query)).items]


def test_ascending_puts_nulls_last_and_breaks_ties_by_id(fetcher) -> None:
    assert ids(fetcher) == ["c", "a", "d", "b"]


def test_descending_is_exact_reverse(fetcher) -> None:
    assert ids(fetcher, direction="desc") == ["b", "d", "a", "c"]


@pytest.mark.parametrize(
    "direction,after,expected",
    [
        ("asc", SortPosition("diameter", 5.0, "a", "asc"), ["d", "b"]),
        ("asc", SortPosition("diameter", None, "b", "asc"), []),
        ("desc", SortPosition("diameter", None, "b", "desc"), ["d", "a", "c"]),
        ("desc", SortPosition("diameter", 5.0, "d", "desc"), ["a", "c"]),
    ],
)
def test_cursor_position_is_strictly_after(fetcher, direction, after, expected) -> None:
    request = CursorPageRequest(limit=10, after=after, sort_field="diameter", direction=direction)

    assert ids(fetcher, direction=direction, page_request=request) == expected


def test_cursor_fetches_one_extra_row(fetcher) -> None:
    request = CursorPageRequest(limit=2, after=None, sort_field="diameter", direction="asc")

    assert ids(fetcher, page_request=request) == ["c", "a", "d"]


def test_offset_page_reports_total(fetcher) -> None:
    query = CatalogQuery(
        catalog="small-bodies",
        filters={},
        sort_field="name",
        direction="asc",
        page_request=OffsetPageRequest(page=2, limit=3),
    )

    page = asyncio.run(fetcher.fetch_page(query))

    assert [r["id"] for r in page.items] == ["d"]
    assert page.total == 4


@pytest.mark.parametrize(
    "filters,expected",
    [
        ({"kind": "asteroid"}, ["a", "c", "d"]),
        ({"neo": True, "pha": False}, ["a"]),
        ({"orbitClass": "jfc"}, ["b"]),
        ({"query": "c"}, ["c"]),
        ({"unsupported": "x"}, ["a", "b", "c", "d"]),
    ],
)
def test_filters(fetcher, filters, expected) -> None:
    assert ids(fetcher, sort_field="name", filters=filters) == expected


def test_demo_catalog_filters() -> None:
    fetcher = InMemoryCatalogFetcher()
    query = CatalogQuery(
        catalog="exoplanets",
        filters={"sizeCategory": "earth", "hasRadius": True, "maxDistancePc": 20.0},
        sort_field="name",
        direction="asc",
        page_request=OffsetPageRequest(page=1, limit=50),
    )

    page = asyncio.run(fetcher.fetch_page(query))

    assert [r["id"] for r in page.items] == ["trappist-1-e"]


def test_get_record_returns_copy(fetcher) -> None:
    record = asyncio.run(fetcher.get_record("small-bodies", "a"))
    record["name"] = "changed"

    assert asyncio.run(fetcher.get_record("small-bodies", "a"))["name"] == "A"
    assert asyncio.run(fetcher.get_record("small-bodies", "zzz")) is None


def test_unknown_catalog_is_unavailable(fetcher) -> None:
    with pytest.raises(CatalogUnavailableError):
        asyncio.run(fetcher.get_record("galaxies", "m31"))
