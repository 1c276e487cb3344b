"""In-memory catalog fetcher.

Serves records from lists held in memory, with the ordering and paging
contract a database-backed fetcher must also honour:

- rows are ordered by ``(sort value, id)``; missing sort values go last
  ascending and first descending (descending is the exact reverse order);
- a cursor position selects rows strictly after ``(value, id)``;
- ``total`` is computed only for offset pages.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any, Callable, Mapping, Sequence

from cosmic_index.adapters.catalog.base import (
    AbstractCatalogFetcher,
    CatalogPage,
    CatalogQuery,
    CatalogRecord,
    CatalogUnavailableError,
)
from cosmic_index.adapters.catalog.demo_data import DEMO_CATALOGS
from cosmic_index.services.pagination import CursorPageRequest

logger = logging.getLogger(__name__)

Predicate = Callable[[CatalogRecord, Any], bool]


def _contains(*fields: str) -> Predicate:
    def match(record: CatalogRecord, value: Any) -> bool:
        needle = str(value).casefold()
        return any(needle in str(record.get(f) or "").casefold() for f in fields)

    return match


def _equals_folded(field: str) -> Predicate:
    def match(record: CatalogRecord, value: Any) -> bool:
        return str(record.get(field) or "").casefold() == str(value).casefold()

    return match


def _has(field: str) -> Predicate:
    def match(record: CatalogRecord, value: Any) -> bool:
        return (record.get(field) is not None) == bool(value)

    return match


def _at_most(field: str) -> Predicate:
    def match(record: CatalogRecord, value: Any) -> bool:
        current = record.get(field)
        return current is not None and current <= value

    return match


def _flag(field: str) -> Predicate:
    def match(record: CatalogRecord, value: Any) -> bool:
        return bool(record.get(field)) == bool(value)

    return match


def _multi_planet(count_field: str) -> Predicate:
    def match(record: CatalogRecord, value: Any) -> bool:
        return ((record.get(count_field) or 0) > 1) == bool(value)

    return match


CATALOG_FILTERS: Mapping[str, Mapping[str, Predicate]] = {
    "exoplanets": {
        "query": _contains("name", "hostStar"),
        "discoveryMethod": _equals_folded("discoveryMethod"),
        "year": lambda record, value: record.get("discoveryYear") == value,
        "hasRadius": _has("radiusEarth"),
        "hasMass": _has("massEarth"),
        "sizeCategory": _equals_folded("sizeCategory"),
        "facility": _contains("facility"),
        "multiPlanet": _multi_planet("systemPlanetCount"),
        "maxDistancePc": _at_most("distancePc"),
    },
    "stars": {
        "query": _contains("name"),
        "spectralClass": lambda record, value: str(record.get("spectralClass") or "")
        .upper()
        .startswith(str(value).upper()),
        "minPlanets": lambda record, value: (record.get("planetCount") or 0) >= value,
        "multiPlanet": _multi_planet("planetCount"),
        "maxDistancePc": _at_most("distancePc"),
    },
    "small-bodies": {
        "query": _contains("name", "id"),
        "kind": _equals_folded("kind"),
        "neo": _flag("neo"),
        "pha": _flag("pha"),
        "orbitClass": _equals_folded("orbitClass"),
    },
}


def _order_key(value: Any, record_id: Any) -> tuple[bool, Any, str]:
    # Nulls sort after every value; the 0 placeholder is only ever compared
    # with another null's placeholder.
    return (value is None, 0 if value is None else value, str(record_id))


def _is_after(key: tuple, boundary: tuple, descending: bool) -> bool:
    return key < boundary if descending else key > boundary


class UnknownCatalogError(CatalogUnavailableError):
    """Raised for a catalog name the fetcher does not hold."""


class InMemoryCatalogFetcher(AbstractCatalogFetcher):
    """Catalog fetcher over in-memory record lists.

    Args:
        catalogs: Records per catalog name. Defaults to the demo catalog.
        filters: Filter predicates per catalog name. Filters without a
            predicate are ignored.
        id_field: Record field holding the unique id.
    """

    def __init__(
        self,
        catalogs: Mapping[str, Sequence[CatalogRecord]] | None = None,
        *,
        filters: Mapping[str, Mapping[str, Predicate]] | None = None,
        id_field: str = "id",
    ) -> None:
        source = DEMO_CATALOGS if catalogs is None else catalogs
        self._catalogs = {name: [dict(r) for r in records] for name, records in source.items()}
        self._filters = CATALOG_FILTERS if filters is None else filters
        self._id_field = id_field

    @property
    def catalogs(self) -> tuple[str, ...]:
        return tuple(self._catalogs)

    def _records(self, catalog: str) -> list[CatalogRecord]:
        try:
            return self._catalogs[catalog]
        except KeyError:
            raise UnknownCatalogError(f"unknown catalog: {catalog}") from None

    def _matching(self, catalog: str, filters: Mapping[str, Any]) -> list[CatalogRecord]:
        predicates = self._filters.get(catalog, {})
        active = [(predicates[name], value) for name, value in filters.items() if name in predicates]
        return [r for r in self._records(catalog) if all(p(r, v) for p, v in active)]

    def _key(self, record: CatalogRecord, sort_field: str) -> tuple[bool, Any, str]:
        return _order_key(record.get(sort_field), record.get(self._id_field))

    async def fetch_page(self, query: CatalogQuery) -> CatalogPage:
        await asyncio.sleep(0)

        rows = self._matching(query.catalog, query.filters)
        descending = query.direction == "desc"
        rows.sort(
            key=lambda r: self._key(r, query.sort_field),
            reverse=descending,
        )

        page = query.page_request
        if isinstance(page, CursorPageRequest):
            if page.after is not None:
                boundary = _order_key(page.after.sort_value, page.after.tiebreak_id)
                rows = [r for r in rows if _is_after(self._key(r, query.sort_field), boundary, descending)]
            items = rows[: page.fetch_limit]
            total = None
        else:
            items = rows[page.offset : page.offset + page.limit]
            total = len(rows)

        logger.debug(
            "catalog.page_fetched",
            extra={
                "catalog": query.catalog,
                "mode": page.mode,
                "returned": len(items),
                "sort": query.sort_field,
            },
        )
        return CatalogPage(items=copy.deepcopy(items), total=total)

    async def get_record(self, catalog: str, record_id: str) -> CatalogRecord | None:
        await asyncio.sleep(0)
        for record in self._records(catalog):
            if str(record.get(self._id_field)) == record_id:
                return copy.deepcopy(record)
        return None
