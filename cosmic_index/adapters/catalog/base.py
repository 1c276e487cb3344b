from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping

from cosmic_index.services.cursor_codec import Direction
from cosmic_index.services.pagination import PageRequest

CatalogRecord = dict[str, Any]


class CatalogError(Exception):
	"""Base class for catalog collaborator failures."""


class CatalogTimeoutError(CatalogError):
	"""The upstream catalog did not answer in time."""


class CatalogUnavailableError(CatalogError):
	"""The upstream catalog failed or returned unusable data."""


@dataclass(frozen=True)
class CatalogQuery:
	"""One page request sent to the collaborator.

	Attributes:
		catalog: Catalog name (``exoplanets``, ``stars``, ``small-bodies``).
		filters: Validated filter parameters (pagination params excluded).
		sort_field: Record field the rows are ordered by.
		direction: ``asc`` or ``desc``; ``id`` breaks ties in the same direction.
		page_request: Offset or cursor page to return.
	"""

	catalog: str
	filters: Mapping[str, Any]
	sort_field: str
	direction: Direction
	page_request: PageRequest


@dataclass(frozen=True)
class CatalogPage:
	"""Rows for one page; ``total`` is only reported in offset mode."""

	items: list[CatalogRecord] = field(default_factory=list)
	total: int | None = None


class AbstractCatalogFetcher(ABC):
	"""Interface for the source of catalog records."""

	@abstractmethod
	async def fetch_page(self, query: CatalogQuery) -> CatalogPage:
		"""Return the rows of one page.

		In cursor mode at most ``page_request.fetch_limit`` rows strictly after
		the cursor position are returned and ``total`` is None.

		Raises:
			CatalogTimeoutError: If the upstream did not answer in time.
			CatalogUnavailableError: If the upstream call failed.
		"""
		...

	@abstractmethod
	async def get_record(self, catalog: str, record_id: str) -> CatalogRecord | None:
		"""Return one record by id, or None when it does not exist.

		Raises:
			CatalogTimeoutError: If the upstream did not answer in time.
			CatalogUnavailableError: If the upstream call failed.
		"""
		...
