"""Catalog adapter layer - abstracts over the source of catalog records."""

from cosmic_index.adapters.catalog.base import (
    AbstractCatalogFetcher,
    CatalogError,
    CatalogPage,
    CatalogQuery,
    CatalogRecord,
    CatalogTimeoutError,
    CatalogUnavailableError,
)
from cosmic_index.adapters.catalog.in_memory import InMemoryCatalogFetcher

__all__ = [
    "AbstractCatalogFetcher",
    "CatalogError",
    "CatalogPage",
    "CatalogQuery",
    "CatalogRecord",
    "CatalogTimeoutError",
    "CatalogUnavailableError",
    "InMemoryCatalogFetcher",
]
