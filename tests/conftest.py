"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins APP_ENV to "testing" so no developer .env file leaks into the run,
and provides app builders with a controllable clock and catalog.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("PAGINATION_CURSOR_SECRET", "test-cursor-secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Any, Callable
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from cosmic_index.adapters.catalog import AbstractCatalogFetcher, InMemoryCatalogFetcher
from cosmic_index.adapters.rate_limit.base import AbstractCounterStore
from cosmic_index.core.app_factory import create_app
from cosmic_index.core.config import (
    AppSettings,
    LogSettings,
    PaginationSettings,
    RateLimitSettings,
    Settings,
)

START_MS = 1_700_000_000_000

FIVE_STARS = [
    {"id": "s1", "name": "Star A", "spectralClass": "G2V", "planetCount": 1, "distancePc": 10.0, "vmag": 5.0},
    {"id": "s2", "name": "Star B", "spectralClass": "K1V", "planetCount": 3, "distancePc": 20.0, "vmag": 6.0},
    {"id": "s3", "name": "Star C", "spectralClass": "M4V", "planetCount": 2, "distancePc": 30.0, "vmag": 7.0},
    {"id": "s4", "name": "Star D", "spectralClass": "F8V", "planetCount": 1, "distancePc": 40.0, "vmag": 8.0},
    {"id": "s5", "name": "Star E", "spectralClass": "A0V", "planetCount": 4, "distancePc": 50.0, "vmag": 9.0},
]


def build_settings(
    *,
    rate_limit: dict[str, Any] | None = None,
    pagination: dict[str, Any] | None = None,
    app: dict[str, Any] | None = None,
    log: dict[str, Any] | None = None,
) -> Settings:
    """Settings with explicit overrides per group."""
    return Settings(
        app=AppSettings(**(app or {})),
        rate_limit=RateLimitSettings(**(rate_limit or {})),
        pagination=PaginationSettings(**{"cursor_secret": "test-cursor-secret", **(pagination or {})}),
        log=LogSettings(**{"level": "WARNING", **(log or {})}),
    )


@pytest.fixture
def clock() -> Mock:
    return Mock(return_value=START_MS)


@pytest.fixture
def make_client(clock: Mock) -> Callable[..., TestClient]:
    """Factory building a TestClient around a freshly created app."""

    def _make(
        *,
        catalog: AbstractCatalogFetcher | None = None,
        counter_store: AbstractCounterStore | None = None,
        raise_server_exceptions: bool = True,
        **settings_overrides: Any,
    ) -> TestClient:
        app = create_app(
            build_settings(**settings_overrides),
            counter_store=counter_store,
            catalog=catalog,
            clock=clock,
        )
        return TestClient(app, raise_server_exceptions=raise_server_exceptions)

    return _make


@pytest.fixture
def five_star_catalog() -> InMemoryCatalogFetcher:
    return InMemoryCatalogFetcher({"stars": FIVE_STARS})


@pytest.fixture
def five_stars() -> list[dict[str, Any]]:
    return [dict(record) for record in FIVE_STARS]
