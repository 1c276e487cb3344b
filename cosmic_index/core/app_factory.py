"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers and the
shared request-handling components) so tests can build isolated apps with
their own settings, counter store, catalog and clock.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI

from cosmic_index.adapters.catalog import AbstractCatalogFetcher, InMemoryCatalogFetcher
from cosmic_index.adapters.rate_limit.base import AbstractCounterStore
from cosmic_index.api.routes import catalog_router, health_router
from cosmic_index.core.config import Settings, settings as default_settings
from cosmic_index.core.exception_handlers import setup_exception_handlers
from cosmic_index.core.logging import configure_logging
from cosmic_index.core.middleware import request_id_middleware
from cosmic_index.core.openapi import apply_openapi_customizations
from cosmic_index.core.rate_limit import (
    RateLimiter,
    build_counter_store,
    build_tier_policies,
)
from cosmic_index.services.catalog_service import CatalogEndpointService
from cosmic_index.services.cursor_codec import CursorCodec
from cosmic_index.services.pagination import PaginationOrchestrator

logger = logging.getLogger(__name__)


def build_rate_limiter(
    config: Settings,
    store: AbstractCounterStore | None = None,
    clock: Callable[[], int] | None = None,
) -> RateLimiter:
    """Build the limiter from settings, with an optional store and clock override."""
    rate_config = config.rate_limit
    kwargs = {"clock": clock} if clock is not None else {}
    return RateLimiter(
        store or build_counter_store(rate_config),
        build_tier_policies(rate_config),
        failure_policy=rate_config.failure_policy,
        enabled=rate_config.enabled,
        **kwargs,
    )


def build_pagination(config: Settings) -> PaginationOrchestrator:
    paging = config.pagination
    codec = CursorCodec(
        paging.cursor_secret.get_secret_value(),
        max_length=paging.max_cursor_length,
    )
    return PaginationOrchestrator(
        codec,
        default_limit=paging.default_limit,
        max_limit=paging.max_limit,
    )


def create_app(
    app_settings: Settings | None = None,
    *,
    counter_store: AbstractCounterStore | None = None,
    catalog: AbstractCatalogFetcher | None = None,
    clock: Callable[[], int] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to build components from (defaults to the
            module-level settings).
        counter_store: Rate limit counter store; built from settings if None.
        catalog: Catalog fetcher; the in-memory demo catalog if None.
        clock: Epoch-milliseconds time source for the rate limiter.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    config = app_settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(config.log)

    limiter = build_rate_limiter(config, counter_store, clock)
    orchestrator = build_pagination(config)
    fetcher = catalog or InMemoryCatalogFetcher()
    service = CatalogEndpointService(
        limiter,
        orchestrator,
        fetcher,
        upstream_timeout=config.app.upstream_timeout_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await limiter.store.init()
        logger.info(
            "app.started",
            extra={
                "app_env": config.app_env,
                "rate_limit_backend": config.rate_limit.backend,
                "rate_limit_enabled": config.rate_limit.enabled,
                "failure_policy": config.rate_limit.failure_policy,
            },
        )
        try:
            yield
        finally:
            await limiter.store.close()

    app = FastAPI(
        title="Cosmic Index API",
        description=(
            "Public read-only API over astronomical catalogs: exoplanets, stars "
            "and small bodies. Every response uses a uniform envelope, carries an "
            "X-Request-ID correlation id, and catalog endpoints are rate limited "
            "per client (X-RateLimit-* headers). Lists support offset and signed "
            "cursor pagination."
        ),
        version="1.0.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan,
    )

    app.state.settings = config
    app.state.rate_limiter = limiter
    app.state.pagination = orchestrator
    app.state.catalog = fetcher
    app.state.catalog_service = service

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(catalog_router)
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags, response headers)
    apply_openapi_customizations(app)

    return app
