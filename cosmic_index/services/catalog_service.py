"""Request pipeline shared by every catalog endpoint.

Order of work for a list request:

1. rate limit check for the endpoint tier, before anything else; the
   rate-limit headers are recorded on the RequestContext so every response
   for the request carries them, errors included
2. pagination conflict detection on the raw query, then validation
3. filter fingerprint (scoped to the catalog, so a cursor only resumes the
   catalog that issued it), effective sort and pagination resolution
4. catalog call, raced against client disconnect and bounded by a timeout
5. envelope rendering with rate-limit and cache headers

Failures are raised as ``AppError`` subclasses and rendered by the exception
handlers.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping, TypeVar

from fastapi.responses import JSONResponse

from cosmic_index.adapters.catalog.base import (
    AbstractCatalogFetcher,
    CatalogQuery,
    CatalogRecord,
    CatalogTimeoutError,
    CatalogUnavailableError,
)
from cosmic_index.core import envelope
from cosmic_index.core.errors import (
    InternalAppError,
    NotFoundAppError,
    RateLimitedError,
    UpstreamAppError,
    UpstreamTimeoutError,
    ValidationAppError,
)
from cosmic_index.core.rate_limit import RateLimiter, Tier, rate_limit_headers
from cosmic_index.core.request_context import RequestContext
from cosmic_index.core.result import Err
from cosmic_index.schemas.queries import EndpointConfig
from cosmic_index.services.cursor_codec import filter_fingerprint
from cosmic_index.services.pagination import PAGINATION_PARAMS, PaginationOrchestrator
from cosmic_index.services.parameter_validator import validate_query
from cosmic_index.utils.cache_control import cache_control_header
from cosmic_index.utils.text_normalizer import normalize_query_value

logger = logging.getLogger(__name__)

T = TypeVar("T")

DisconnectCheck = Callable[[], Awaitable[bool]]

DEGRADED_WARNING = "rate_limit_degraded"
DISCONNECT_POLL_SECONDS = 0.1
MAX_RECORD_ID_LENGTH = 128


class CatalogEndpointService:
    """Runs list and detail requests through the shared pipeline."""

    def __init__(
        self,
        limiter: RateLimiter,
        orchestrator: PaginationOrchestrator,
        fetcher: AbstractCatalogFetcher,
        *,
        upstream_timeout: float = 10.0,
    ) -> None:
        """Initialize the service.

        Args:
            limiter: Rate limiter consulted before any other work.
            orchestrator: Pagination mode selection and page metadata.
            fetcher: Source of catalog records.
            upstream_timeout: Seconds a catalog call may take.
        """
        self._limiter = limiter
        self._orchestrator = orchestrator
        self._fetcher = fetcher
        self._upstream_timeout = upstream_timeout

    async def list(
        self,
        context: RequestContext,
        raw_query: Mapping[str, Any],
        endpoint: EndpointConfig,
        *,
        is_disconnected: DisconnectCheck | None = None,
    ) -> JSONResponse:
        """Serve one page of an endpoint's catalog.

        Args:
            context: Context of the current request.
            raw_query: Query parameters as received.
            endpoint: Listing configuration of the endpoint.
            is_disconnected: Coroutine reporting whether the client went away.

        Returns:
            Paginated envelope response.

        Raises:
            AppError: Rate limited, invalid parameters, conflicting pagination,
                bad cursor, or an upstream failure.
        """
        await self._enforce_rate_limit(context, Tier.BROWSE)

        conflict = self._orchestrator.detect_conflict(raw_query)
        if conflict is not None:
            logger.info("pagination.conflict", extra={"catalog": endpoint.catalog})
            raise conflict

        validated = validate_query(raw_query, endpoint.query_spec)
        if isinstance(validated, Err):
            failure = validated.error
            logger.info(
                "validation.failed",
                extra={"catalog": endpoint.catalog, "fields": failure.fields},
            )
            raise ValidationAppError(
                "Invalid query parameters.",
                details={"fields": [e.as_dict() for e in failure.errors]},
            )
        params = validated.value

        sort_option = params.get("sort", endpoint.default_sort)
        direction = params.get("order", endpoint.default_order)
        filters = {k: v for k, v in params.items() if k not in PAGINATION_PARAMS}

        resolved = self._orchestrator.resolve(
            params,
            sort_field=sort_option,
            direction=direction,
            filter_hash=filter_fingerprint(filters, scope=endpoint.catalog),
        )
        if isinstance(resolved, Err):
            raise resolved.error
        page_request = resolved.value

        sort_column = endpoint.sort_column(sort_option)
        page = await self._call_upstream(
            self._fetcher.fetch_page(
                CatalogQuery(
                    catalog=endpoint.catalog,
                    filters=filters,
                    sort_field=sort_column,
                    direction=direction,
                    page_request=page_request,
                )
            ),
            catalog=endpoint.catalog,
            is_disconnected=is_disconnected,
        )

        items, meta = self._orchestrator.build_page_meta(
            page_request,
            page.items,
            total=page.total,
            sort_key=lambda record: (record.get(sort_column), record["id"]),
        )

        return envelope.paginated(
            items,
            meta,
            context.request_id,
            headers={
                **context.response_headers,
                "Cache-Control": cache_control_header(endpoint.list_ttl),
            },
            domain_meta={"catalog": endpoint.catalog, "sort": sort_option, "order": direction},
            warnings=context.warnings,
            api_version=context.api_version,
            request_id_header=context.request_id_header,
        )

    async def detail(
        self,
        context: RequestContext,
        record_id: str,
        endpoint: EndpointConfig,
        *,
        is_disconnected: DisconnectCheck | None = None,
    ) -> JSONResponse:
        """Serve one record by id."""
        await self._enforce_rate_limit(context, Tier.DETAIL)

        record_id = normalize_query_value(record_id)
        if not record_id or len(record_id) > MAX_RECORD_ID_LENGTH:
            raise ValidationAppError(
                "Invalid record id.",
                details={"field": "id", "reason": f"must be 1-{MAX_RECORD_ID_LENGTH} characters"},
            )

        record: CatalogRecord | None = await self._call_upstream(
            self._fetcher.get_record(endpoint.catalog, record_id),
            catalog=endpoint.catalog,
            is_disconnected=is_disconnected,
        )
        if record is None:
            raise NotFoundAppError(
                f"No {endpoint.catalog} record with id '{record_id}'.",
                details={"resource": endpoint.catalog, "id": record_id},
            )

        return envelope.success(
            record,
            context.request_id,
            headers={
                **context.response_headers,
                "Cache-Control": cache_control_header(endpoint.detail_ttl),
            },
            domain_meta={"catalog": endpoint.catalog},
            warnings=context.warnings,
            api_version=context.api_version,
            request_id_header=context.request_id_header,
        )

    async def _enforce_rate_limit(self, context: RequestContext, tier: Tier) -> None:
        decision = await self._limiter.check(context.client_identity, tier)
        context.response_headers.update(rate_limit_headers(decision))

        if decision.allowed:
            if decision.degraded:
                context.warnings.append(DEGRADED_WARNING)
            return

        retry_after = decision.retry_after_seconds(self._limiter.now_ms())
        context.response_headers["Retry-After"] = str(retry_after)
        details: dict[str, Any] = {
            "limit": decision.limit,
            "reset_at": decision.reset_at,
            "retry_after": retry_after,
        }
        if decision.degraded:
            details["reason"] = "limiter_unavailable"
        raise RateLimitedError(
            "Too many requests. Please retry after the rate limit window resets.",
            details=details,
        )

    async def _call_upstream(
        self,
        call: Awaitable[T],
        *,
        catalog: str,
        is_disconnected: DisconnectCheck | None,
    ) -> T:
        """Await a catalog call with a timeout, abandoning it if the client leaves.

        The call is cancelled whenever this coroutine exits before it finished:
        client disconnect, or cancellation of the request task itself.
        """
        fetch = asyncio.ensure_future(asyncio.wait_for(call, self._upstream_timeout))
        try:
            if is_disconnected is None:
                return await fetch

            while True:
                done, _ = await asyncio.wait({fetch}, timeout=DISCONNECT_POLL_SECONDS)
                if done:
                    return fetch.result()
                if await is_disconnected():
                    logger.info("request.cancelled", extra={"catalog": catalog})
                    raise InternalAppError("Request was cancelled.")
        except (asyncio.TimeoutError, CatalogTimeoutError) as exc:
            logger.warning(
                "upstream.timeout",
                extra={
                    "catalog": catalog,
                    "timeout_s": self._upstream_timeout,
                    "error_type": type(exc).__name__,
                },
            )
            raise UpstreamTimeoutError("The catalog service did not respond in time.") from exc
        except CatalogUnavailableError as exc:
            logger.error(
                "upstream.error",
                extra={"catalog": catalog, "error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            raise UpstreamAppError("The catalog service is temporarily unavailable.") from exc
        finally:
            if not fetch.done():
                fetch.cancel()
