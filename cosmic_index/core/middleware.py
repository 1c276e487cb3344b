"""HTTP middleware for request ID propagation and correlation.

This module provides middleware that ensures every request/response pair
carries a unique request ID for log correlation and client support.

The middleware:
- Accepts a well-formed incoming X-Request-ID header or generates a UUID
- Builds the RequestContext (request id + derived client identity)
- Stores request_id in contextvars for access throughout the request lifecycle
- Converts any exception escaping the routing layer into an INTERNAL envelope
- Injects request_id, duration and rate-limit headers into the response; a
  request that was never counted (health, unknown route) gets the client's
  DETAIL tier standing without consuming budget
- Clears context after request completion to prevent context leaks

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time

from fastapi import Request, Response

from cosmic_index.core.exception_handlers import general_exception_handler
from cosmic_index.core.logging import clear_request_id, set_request_id
from cosmic_index.core.rate_limit import Tier, rate_limit_headers
from cosmic_index.core.request_context import build_request_context, settings_for

logger = logging.getLogger(__name__)

RATE_LIMIT_LIMIT_HEADER = "X-RateLimit-Limit"


async def request_id_middleware(request: Request, call_next) -> Response:
    """HTTP middleware for request ID generation and propagation.

    This is the outermost failure boundary of the application: an exception
    that no route or exception handler dealt with is rendered here as an
    INTERNAL error, so the error body still carries the request's id and any
    rate-limit headers already computed.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The response from the next handler with request_id and
            duration headers added.

    Example:
        >>> # Request arrives with custom ID
        >>> # Headers: {"X-Request-ID": "req-abc-123"}
        >>> # Response includes:
        >>> # {"X-Request-ID": "req-abc-123", "X-Request-Duration-ms": "45.67"}
    """

    context = build_request_context(request, settings_for(request))
    header_name = context.request_id_header
    request.state.context = context
    set_request_id(context.request_id)

    try:
        try:
            response: Response = await call_next(request)
        except Exception as exc:
            response = await general_exception_handler(request, exc)

        limiter = getattr(request.app.state, "rate_limiter", None)
        if limiter is not None and RATE_LIMIT_LIMIT_HEADER not in context.response_headers:
            # Nothing was counted for this request: report the DETAIL standing
            decision = await limiter.peek(context.client_identity, Tier.DETAIL)
            context.response_headers.update(rate_limit_headers(decision))

        duration_ms = (time.perf_counter() - context.started_at) * 1000
        response.headers[header_name] = context.request_id
        response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
        for name, value in context.response_headers.items():
            if name not in response.headers:
                response.headers[name] = value

        logger.info(
            "request.completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return response
    finally:
        clear_request_id()
