"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept errors and
return the uniform error envelope with the taxonomy's HTTP status.

Design:
- AppError subclasses → status from ERROR_STATUS
- RequestValidationError → VALIDATION_ERROR (400)
- Starlette HTTPException → NOT_FOUND for 404, VALIDATION_ERROR for other
  4xx, INTERNAL for 5xx
- Unexpected Exception → INTERNAL with a generic message (safety net)
- All responses include the request's requestId and rate-limit headers
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cosmic_index.core import envelope
from cosmic_index.core.errors import AppError, ErrorCode
from cosmic_index.core.logging import get_request_id
from cosmic_index.core.request_context import RequestContext, new_request_id

logger = logging.getLogger(__name__)

INTERNAL_MESSAGE = "An unexpected error occurred. Please try again later."


def _context_for(request: Request) -> RequestContext:
    context = getattr(request.state, "context", None)
    if context is None:
        context = RequestContext(
            request_id=get_request_id() or new_request_id(),
            client_identity="anonymous",
        )
    return context


def _render(
    context: RequestContext,
    code: ErrorCode,
    message: str,
    details: Any | None = None,
    extra_headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    headers = dict(context.response_headers)
    if extra_headers:
        headers.update(extra_headers)
    return envelope.error(
        code,
        message,
        context.request_id,
        details,
        headers,
        api_version=context.api_version,
        request_id_header=context.request_id_header,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with the error envelope.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with the taxonomy status and error details.
    """
    context = _context_for(request)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code.value,
            "error_message": exc.message,
            "status_code": exc.status_code,
            "has_details": bool(exc.details),
        },
    )

    return _render(context, exc.code, exc.message, exc.details)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render FastAPI's own parameter validation failures as VALIDATION_ERROR."""
    context = _context_for(request)
    fields = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())[1:]) or "request",
            "message": err.get("msg", ""),
            "type": err.get("type", ""),
        }
        for err in exc.errors()
    ]
    logger.info("validation.failed", extra={"fields": [f["field"] for f in fields]})
    return _render(
        context,
        ErrorCode.VALIDATION_ERROR,
        "Invalid request parameters.",
        {"fields": fields},
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Map framework HTTP errors (unknown route, wrong method) onto the taxonomy."""
    context = _context_for(request)

    if exc.status_code == 404:
        code, message = ErrorCode.NOT_FOUND, "Resource not found."
    elif exc.status_code < 500:
        code, message = ErrorCode.VALIDATION_ERROR, str(exc.detail)
    else:
        code, message = ErrorCode.INTERNAL, INTERNAL_MESSAGE

    return _render(context, code, message, extra_headers=exc.headers)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs the failure with its traceback server side while returning a generic
    message. No exception text or stack trace reaches the client.

    Args:
        request: FastAPI request object.
        exc: Exception instance (unexpected).

    Returns:
        JSONResponse with the INTERNAL error (no implementation details).
    """
    context = _context_for(request)
    logger.error(
        "unhandled_exception",
        exc_info=(type(exc), exc, exc.__traceback__),
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return _render(context, ErrorCode.INTERNAL, INTERNAL_MESSAGE)


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.

    Example:
        >>> from fastapi import FastAPI
        >>> from cosmic_index.core.exception_handlers import setup_exception_handlers
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
