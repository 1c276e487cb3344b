"""Uniform success, paginated and error response bodies.

Bodies:
- success:   ``{data, meta: {requestId, apiVersion, timestamp, ...}}``
- paginated: ``{data: [...], pagination: {...}, meta: {...}}``
- error:     ``{error: {code, message, details?}, requestId}``

Every response carries ``X-Request-ID`` (equal to the body's ``requestId``)
and ``Api-Version``; callers pass the version and header name of the serving
app (``RequestContext`` carries both). Rate-limit and ``Cache-Control`` headers are supplied by
the caller; this module never decides caching policy.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from cosmic_index.core.config import DEFAULT_API_VERSION, DEFAULT_REQUEST_ID_HEADER
from cosmic_index.core.errors import ERROR_STATUS, ErrorCode
from cosmic_index.schemas.envelope import ErrorBody, ErrorEnvelope, ResponseMeta
from cosmic_index.services.pagination import PaginationMeta


def _base_headers(request_id: str, api_version: str, request_id_header: str) -> dict[str, str]:
    return {
        request_id_header: request_id,
        "Api-Version": api_version,
        "Vary": "Accept-Encoding",
    }


def _merge_headers(
    request_id: str,
    headers: Mapping[str, str] | None,
    api_version: str,
    request_id_header: str,
) -> dict[str, str]:
    merged = dict(headers or {})
    merged.update(_base_headers(request_id, api_version, request_id_header))
    return merged


def build_meta(
    request_id: str,
    domain_meta: Mapping[str, Any] | None = None,
    warnings: list[str] | None = None,
    *,
    api_version: str = DEFAULT_API_VERSION,
) -> dict[str, Any]:
    meta = ResponseMeta(
        request_id=request_id,
        api_version=api_version,
        timestamp=datetime.now(timezone.utc).isoformat(),
        warnings=warnings or None,
        **dict(domain_meta or {}),
    )
    return meta.model_dump(by_alias=True, exclude_none=True)


def success(
    data: Any,
    request_id: str,
    headers: Mapping[str, str] | None = None,
    domain_meta: Mapping[str, Any] | None = None,
    warnings: list[str] | None = None,
    *,
    api_version: str = DEFAULT_API_VERSION,
    request_id_header: str = DEFAULT_REQUEST_ID_HEADER,
) -> JSONResponse:
    """Build a single-record success response."""
    return JSONResponse(
        content={
            "data": jsonable_encoder(data),
            "meta": build_meta(request_id, domain_meta, warnings, api_version=api_version),
        },
        headers=_merge_headers(request_id, headers, api_version, request_id_header),
    )


def paginated(
    items: list[Any],
    pagination: PaginationMeta,
    request_id: str,
    headers: Mapping[str, str] | None = None,
    domain_meta: Mapping[str, Any] | None = None,
    warnings: list[str] | None = None,
    *,
    api_version: str = DEFAULT_API_VERSION,
    request_id_header: str = DEFAULT_REQUEST_ID_HEADER,
) -> JSONResponse:
    """Build a paginated success response."""
    return JSONResponse(
        content={
            "data": jsonable_encoder(items),
            "pagination": pagination.as_dict(),
            "meta": build_meta(request_id, domain_meta, warnings, api_version=api_version),
        },
        headers=_merge_headers(request_id, headers, api_version, request_id_header),
    )


def error(
    code: ErrorCode,
    message: str,
    request_id: str,
    details: Any | None = None,
    headers: Mapping[str, str] | None = None,
    *,
    api_version: str = DEFAULT_API_VERSION,
    request_id_header: str = DEFAULT_REQUEST_ID_HEADER,
) -> JSONResponse:
    """Build an error response; the status comes from the taxonomy."""
    body = ErrorEnvelope(
        error=ErrorBody(code=code.value, message=message, details=jsonable_encoder(details)),
        request_id=request_id,
    )
    return JSONResponse(
        status_code=ERROR_STATUS[code],
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers=_merge_headers(request_id, headers, api_version, request_id_header),
    )
