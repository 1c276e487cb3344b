"""Pydantic schemas for the uniform response envelope."""

from __future__ import annotations

from typing import Any, Generic, List, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResponseMeta(_CamelModel):
    """Request metadata attached to every success body.

    Endpoints may add domain keys (e.g. ``catalog``, ``sort``), which is why
    extra fields are allowed.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    request_id: str = Field(..., description="Correlation id, equal to the X-Request-ID header.")
    api_version: str = Field(..., description="API version serving the response.")
    timestamp: str = Field(..., description="ISO-8601 UTC time the response was built.")
    warnings: List[str] | None = Field(
        default=None,
        description="Non-fatal conditions, e.g. 'rate_limit_degraded'.",
    )


class PaginationInfo(_CamelModel):
    mode: Literal["offset", "cursor"]
    page: int | None = Field(default=None, description="Current page (offset mode).")
    limit: int = Field(..., description="Page size after clamping.")
    total: int | None = Field(default=None, description="Total matching rows (offset mode).")
    has_more: bool
    next_cursor: str | None = Field(
        default=None,
        description="Opaque token for the next page (cursor mode, only when hasMore).",
    )


class SuccessEnvelope(_CamelModel, Generic[T]):
    data: T
    meta: ResponseMeta


class PaginatedEnvelope(_CamelModel, Generic[T]):
    data: List[T]
    pagination: PaginationInfo
    meta: ResponseMeta


class ErrorBody(_CamelModel):
    code: str = Field(..., description="Stable error code from the taxonomy.")
    message: str = Field(..., description="Human-readable message.")
    details: Any | None = Field(default=None, description="Structured context, when available.")


class ErrorEnvelope(_CamelModel):
    error: ErrorBody
    request_id: str
