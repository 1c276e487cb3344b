"""Explicit success/failure values returned at component boundaries.

``validate_query``, ``PaginationOrchestrator.resolve`` and ``CursorCodec.decode``
return ``Ok`` or ``Err`` instead of raising, so the caller decides how a
failure is rendered. ``RateLimiter.check`` reports denial in its
``RateLimitDecision`` instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    @property
    def is_ok(self) -> bool:
        return False


Result = Union[Ok[T], Err[E]]
