"""Offset and cursor pagination.

Two mutually exclusive modes:

- offset: ``page`` (1-based) and ``limit``; the collaborator reports ``total``
  and ``hasMore = page * limit < total``.
- cursor: an optional signed cursor plus ``limit``; the collaborator is asked
  for ``limit + 1`` rows strictly after the cursor position. The extra row
  only signals that more data exists, so ``hasMore`` is exact without a
  count query.

Mixing the two (``page`` or ``paginationMode=offset`` together with
``cursor`` or ``paginationMode=cursor``) is a ``PAGINATION_CONFLICT``; no
precedence rule silently picks one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Literal, Mapping, Sequence, Union

from cosmic_index.core.errors import (
    AppError,
    PaginationConflictError,
    ValidationAppError,
)
from cosmic_index.core.result import Err, Ok, Result
from cosmic_index.services.cursor_codec import (
    CursorCodec,
    Direction,
    SortPosition,
    SortValue,
)
from cosmic_index.utils.text_normalizer import normalize_query_value

logger = logging.getLogger(__name__)

# Parameters that control paging and ordering rather than filtering.
PAGINATION_PARAMS = frozenset({"page", "limit", "cursor", "paginationMode", "sort", "order"})


@dataclass(frozen=True)
class OffsetPageRequest:
    page: int
    limit: int
    mode: Literal["offset"] = "offset"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class CursorPageRequest:
    """Cursor page: ``after`` is None for the first page."""

    limit: int
    after: SortPosition | None
    sort_field: str
    direction: Direction
    filter_hash: str = ""
    mode: Literal["cursor"] = "cursor"

    @property
    def fetch_limit(self) -> int:
        return self.limit + 1


PageRequest = Union[OffsetPageRequest, CursorPageRequest]


@dataclass(frozen=True)
class PaginationMeta:
    mode: Literal["offset", "cursor"]
    limit: int
    has_more: bool
    page: int | None = None
    total: int | None = None
    next_cursor: str | None = None

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"mode": self.mode}
        if self.page is not None:
            data["page"] = self.page
        data["limit"] = self.limit
        if self.total is not None:
            data["total"] = self.total
        data["hasMore"] = self.has_more
        if self.next_cursor is not None:
            data["nextCursor"] = self.next_cursor
        return data


def _is_set(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(normalize_query_value(value))
    return True


def _mode_hint(params: Mapping[str, Any]) -> str | None:
    value = params.get("paginationMode")
    if not _is_set(value):
        return None
    return normalize_query_value(str(value)).lower()


class PaginationOrchestrator:
    """Chooses the paging mode and computes page metadata."""

    def __init__(self, codec: CursorCodec, *, default_limit: int, max_limit: int) -> None:
        if not 1 <= default_limit <= max_limit:
            raise ValueError("require 1 <= default_limit <= max_limit")
        self._codec = codec
        self._default_limit = default_limit
        self._max_limit = max_limit

    @property
    def codec(self) -> CursorCodec:
        return self._codec

    def clamp_limit(self, requested: int | None) -> int:
        if requested is None:
            return self._default_limit
        return max(1, min(int(requested), self._max_limit))

    def detect_conflict(self, params: Mapping[str, Any]) -> PaginationConflictError | None:
        """Report mixed cursor and offset signals.

        Works on raw (string) and typed parameters alike, so callers can
        check before validation and the conflict wins over any other error.
        """
        hint = _mode_hint(params)
        wants_cursor = _is_set(params.get("cursor")) or hint == "cursor"
        wants_offset = _is_set(params.get("page")) or hint == "offset"
        if not (wants_cursor and wants_offset):
            return None

        return PaginationConflictError(
            "Contradictory pagination: cannot combine cursor-mode signals "
            "(cursor, paginationMode=cursor) with offset-mode signals "
            "(page, paginationMode=offset). Use one or the other.",
        )

    def resolve(
        self,
        params: Mapping[str, Any],
        *,
        sort_field: str,
        direction: Direction,
        filter_hash: str = "",
    ) -> Result[PageRequest, AppError]:
        """Turn validated parameters into a PageRequest.

        Args:
            params: Typed parameters from the validator.
            sort_field: Effective sort option of the request.
            direction: Effective sort direction.
            filter_hash: Fingerprint of the request's filters.

        Returns:
            Ok(OffsetPageRequest | CursorPageRequest), or Err with a
            PAGINATION_CONFLICT or a VALIDATION_ERROR for a bad cursor.
        """
        conflict = self.detect_conflict(params)
        if conflict is not None:
            return Err(conflict)

        limit = self.clamp_limit(params.get("limit"))
        token = params.get("cursor")

        if not _is_set(token) and _mode_hint(params) != "cursor":
            return Ok(OffsetPageRequest(page=int(params.get("page") or 1), limit=limit))

        after: SortPosition | None = None
        if _is_set(token):
            decoded = self._codec.decode(
                str(token),
                expected_sort_field=sort_field,
                expected_direction=direction,
                expected_filter_hash=filter_hash,
            )
            if isinstance(decoded, Err):
                logger.info(
                    "cursor.rejected",
                    extra={"reason": decoded.error.kind.value, "sort": sort_field},
                )
                return Err(
                    ValidationAppError(
                        f"Invalid cursor: {decoded.error.message}",
                        details={"field": "cursor", "reason": decoded.error.kind.value},
                    )
                )
            after = decoded.value

        return Ok(
            CursorPageRequest(
                limit=limit,
                after=after,
                sort_field=sort_field,
                direction=direction,
                filter_hash=filter_hash,
            )
        )

    def build_page_meta(
        self,
        request: PageRequest,
        items: Sequence[Any],
        *,
        total: int | None = None,
        sort_key: Callable[[Any], tuple[SortValue, str | int]] | None = None,
    ) -> tuple[list[Any], PaginationMeta]:
        """Trim fetched rows to the page and describe it.

        Args:
            request: The resolved page request.
            items: Rows returned by the collaborator (``limit + 1`` at most
                in cursor mode).
            total: Total matching rows; required in offset mode.
            sort_key: Extracts ``(sort value, tie-break id)`` from a row;
                required in cursor mode to mint the next cursor.

        Returns:
            The rows to return and their PaginationMeta.
        """
        if isinstance(request, OffsetPageRequest):
            if total is None:
                raise ValueError("offset pagination requires a total")
            page_items = list(items[: request.limit])
            return page_items, PaginationMeta(
                mode="offset",
                page=request.page,
                limit=request.limit,
                total=total,
                has_more=request.page * request.limit < total,
            )

        page_items = list(items[: request.limit])
        if len(items) <= request.limit or not page_items:
            return page_items, PaginationMeta(mode="cursor", limit=request.limit, has_more=False)

        if sort_key is None:
            raise ValueError("cursor pagination requires a sort_key")
        sort_value, tiebreak_id = sort_key(page_items[-1])
        next_cursor = self._codec.encode(
            SortPosition(
                sort_field=request.sort_field,
                sort_value=sort_value,
                tiebreak_id=tiebreak_id,
                direction=request.direction,
            ),
            filter_hash=request.filter_hash,
        )
        return page_items, PaginationMeta(
            mode="cursor",
            limit=request.limit,
            has_more=True,
            next_cursor=next_cursor,
        )
