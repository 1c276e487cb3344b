"""Opaque, tamper-evident pagination cursors.

A cursor is ``base64url(version || mac || body)`` without padding, where
``body`` is compact JSON holding the sort field, last sort value, tie-break
id, direction and a fingerprint of the filters the page was produced with,
and ``mac`` is a truncated HMAC-SHA256 over ``version || body``.

Decoding is pure. It rejects anything this encoder would not have produced:
unknown versions, bad signatures, non-canonical base64 and malformed bodies
all fail explicitly instead of yielding a plausible wrong position.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Literal, Mapping, Union

from cosmic_index.core.result import Err, Ok, Result

CURSOR_VERSION = 1
MAC_BYTES = 12

Direction = Literal["asc", "desc"]
SortValue = Union[str, int, float, None]


class CursorErrorKind(str, Enum):
    PARSE_ERROR = "PARSE_ERROR"
    UNKNOWN_VERSION = "UNKNOWN_VERSION"
    SORT_MISMATCH = "SORT_MISMATCH"
    FILTER_MISMATCH = "FILTER_MISMATCH"


@dataclass(frozen=True)
class CursorError:
    kind: CursorErrorKind
    message: str


@dataclass(frozen=True)
class SortPosition:
    """Resume point: the last row a client has seen.

    Attributes:
        sort_field: Public sort option the page was ordered by.
        sort_value: Value of the sort column on the last row (may be None).
        tiebreak_id: Unique id of the last row, breaking ties on sort_value.
        direction: Sort direction.
    """

    sort_field: str
    sort_value: SortValue
    tiebreak_id: str | int
    direction: Direction


def _is_sort_value(value: Any) -> bool:
    if value is None or isinstance(value, str):
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def _is_tiebreak(value: Any) -> bool:
    return isinstance(value, str) or (isinstance(value, int) and not isinstance(value, bool))


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(token: str) -> bytes:
    padded = token + "=" * (-len(token) % 4)
    return base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)


class CursorCodec:
    """Encodes and decodes ``SortPosition`` values as signed opaque tokens."""

    def __init__(self, secret: str | bytes, *, max_length: int = 500) -> None:
        if not secret:
            raise ValueError("cursor secret must not be empty")
        self._key = secret.encode() if isinstance(secret, str) else secret
        self._max_length = max_length

    def _mac(self, signed: bytes) -> bytes:
        return hmac.new(self._key, signed, hashlib.sha256).digest()[:MAC_BYTES]

    def encode(self, position: SortPosition, *, filter_hash: str = "") -> str:
        """Encode a position into an opaque token.

        Raises:
            ValueError: If the position holds values that cannot round-trip.
        """
        if not position.sort_field:
            raise ValueError("sort_field must not be empty")
        if not _is_sort_value(position.sort_value):
            raise ValueError(f"unsupported sort value: {position.sort_value!r}")
        if not _is_tiebreak(position.tiebreak_id):
            raise ValueError(f"unsupported tiebreak id: {position.tiebreak_id!r}")
        if position.direction not in ("asc", "desc"):
            raise ValueError(f"unsupported direction: {position.direction!r}")

        body = json.dumps(
            {
                "s": position.sort_field,
                "v": position.sort_value,
                "t": position.tiebreak_id,
                "d": position.direction,
                "f": filter_hash,
            },
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        ).encode("utf-8")
        version = bytes([CURSOR_VERSION])
        return _b64encode(version + self._mac(version + body) + body)

    def decode(
        self,
        token: str,
        *,
        expected_sort_field: str | None = None,
        expected_direction: Direction | None = None,
        expected_filter_hash: str | None = None,
    ) -> Result[SortPosition, CursorError]:
        """Decode a token, optionally checking it against the current request.

        Args:
            token: Cursor string received from the client.
            expected_sort_field: Sort option of the request; a cursor minted
                for another sort is rejected.
            expected_direction: Direction of the request.
            expected_filter_hash: Fingerprint of the request's filters.

        Returns:
            Ok(SortPosition) or Err(CursorError).
        """
        parsed = self._parse(token)
        if isinstance(parsed, Err):
            return parsed
        position, filter_hash = parsed.value

        if expected_sort_field is not None and position.sort_field != expected_sort_field:
            return Err(
                CursorError(
                    CursorErrorKind.SORT_MISMATCH,
                    f"Cursor was issued for sort '{position.sort_field}'.",
                )
            )
        if expected_direction is not None and position.direction != expected_direction:
            return Err(
                CursorError(
                    CursorErrorKind.SORT_MISMATCH,
                    f"Cursor was issued for order '{position.direction}'.",
                )
            )
        if expected_filter_hash is not None and filter_hash != expected_filter_hash:
            return Err(
                CursorError(
                    CursorErrorKind.FILTER_MISMATCH,
                    "Cursor was issued for a different set of filters.",
                )
            )
        return Ok(position)

    def _parse(self, token: str) -> Result[tuple[SortPosition, str], CursorError]:
        def parse_error(message: str) -> Err[CursorError]:
            return Err(CursorError(CursorErrorKind.PARSE_ERROR, message))

        if not token or len(token) > self._max_length or not token.isascii():
            return parse_error("Cursor is empty, too long or not ASCII.")

        try:
            raw = _b64decode(token)
        except (binascii.Error, ValueError):
            return parse_error("Cursor is not valid base64url.")

        # Reject alternative spellings of the same bytes (stray padding bits).
        if _b64encode(raw) != token:
            return parse_error("Cursor is not canonically encoded.")

        if len(raw) < 1 + MAC_BYTES + 2:
            return parse_error("Cursor is truncated.")

        version, mac, body = raw[:1], raw[1 : 1 + MAC_BYTES], raw[1 + MAC_BYTES :]
        if version[0] != CURSOR_VERSION:
            return Err(
                CursorError(
                    CursorErrorKind.UNKNOWN_VERSION,
                    f"Cursor version {version[0]} is not supported.",
                )
            )

        if not hmac.compare_digest(mac, self._mac(version + body)):
            return parse_error("Cursor signature does not match.")

        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            return parse_error("Cursor body is not valid JSON.")

        if not isinstance(payload, dict) or set(payload) != {"s", "v", "t", "d", "f"}:
            return parse_error("Cursor body has an unexpected shape.")

        sort_field, value, tiebreak = payload["s"], payload["v"], payload["t"]
        direction, filter_hash = payload["d"], payload["f"]
        if (
            not isinstance(sort_field, str)
            or not sort_field
            or not _is_sort_value(value)
            or not _is_tiebreak(tiebreak)
            or direction not in ("asc", "desc")
            or not isinstance(filter_hash, str)
        ):
            return parse_error("Cursor body has invalid field values.")

        position = SortPosition(
            sort_field=sort_field,
            sort_value=value,
            tiebreak_id=tiebreak,
            direction=direction,
        )
        return Ok((position, filter_hash))


def filter_fingerprint(
    params: Mapping[str, Any],
    *,
    exclude: Iterable[str] = (),
    scope: str = "",
) -> str:
    """Deterministic fingerprint of the filter parameters of a request.

    Pairs are sorted by key and rendered as ``key=value``; excluded keys and
    empty values are skipped. A non-empty ``scope`` (the catalog name) prefixes
    the rendering, so equal filters on two catalogs fingerprint differently.
    Returns the first 16 hex chars of the SHA-256.
    """
    skip = set(exclude)
    pairs: list[str] = []
    for key in sorted(params):
        if key in skip:
            continue
        value = params[key]
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            rendered = "true" if value else "false"
        else:
            rendered = str(value)
        pairs.append(f"{key}={rendered}")

    canonical = "&".join(pairs)
    if scope:
        canonical = f"{scope}?{canonical}"
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]
