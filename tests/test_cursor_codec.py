"""Tests for signed pagination cursors."""

import base64
import json

import pytest

from cosmic_index.core.result import Err, Ok
from cosmic_index.services.cursor_codec import (
    CURSOR_VERSION,
    MAC_BYTES,
    CursorCodec,
    CursorErrorKind,
    SortPosition,
    filter_fingerprint,
)

B64_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"


@pytest.fixture
def codec() -> CursorCodec:
    return CursorCodec("unit-test-secret")


@pytest.fixture
def position() -> SortPosition:
    return SortPosition(sort_field="distance", sort_value=12.47, tiebreak_id="trappist-1", direction="asc")


def kind_of(result) -> CursorErrorKind:
    assert isinstance(result, Err)
    return result.error.kind


@pytest.mark.parametrize(
    "sort_value,tiebreak_id",
    [
        ("Kepler-452 b", "kepler-452-b"),
        (2016, "proxima-cen-b"),
        (0.34, 99942),
        (None, "2I"),
        ("Ünïcode ☄", "comet-1"),
    ],
)
def test_round_trip(codec: CursorCodec, sort_value, tiebreak_id) -> None:
    position = SortPosition(sort_field="name", sort_value=sort_value, tiebreak_id=tiebreak_id, direction="desc")

    token = codec.encode(position, filter_hash="abc123")
    decoded = codec.decode(token, expected_sort_field="name", expected_direction="desc", expected_filter_hash="abc123")

    assert decoded == Ok(position)


def test_token_is_url_safe_and_unpadded(codec: CursorCodec, position: SortPosition) -> None:
    token = codec.encode(position)

    assert set(token) <= set(B64_ALPHABET)
    assert "=" not in token


def test_every_single_character_corruption_fails(codec: CursorCodec, position: SortPosition) -> None:
    token = codec.encode(position, filter_hash="f1")

    for index, original in enumerate(token):
        for replacement in ("A", "f", "Z", "0", "-", "_"):
            if replacement == original:
                continue
            corrupted = token[:index] + replacement + token[index + 1 :]
            assert isinstance(codec.decode(corrupted), Err), (index, replacement)


def test_truncated_and_extended_tokens_fail(codec: CursorCodec, position: SortPosition) -> None:
    token = codec.encode(position)

    assert kind_of(codec.decode(token[:-1])) is CursorErrorKind.PARSE_ERROR
    assert kind_of(codec.decode(token[:10])) is CursorErrorKind.PARSE_ERROR
    assert kind_of(codec.decode(token + "AA")) is CursorErrorKind.PARSE_ERROR


@pytest.mark.parametrize("token", ["", "not a cursor!", "====", "é" * 20])
def test_garbage_is_parse_error(codec: CursorCodec, token: str) -> None:
    assert kind_of(codec.decode(token)) is CursorErrorKind.PARSE_ERROR


def test_overlong_token_is_parse_error(position: SortPosition) -> None:
    codec = CursorCodec("unit-test-secret", max_length=40)
    long_position = SortPosition("name", "x" * 100, "id", "asc")

    assert kind_of(codec.decode(codec.encode(long_position))) is CursorErrorKind.PARSE_ERROR


def test_token_signed_with_other_secret_is_rejected(position: SortPosition) -> None:
    token = CursorCodec("secret-a").encode(position)

    assert kind_of(CursorCodec("secret-b").decode(token)) is CursorErrorKind.PARSE_ERROR


def test_unknown_version_is_reported(codec: CursorCodec, position: SortPosition) -> None:
    token = codec.encode(position)
    raw = base64.urlsafe_b64decode(token + "=" * (-len(token) % 4))
    assert raw[0] == CURSOR_VERSION

    future = base64.urlsafe_b64encode(bytes([CURSOR_VERSION + 1]) + raw[1:]).rstrip(b"=").decode()

    assert kind_of(codec.decode(future)) is CursorErrorKind.UNKNOWN_VERSION


def test_signed_but_malformed_body_is_rejected(codec: CursorCodec) -> None:
    version = bytes([CURSOR_VERSION])
    body = json.dumps({"s": "name", "v": True, "t": "id", "d": "asc", "f": ""}).encode()
    raw = version + codec._mac(version + body) + body
    token = base64.urlsafe_b64encode(raw).rstrip(b"=").decode()

    assert len(raw) > 1 + MAC_BYTES
    assert kind_of(codec.decode(token)) is CursorErrorKind.PARSE_ERROR


def test_sort_field_mismatch(codec: CursorCodec, position: SortPosition) -> None:
    token = codec.encode(position)

    assert kind_of(codec.decode(token, expected_sort_field="name")) is CursorErrorKind.SORT_MISMATCH


def test_direction_mismatch(codec: CursorCodec, position: SortPosition) -> None:
    token = codec.encode(position)

    assert kind_of(codec.decode(token, expected_direction="desc")) is CursorErrorKind.SORT_MISMATCH


def test_filter_mismatch(codec: CursorCodec, position: SortPosition) -> None:
    token = codec.encode(position, filter_hash=filter_fingerprint({"kind": "comet"}))

    result = codec.decode(token, expected_filter_hash=filter_fingerprint({"kind": "asteroid"}))

    assert kind_of(result) is CursorErrorKind.FILTER_MISMATCH


@pytest.mark.parametrize(
    "position",
    [
        SortPosition("", "x", "id", "asc"),
        SortPosition("name", float("nan"), "id", "asc"),
        SortPosition("name", True, "id", "asc"),
        SortPosition("name", "x", 1.5, "asc"),
        SortPosition("name", "x", "id", "sideways"),
    ],
)
def test_encode_rejects_unrepresentable_positions(codec: CursorCodec, position: SortPosition) -> None:
    with pytest.raises(ValueError):
        codec.encode(position)


def test_empty_secret_rejected() -> None:
    with pytest.raises(ValueError):
        CursorCodec("")


def test_filter_fingerprint_is_order_independent_and_skips_empty() -> None:
    a = filter_fingerprint({"kind": "comet", "neo": True, "query": ""})
    b = filter_fingerprint({"neo": True, "kind": "comet", "orbitClass": None})

    assert a == b
    assert len(a) == 16
    assert a != filter_fingerprint({"kind": "comet", "neo": False})


def test_filter_fingerprint_excludes_keys() -> None:
    assert filter_fingerprint({"kind": "comet", "limit": 5}, exclude=("limit",)) == filter_fingerprint(
        {"kind": "comet"}
    )


def test_filter_fingerprint_is_scoped_to_catalog() -> None:
    filters = {"kind": "comet"}

    assert filter_fingerprint(filters, scope="stars") != filter_fingerprint(filters, scope="exoplanets")
    assert filter_fingerprint({}, scope="stars") != filter_fingerprint({}, scope="exoplanets")
    assert filter_fingerprint(filters, scope="stars") == filter_fingerprint(dict(filters), scope="stars")
