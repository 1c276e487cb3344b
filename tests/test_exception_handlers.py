"""Tests for global exception handlers and the error envelope.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from cosmic_index.core.config import Settings
from cosmic_index.core.errors import (
    ERROR_STATUS,
    AppError,
    ErrorCode,
    InternalAppError,
    NotFoundAppError,
    PaginationConflictError,
    RateLimitedError,
    UpstreamAppError,
    UpstreamTimeoutError,
    ValidationAppError,
)
from cosmic_index.core.exception_handlers import setup_exception_handlers
from cosmic_index.core.middleware import request_id_middleware


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with middleware and exception handlers registered."""
    app = FastAPI()
    app.state.settings = Settings()
    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers)


def test_every_code_has_exactly_one_status():
    assert set(ERROR_STATUS) == set(ErrorCode)
    assert ERROR_STATUS == {
        ErrorCode.VALIDATION_ERROR: 400,
        ErrorCode.PAGINATION_CONFLICT: 400,
        ErrorCode.NOT_FOUND: 404,
        ErrorCode.RATE_LIMITED: 429,
        ErrorCode.UPSTREAM_TIMEOUT: 504,
        ErrorCode.UPSTREAM_ERROR: 502,
        ErrorCode.INTERNAL: 500,
    }


@pytest.mark.parametrize(
    "error_cls,code,status",
    [
        (ValidationAppError, "VALIDATION_ERROR", 400),
        (PaginationConflictError, "PAGINATION_CONFLICT", 400),
        (NotFoundAppError, "NOT_FOUND", 404),
        (RateLimitedError, "RATE_LIMITED", 429),
        (UpstreamTimeoutError, "UPSTREAM_TIMEOUT", 504),
        (UpstreamAppError, "UPSTREAM_ERROR", 502),
        (InternalAppError, "INTERNAL", 500),
    ],
)
def test_app_errors_render_with_taxonomy_status(client, app_with_handlers, error_cls, code, status):
    @app_with_handlers.get("/boom")
    async def boom():
        raise error_cls("Something specific happened.")

    resp = client.get("/boom")

    assert resp.status_code == status
    body = resp.json()
    assert body["error"] == {"code": code, "message": "Something specific happened."}
    assert body["requestId"] == resp.headers["X-Request-ID"]
    assert resp.headers["Api-Version"] == "1"


def test_app_error_includes_details(client, app_with_handlers):
    @app_with_handlers.get("/details")
    async def details():
        raise ValidationAppError("Bad input.", details={"field": "cursor", "reason": "PARSE_ERROR"})

    body = client.get("/details").json()

    assert body["error"]["details"] == {"field": "cursor", "reason": "PARSE_ERROR"}


def test_app_error_status_property():
    assert AppError(ErrorCode.RATE_LIMITED, "slow down").status_code == 429
    assert str(NotFoundAppError("gone")) == "gone"


def test_framework_validation_error(client, app_with_handlers):
    @app_with_handlers.get("/typed/{number}")
    async def typed(number: int):
        return {"number": number}

    resp = client.get("/typed/abc")

    assert resp.status_code == 400
    body = resp.json()
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert body["error"]["details"]["fields"][0]["field"] == "number"


def test_unknown_route_is_not_found(client):
    resp = client.get("/nowhere")

    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "NOT_FOUND"


def test_wrong_method_is_validation_error(client, app_with_handlers):
    @app_with_handlers.get("/only-get")
    async def only_get():
        return {}

    resp = client.post("/only-get")

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_unhandled_exception_is_generic_internal(client, app_with_handlers):
    @app_with_handlers.get("/crash")
    async def crash():
        raise RuntimeError("secret path /etc/passwd and stack")

    resp = client.get("/crash", headers={"X-Request-ID": "crash-123"})

    assert resp.status_code == 500
    body = resp.json()
    assert body["error"]["code"] == "INTERNAL"
    assert "passwd" not in resp.text
    assert "Traceback" not in resp.text
    assert body["requestId"] == "crash-123"
    assert resp.headers["X-Request-ID"] == "crash-123"
