"""Per-request correlation context and client identity.

``RequestContext`` is created by the request-id middleware for every request
and stored on ``request.state.context``. Route handlers receive it through the
``get_request_context`` dependency; the outermost failure handler reads it to
keep the same request id and rate-limit headers on error responses.

Trust decisions (reusing a client's request id, reading proxy headers) come
from the settings of the app serving the request, ``request.app.state.settings``.
"""

from __future__ import annotations

import hashlib
import re
import time
import uuid
from dataclasses import dataclass, field

from fastapi import Request

from cosmic_index.core.config import (
    DEFAULT_API_VERSION,
    DEFAULT_REQUEST_ID_HEADER,
    Settings,
)

_REQUEST_ID_PATTERN = re.compile(r"[A-Za-z0-9._:-]{1,128}")

API_KEY_HEADER = "X-API-Key"


@dataclass
class RequestContext:
    """State threaded through one request.

    Attributes:
        request_id: Correlation id echoed in headers, bodies and logs.
        client_identity: Derived rate limit key (never the raw API key).
        api_version: Reported in ``meta.apiVersion`` and ``Api-Version``.
        request_id_header: Header name carrying ``request_id``.
        started_at: ``time.perf_counter()`` value at request start.
        response_headers: Headers every response for this request must carry
            (rate-limit headers once the limiter was consulted).
        warnings: Non-fatal conditions reported in ``meta.warnings``.
    """

    request_id: str
    client_identity: str
    api_version: str = DEFAULT_API_VERSION
    request_id_header: str = DEFAULT_REQUEST_ID_HEADER
    started_at: float = field(default_factory=time.perf_counter)
    response_headers: dict[str, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


def new_request_id(incoming: str | None = None, *, trusted: bool = True) -> str:
    """Reuse a well-formed incoming id when trusted, else mint a UUID4."""
    if incoming and trusted and _REQUEST_ID_PATTERN.fullmatch(incoming):
        return incoming
    return str(uuid.uuid4())


def derive_client_identity(request: Request, *, trust_forwarded_for: bool = True) -> str:
    """Derive the rate limit key for a request.

    Order: API key (hashed), first X-Forwarded-For hop, X-Real-IP, socket
    peer, then ``anonymous``. The proxy headers are skipped unless
    ``trust_forwarded_for`` is set. Only the derived string is kept.
    """
    api_key = request.headers.get(API_KEY_HEADER)
    if api_key and api_key.strip():
        digest = hashlib.sha256(api_key.strip().encode()).hexdigest()[:32]
        return f"key:{digest}"

    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return f"ip:{first_hop}"

        real_ip = request.headers.get("x-real-ip")
        if real_ip and real_ip.strip():
            return f"ip:{real_ip.strip()}"

    if request.client and request.client.host:
        return f"ip:{request.client.host}"

    return "anonymous"


def settings_for(request: Request) -> Settings:
    """Settings of the app serving ``request``, stored by ``create_app``."""
    return request.app.state.settings


def build_request_context(request: Request, config: Settings) -> RequestContext:
    """Build the context of one request from the serving app's settings."""
    header_name = config.log.request_id_header
    return RequestContext(
        request_id=new_request_id(
            request.headers.get(header_name),
            trusted=config.app.trust_client_request_id,
        ),
        client_identity=derive_client_identity(
            request,
            trust_forwarded_for=config.app.trust_forwarded_for,
        ),
        api_version=config.app.api_version,
        request_id_header=header_name,
    )


def get_request_context(request: Request) -> RequestContext:
    """FastAPI dependency returning the context built by the middleware.

    Falls back to building one when the middleware is not installed (e.g. a
    bare router mounted on an app from ``create_app`` without it).
    """
    context = getattr(request.state, "context", None)
    if context is None:
        context = build_request_context(request, settings_for(request))
        request.state.context = context
    return context
