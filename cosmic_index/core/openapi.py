"""OpenAPI metadata and customization utilities.

Provides a helper to enrich the generated OpenAPI schema with:
- Tags metadata for the catalog groups
- An optional API Key security scheme (``X-API-Key``): anonymous calls are
  accepted, a key only gives the caller its own rate limit budget
- Shared rate-limit and correlation response headers

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from cosmic_index.core.request_context import API_KEY_HEADER

_TAGS = [
    {"name": "Exoplanets", "description": "Confirmed exoplanets and their discovery data."},
    {"name": "Stars", "description": "Host stars of known planetary systems."},
    {"name": "Small Bodies", "description": "Asteroids and comets."},
    {"name": "Health", "description": "Liveness checks. They report rate-limit standing without consuming it."},
]

_RATE_LIMIT_HEADERS = {
    "X-RateLimit-Limit": {
        "description": "Requests allowed per window for this endpoint's tier (DETAIL where nothing is counted).",
        "schema": {"type": "integer"},
    },
    "X-RateLimit-Remaining": {
        "description": "Requests left in the current window.",
        "schema": {"type": "integer"},
    },
    "X-RateLimit-Reset": {
        "description": "UNIX epoch seconds when the current window ends.",
        "schema": {"type": "integer"},
    },
}

_REQUEST_ID_HEADER = {
    "X-Request-ID": {
        "description": "Correlation id, equal to requestId in the body.",
        "schema": {"type": "string"},
    },
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add metadata and security.

    - Injects components.securitySchemes for API Key auth (header ``X-API-Key``)
    - Marks catalog operations as accepting the key optionally
      (``security: [{}, {"ApiKeyAuth": []}]``); health needs none
    - Documents correlation and rate-limit response headers on every operation
    - Adds tags metadata if not present
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "ApiKeyAuth",
            {
                "type": "apiKey",
                "in": "header",
                "name": API_KEY_HEADER,
                "description": "Optional. Rate limits are tracked per key instead of per IP.",
            },
        )

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in _TAGS:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            catalog_path = path.startswith("/v1/")
            for method_obj in methods.values():
                if not isinstance(method_obj, dict):
                    continue
                method_obj["security"] = [{}, {"ApiKeyAuth": []}] if catalog_path else []
                for response in method_obj.get("responses", {}).values():
                    headers = response.setdefault("headers", {})
                    headers.update(_REQUEST_ID_HEADER)
                    headers.update(_RATE_LIMIT_HEADERS)

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
