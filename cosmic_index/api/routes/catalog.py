"""Catalog list and detail routes.

Query strings are validated by the endpoint's QuerySpec inside the service,
not by FastAPI parameter declarations, so every parameter error is reported
in one VALIDATION_ERROR. The OpenAPI parameter list is derived from the same
table.
"""

from __future__ import annotations

from typing import Any, Callable

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from cosmic_index.core.request_context import RequestContext, get_request_context
from cosmic_index.schemas.queries import ENDPOINTS, EndpointConfig
from cosmic_index.services.catalog_service import CatalogEndpointService
from cosmic_index.services.parameter_validator import FieldKind, FieldSpec

router = APIRouter(prefix="/v1")

_JSON_TYPES = {
    FieldKind.STRING: "string",
    FieldKind.INTEGER: "integer",
    FieldKind.NUMBER: "number",
    FieldKind.BOOLEAN: "boolean",
    FieldKind.ENUM: "string",
}

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"description": "VALIDATION_ERROR or PAGINATION_CONFLICT"},
    429: {"description": "RATE_LIMITED"},
    502: {"description": "UPSTREAM_ERROR"},
    504: {"description": "UPSTREAM_TIMEOUT"},
}


def get_catalog_service(request: Request) -> CatalogEndpointService:
    """Dependency returning the service built by the application factory."""
    return request.app.state.catalog_service


def _openapi_parameter(spec: FieldSpec) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": _JSON_TYPES[spec.kind]}
    if spec.choices:
        schema["enum"] = list(spec.choices)
    if spec.minimum is not None:
        schema["minimum"] = spec.minimum
    if spec.maximum is not None:
        schema["maximum"] = spec.maximum
    if spec.exclusive_minimum is not None:
        schema["exclusiveMinimum"] = spec.exclusive_minimum
    if spec.max_length is not None:
        schema["maxLength"] = spec.max_length
    if spec.default is not None:
        schema["default"] = spec.default
    return {"name": spec.name, "in": "query", "required": False, "schema": schema}


def _list_handler(endpoint: EndpointConfig) -> Callable[..., Any]:
    async def list_records(
        request: Request,
        context: RequestContext = Depends(get_request_context),
        service: CatalogEndpointService = Depends(get_catalog_service),
    ) -> JSONResponse:
        return await service.list(
            context,
            request.query_params,
            endpoint,
            is_disconnected=request.is_disconnected,
        )

    list_records.__name__ = f"list_{endpoint.catalog.replace('-', '_')}"
    return list_records


def _detail_handler(endpoint: EndpointConfig) -> Callable[..., Any]:
    async def get_record(
        record_id: str,
        request: Request,
        context: RequestContext = Depends(get_request_context),
        service: CatalogEndpointService = Depends(get_catalog_service),
    ) -> JSONResponse:
        return await service.detail(
            context,
            record_id,
            endpoint,
            is_disconnected=request.is_disconnected,
        )

    get_record.__name__ = f"get_{endpoint.catalog.replace('-', '_')}_record"
    return get_record


def register_endpoint(target: APIRouter, endpoint: EndpointConfig) -> None:
    """Add the list and detail routes of one catalog endpoint."""
    label = endpoint.catalog.replace("-", " ")
    target.add_api_route(
        f"/{endpoint.catalog}",
        _list_handler(endpoint),
        methods=["GET"],
        tags=list(endpoint.tags),
        summary=f"Browse {label}",
        description=(
            "Offset (`page`, `limit`) or cursor (`cursor`, `paginationMode=cursor`) "
            "pagination. Mixing the two is a PAGINATION_CONFLICT."
        ),
        responses=_ERROR_RESPONSES,
        openapi_extra={
            "parameters": [_openapi_parameter(spec) for spec in endpoint.query_spec.fields]
        },
    )
    target.add_api_route(
        f"/{endpoint.catalog}/{{record_id}}",
        _detail_handler(endpoint),
        methods=["GET"],
        tags=list(endpoint.tags),
        summary=f"Get one record from {label}",
        responses={**_ERROR_RESPONSES, 404: {"description": "NOT_FOUND"}},
    )


for _endpoint in ENDPOINTS.values():
    register_endpoint(router, _endpoint)
