from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from cosmic_index.core import envelope
from cosmic_index.core.request_context import RequestContext, get_request_context

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(context: RequestContext = Depends(get_request_context)) -> JSONResponse:
    """Liveness check for load balancers and monitoring.

    Not rate limited and never touches the counter store or the catalog.

    Returns:
        JSONResponse: Success envelope with ``data.status == "ok"``.
    """

    return envelope.success(
        {"status": "ok"},
        context.request_id,
        headers={"Cache-Control": "no-store"},
        api_version=context.api_version,
        request_id_header=context.request_id_header,
    )
