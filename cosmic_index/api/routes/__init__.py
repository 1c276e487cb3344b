from __future__ import annotations

from cosmic_index.api.routes.catalog import router as catalog_router
from cosmic_index.api.routes.health import router as health_router

__all__ = ["catalog_router", "health_router"]
