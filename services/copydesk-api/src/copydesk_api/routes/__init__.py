"""API routers."""

from copydesk_api.routes.batches import router as batches_router
from copydesk_api.routes.debug import router as debug_router
from copydesk_api.routes.health import router as health_router
from copydesk_api.routes.uploads import router as uploads_router

__all__ = ["batches_router", "debug_router", "health_router", "uploads_router"]
