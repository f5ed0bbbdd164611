"""API entry point - thin adapter over copydesk-core."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from copydesk_api.errors import register_exception_handlers
from copydesk_api.routes import (
    batches_router,
    debug_router,
    health_router,
    uploads_router,
)
from copydesk_api.services import AppServices, build_services
from copydesk_core.config import get_settings
from copydesk_core.util.logging import configure_logging, get_logger
from copydesk_schemas.version import VERSION

logger = get_logger(__name__)


def create_app(services: AppServices | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        services: Pre-wired components; built from settings when omitted.

    Returns:
        FastAPI: Configured application.
    """
    if services is None:
        settings = get_settings()
        configure_logging(settings.log_level)
        services = build_services(settings)
    resolved = services

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "copydesk API starting (gateway mode: %s)", resolved.gateway.mode
        )
        yield
        active = resolved.runner.active()
        if active:
            logger.warning("Cancelling %d running batch(es) on shutdown", len(active))
        await resolved.runner.shutdown()

    app = FastAPI(
        title="copydesk",
        description="Batch product copy optimization and translation API",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.services = resolved
    register_exception_handlers(app)
    app.include_router(health_router)
    app.include_router(uploads_router)
    app.include_router(batches_router)
    app.include_router(debug_router)
    return app


def main(host: str = "0.0.0.0", port: int = 8000) -> None:
    """Run the API server."""
    uvicorn.run("copydesk_api.main:create_app", factory=True, host=host, port=port)


if __name__ == "__main__":
    main()
