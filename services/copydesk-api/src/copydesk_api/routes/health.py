"""Health check route."""

from __future__ import annotations

from fastapi import APIRouter

from copydesk_api.dependencies import Services
from copydesk_api.responses import success
from copydesk_schemas.responses import ApiResponse
from copydesk_schemas.version import VERSION

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(services: Services) -> ApiResponse[dict[str, str]]:
    """Health check endpoint.

    Returns:
        ApiResponse envelope containing status, version, and gateway mode.
    """
    return success(
        {
            "status": "ok",
            "version": VERSION,
            "gateway_mode": str(services.gateway.mode),
        }
    )
