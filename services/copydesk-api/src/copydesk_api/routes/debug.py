"""Gateway diagnostic route."""

from __future__ import annotations

from fastapi import APIRouter

from copydesk_api.dependencies import Services
from copydesk_api.responses import success
from copydesk_schemas.llm import LlmDiagnostic
from copydesk_schemas.requests import DiagnosticRequest
from copydesk_schemas.responses import ApiResponse

router = APIRouter(prefix="/debug", tags=["debug"])


@router.post("/llm")
async def check_llm(
    services: Services, request: DiagnosticRequest | None = None
) -> ApiResponse[LlmDiagnostic]:
    """Run one rewrite and report which mode produced it."""
    diagnostic = await services.gateway.diagnose(
        request.name if request else None, request.text if request else None
    )
    return success(diagnostic)
