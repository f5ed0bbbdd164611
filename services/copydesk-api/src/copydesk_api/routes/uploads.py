"""Upload and batch creation routes."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from copydesk_api.dependencies import Services
from copydesk_api.responses import success
from copydesk_core.ports.orchestrator import OrchestrationErrorCode, orchestration_error
from copydesk_schemas.items import Batch, Upload
from copydesk_schemas.requests import CreateBatchRequest, CreateUploadRequest
from copydesk_schemas.responses import ApiResponse, UploadDetail, UploadSummary

router = APIRouter(prefix="/uploads", tags=["uploads"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_upload(
    request: CreateUploadRequest, services: Services
) -> ApiResponse[UploadDetail]:
    """Register an upload and create its items as pending."""
    upload = await services.catalog.create_upload(request)
    items = await services.store.list_items_for_upload(upload.id)
    return success(UploadDetail(upload=upload, items=items, batches=[]))


@router.get("")
async def list_uploads(services: Services) -> ApiResponse[list[Upload]]:
    """List uploads, newest first."""
    return success(await services.store.list_uploads())


@router.get("/{upload_id}")
async def get_upload(upload_id: UUID, services: Services) -> ApiResponse[UploadDetail]:
    """Return an upload with its items in creation order and its batches."""
    upload = await services.store.get_upload(upload_id)
    if upload is None:
        raise orchestration_error(
            OrchestrationErrorCode.UPLOAD_NOT_FOUND,
            "Upload not found",
            field="upload_id",
            provided=str(upload_id),
        )
    items = await services.store.list_items_for_upload(upload_id)
    batches = await services.store.list_batches(upload_id)
    return success(UploadDetail(upload=upload, items=items, batches=batches))


@router.get("/{upload_id}/summary")
async def upload_summary(
    upload_id: UUID,
    services: Services,
    langs: Annotated[list[str] | None, Query()] = None,
) -> ApiResponse[UploadSummary]:
    """Count item statuses and filled translations across an upload.

    Without ``langs`` every language targeted by the upload's batches is
    counted.
    """
    return success(await services.catalog.summarize_upload(upload_id, langs))


@router.delete("/{upload_id}")
async def delete_upload(
    upload_id: UUID, services: Services
) -> ApiResponse[dict[str, str]]:
    """Delete an upload together with its batches and items."""
    await services.catalog.delete_upload(upload_id)
    return success({"deleted": str(upload_id)})


@router.post("/{upload_id}/batches", status_code=status.HTTP_201_CREATED)
async def create_batch(
    upload_id: UUID, request: CreateBatchRequest, services: Services
) -> ApiResponse[Batch]:
    """Create a batch whose membership is fixed at creation."""
    return success(await services.catalog.create_batch(upload_id, request))
