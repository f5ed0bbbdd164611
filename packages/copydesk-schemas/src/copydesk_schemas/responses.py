"""API response envelope schemas."""

from __future__ import annotations

from pydantic import Field

from copydesk_schemas.base import BaseSchema
from copydesk_schemas.items import Batch, Upload, WorkItem
from copydesk_schemas.primitives import (
    BatchId,
    ItemId,
    ItemStatus,
    JobType,
    LanguageCode,
    Timestamp,
    UploadId,
)
from copydesk_schemas.progress import StatusCounts


class MetaInfo(BaseSchema):
    """Metadata for API responses."""

    timestamp: Timestamp = Field(..., description="ISO-8601 response timestamp")
    request_id: str | None = Field(None, description="Optional request identifier")


class ErrorDetails(BaseSchema):
    """Detailed error context for responses."""

    field: str | None = Field(None, description="Field name if applicable")
    provided: str | None = Field(None, description="Provided value")
    valid_options: list[str] | None = Field(
        None, description="Valid options if applicable"
    )


class ErrorResponse(BaseSchema):
    """Error information in response."""

    code: str = Field(..., min_length=1, description="Error code")
    message: str = Field(..., min_length=1, description="Error message")
    details: ErrorDetails | None = Field(None, description="Optional error details")


class ApiResponse[ResponseData](BaseSchema):
    """Generic API response envelope."""

    data: ResponseData | None = Field(
        None, description="Success payload, null on error"
    )
    error: ErrorResponse | None = Field(
        None, description="Error information, null on success"
    )
    meta: MetaInfo = Field(..., description="Response metadata")


class ProcessAccepted(BaseSchema):
    """Acknowledgement returned when a run is scheduled."""

    batch_id: BatchId = Field(..., description="Batch being processed")
    items_count: int = Field(..., ge=0, description="Items selected for the run")


class UploadDetail(BaseSchema):
    """Upload with its items in creation order."""

    upload: Upload = Field(..., description="Upload record")
    items: list[WorkItem] = Field(..., description="Items in creation order")
    batches: list[Batch] = Field(..., description="Batches drawn from the upload")


class BatchDetail(BaseSchema):
    """Batch with its member items in creation order."""

    batch: Batch = Field(..., description="Batch record")
    items: list[WorkItem] = Field(..., description="Member items")


class ItemStatusEntry(BaseSchema):
    """Identifier and status of one member item."""

    id: ItemId = Field(..., description="Item identifier")
    status: ItemStatus = Field(..., description="Current item status")


class BatchOverview(BaseSchema):
    """Batch with the status of each member item."""

    batch: Batch = Field(..., description="Batch record")
    items: list[ItemStatusEntry] = Field(
        ..., description="Member statuses in creation order"
    )


class UploadSummary(BaseSchema):
    """Per-status and per-language counts over every item of an upload."""

    upload_id: UploadId = Field(..., description="Upload identifier")
    job_type: JobType = Field(..., description="Row kind")
    total_rows: int = Field(..., ge=0, description="Items in the upload")
    optimized_count: int = Field(
        ...,
        ge=0,
        description="Products holding rewritten text, or completed UI strings",
    )
    counts: StatusCounts = Field(..., description="Counts per status bucket")
    translation_languages: list[LanguageCode] = Field(
        ..., description="Languages counted"
    )
    translation_counts: dict[str, int] = Field(
        ..., description="Items holding a non-empty value per language"
    )
