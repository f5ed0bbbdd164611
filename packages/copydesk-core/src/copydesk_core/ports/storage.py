"""Protocol definitions and errors for record persistence."""

from __future__ import annotations

from collections.abc import Sequence
from enum import StrEnum
from typing import Protocol, runtime_checkable

from pydantic import Field

from copydesk_schemas.base import BaseSchema
from copydesk_schemas.items import Batch, BatchLease, Upload, WorkItem
from copydesk_schemas.logs import LogEntry
from copydesk_schemas.primitives import (
    BatchId,
    ItemId,
    JsonValue,
    LeaseToken,
    StorageBackend,
    UploadId,
)
from copydesk_schemas.responses import ErrorDetails, ErrorResponse


class StorageErrorCode(StrEnum):
    """Categorized error codes for storage operations."""

    NOT_FOUND = "not_found"
    IO_ERROR = "io_error"
    SERIALIZATION_ERROR = "serialization_error"
    VALIDATION_ERROR = "validation_error"
    CONFLICT = "conflict"


class StorageErrorDetails(BaseSchema):
    """Detailed storage error context."""

    operation: str | None = Field(None, description="Storage operation name")
    record_id: str | None = Field(None, description="Record identifier")
    backend: StorageBackend | None = Field(
        None, description="Storage backend identifier"
    )
    path: str | None = Field(None, description="Filesystem path")
    reason: str | None = Field(None, description="Additional error context")


class StorageErrorInfo(BaseSchema):
    """Structured storage error data."""

    code: StorageErrorCode = Field(..., description="Storage error code")
    message: str = Field(..., min_length=1, description="Error message")
    details: StorageErrorDetails | None = Field(None, description="Error details")

    def to_error_response(self) -> ErrorResponse:
        """Convert storage error info to the standard error response schema.

        Returns:
            ErrorResponse: Standard response error payload.
        """
        details: ErrorDetails | None = None
        if self.details is not None:
            details = ErrorDetails(
                field=self.details.operation,
                provided=self.details.record_id or self.details.path,
                valid_options=None,
            )
        return ErrorResponse(code=self.code, message=self.message, details=details)


class StorageError(Exception):
    """Storage error with structured details."""

    def __init__(self, info: StorageErrorInfo) -> None:
        """Initialize the storage error.

        Args:
            info: Structured storage error information.
        """
        super().__init__(info.message)
        self.info = info


def build_not_found_error(
    operation: str,
    record_id: object,
    *,
    backend: StorageBackend | None = None,
) -> StorageError:
    """Build a not-found storage error.

    Args:
        operation: Storage operation name.
        record_id: Missing record identifier.
        backend: Backend that raised the error.

    Returns:
        StorageError: Error ready to raise.
    """
    return StorageError(
        StorageErrorInfo(
            code=StorageErrorCode.NOT_FOUND,
            message=f"Record not found: {record_id}",
            details=StorageErrorDetails(
                operation=operation, record_id=str(record_id), backend=backend
            ),
        )
    )


def build_lease_conflict_error(
    batch_id: BatchId,
    *,
    backend: StorageBackend | None = None,
) -> StorageError:
    """Build a conflict error for a batch whose lease is already held.

    Args:
        batch_id: Batch identifier.
        backend: Backend that raised the error.

    Returns:
        StorageError: Error ready to raise.
    """
    return StorageError(
        StorageErrorInfo(
            code=StorageErrorCode.CONFLICT,
            message=f"Batch {batch_id} is already being processed",
            details=StorageErrorDetails(
                operation="acquire_lease",
                record_id=str(batch_id),
                backend=backend,
                reason="lease_held",
            ),
        )
    )


@runtime_checkable
class RecordStoreProtocol(Protocol):
    """Protocol for persisting uploads, batches, items, and batch leases."""

    async def save_upload(self, upload: Upload) -> None:
        """Persist or replace an upload record."""
        raise NotImplementedError

    async def get_upload(self, upload_id: UploadId) -> Upload | None:
        """Load an upload record if present."""
        raise NotImplementedError

    async def list_uploads(self) -> list[Upload]:
        """List uploads, newest first."""
        raise NotImplementedError

    async def delete_upload(self, upload_id: UploadId) -> None:
        """Delete an upload with its batches and items."""
        raise NotImplementedError

    async def save_batch(self, batch: Batch) -> None:
        """Persist or replace a batch record."""
        raise NotImplementedError

    async def get_batch(self, batch_id: BatchId) -> Batch | None:
        """Load a batch record if present."""
        raise NotImplementedError

    async def list_batches(self, upload_id: UploadId | None = None) -> list[Batch]:
        """List batches, optionally for one upload."""
        raise NotImplementedError

    async def save_items(self, items: Sequence[WorkItem]) -> None:
        """Persist or replace work items."""
        raise NotImplementedError

    async def find_item(self, item_id: ItemId) -> WorkItem | None:
        """Load a work item if present."""
        raise NotImplementedError

    async def update_item_fields(
        self, item_id: ItemId, fields: dict[str, JsonValue]
    ) -> WorkItem:
        """Apply field updates to one item in a single write."""
        raise NotImplementedError

    async def list_items_for_upload(self, upload_id: UploadId) -> list[WorkItem]:
        """List items of an upload in creation order."""
        raise NotImplementedError

    async def list_items_for_batch(
        self, batch_id: BatchId, item_ids: Sequence[ItemId] | None = None
    ) -> list[WorkItem]:
        """List member items of a batch, optionally restricted to ids."""
        raise NotImplementedError

    async def acquire_lease(self, batch_id: BatchId, token: LeaseToken) -> BatchLease:
        """Acquire the exclusive run lease for a batch."""
        raise NotImplementedError

    async def renew_lease(self, batch_id: BatchId, token: LeaseToken) -> None:
        """Refresh the renewal time of a lease held by token."""
        raise NotImplementedError

    async def release_lease(self, batch_id: BatchId, token: LeaseToken) -> None:
        """Release a batch lease held by token."""
        raise NotImplementedError


@runtime_checkable
class LogStoreProtocol(Protocol):
    """Protocol for persisting JSONL log entries."""

    async def append_log(self, entry: LogEntry) -> None:
        """Append a log entry."""
        raise NotImplementedError
