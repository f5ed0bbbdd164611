"""Protocol definitions and helpers for batch orchestration."""

from __future__ import annotations

from enum import StrEnum
from typing import Protocol, runtime_checkable

from pydantic import Field

from copydesk_schemas.base import BaseSchema
from copydesk_schemas.events import (
    BatchCompletedData,
    BatchEvent,
    BatchStartedData,
    ItemEvent,
)
from copydesk_schemas.logs import LogEntry
from copydesk_schemas.primitives import (
    BatchId,
    ItemId,
    JsonValue,
    LanguageCode,
    LogLevel,
    Timestamp,
)
from copydesk_schemas.responses import ErrorDetails, ErrorResponse


@runtime_checkable
class LogSinkProtocol(Protocol):
    """Protocol for emitting JSONL log entries."""

    async def emit_log(self, entry: LogEntry) -> None:
        """Emit a log entry."""
        raise NotImplementedError


class OrchestrationErrorCode(StrEnum):
    """Categorized error codes for orchestration failures."""

    BATCH_NOT_FOUND = "batch_not_found"
    UPLOAD_NOT_FOUND = "upload_not_found"
    LEASE_CONFLICT = "lease_conflict"
    INVALID_SELECTION = "invalid_selection"
    INVALID_REQUEST = "invalid_request"


class OrchestrationErrorDetails(BaseSchema):
    """Detailed orchestration error context."""

    batch_id: BatchId | None = Field(None, description="Batch identifier")
    field: str | None = Field(None, description="Request field at fault")
    provided: str | None = Field(None, description="Provided value")
    reason: str | None = Field(None, description="Additional error context")


class OrchestrationErrorInfo(BaseSchema):
    """Structured orchestration error data."""

    code: OrchestrationErrorCode = Field(..., description="Error code")
    message: str = Field(..., min_length=1, description="Error message")
    details: OrchestrationErrorDetails | None = Field(None, description="Error details")

    def to_error_response(self) -> ErrorResponse:
        """Convert orchestration error info to standard error response.

        Returns:
            ErrorResponse: Standard response error payload.
        """
        details: ErrorDetails | None = None
        if self.details is not None and self.details.field is not None:
            details = ErrorDetails(
                field=self.details.field,
                provided=self.details.provided,
                valid_options=None,
            )
        return ErrorResponse(code=self.code, message=self.message, details=details)


class OrchestrationError(Exception):
    """Orchestration error with structured details."""

    def __init__(self, info: OrchestrationErrorInfo) -> None:
        """Initialize the orchestration error.

        Args:
            info: Structured orchestration error information.
        """
        super().__init__(info.message)
        self.info = info


def orchestration_error(
    code: OrchestrationErrorCode,
    message: str,
    *,
    batch_id: BatchId | None = None,
    field: str | None = None,
    provided: str | None = None,
    reason: str | None = None,
) -> OrchestrationError:
    """Build an orchestration error in one call.

    Args:
        code: Error code.
        message: Error message.
        batch_id: Batch identifier if applicable.
        field: Request field at fault.
        provided: Provided value.
        reason: Additional context.

    Returns:
        OrchestrationError: Error ready to raise.
    """
    return OrchestrationError(
        OrchestrationErrorInfo(
            code=code,
            message=message,
            details=OrchestrationErrorDetails(
                batch_id=batch_id, field=field, provided=provided, reason=reason
            ),
        )
    )


def build_batch_started_log(
    timestamp: Timestamp,
    batch_id: BatchId,
    item_count: int,
    optimize: bool,
    target_langs: list[LanguageCode],
) -> LogEntry:
    """Build a log entry for batch run start.

    Args:
        timestamp: ISO-8601 timestamp.
        batch_id: Batch identifier.
        item_count: Items selected for the run.
        optimize: Whether items are rewritten.
        target_langs: Translation targets.

    Returns:
        LogEntry: Structured batch start log entry.
    """
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.INFO,
        event=BatchEvent.STARTED,
        batch_id=batch_id,
        message="Batch run started",
        data=BatchStartedData(
            item_count=item_count, optimize=optimize, target_langs=target_langs
        ).model_dump(),
    )


def build_batch_completed_log(
    timestamp: Timestamp,
    batch_id: BatchId,
    completed: int,
    failed: int,
    skipped: int,
) -> LogEntry:
    """Build a log entry for batch run completion.

    Args:
        timestamp: ISO-8601 timestamp.
        batch_id: Batch identifier.
        completed: Items that finished.
        failed: Items that ended in error.
        skipped: Items skipped by the run.

    Returns:
        LogEntry: Structured batch completion log entry.
    """
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.INFO,
        event=BatchEvent.COMPLETED,
        batch_id=batch_id,
        message="Batch run completed",
        data=BatchCompletedData(
            completed=completed, failed=failed, skipped=skipped
        ).model_dump(),
    )


def build_lease_rejected_log(timestamp: Timestamp, batch_id: BatchId) -> LogEntry:
    """Build a log entry for a rejected concurrent run.

    Args:
        timestamp: ISO-8601 timestamp.
        batch_id: Batch identifier.

    Returns:
        LogEntry: Structured lease rejection log entry.
    """
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.WARN,
        event=BatchEvent.LEASE_REJECTED,
        batch_id=batch_id,
        message="Batch run rejected because another run holds the lease",
    )


def build_item_log(
    timestamp: Timestamp,
    batch_id: BatchId,
    item_id: ItemId,
    event: ItemEvent,
    message: str,
    data: dict[str, JsonValue] | None = None,
    level: LogLevel = LogLevel.INFO,
) -> LogEntry:
    """Build a log entry for an item lifecycle event.

    Args:
        timestamp: ISO-8601 timestamp.
        batch_id: Batch identifier.
        item_id: Item identifier.
        event: Item event name.
        message: Log message.
        data: Structured event data.
        level: Log level.

    Returns:
        LogEntry: Structured item log entry.
    """
    return LogEntry(
        timestamp=timestamp,
        level=level,
        event=event,
        batch_id=batch_id,
        item_id=item_id,
        message=message,
        data=data,
    )
