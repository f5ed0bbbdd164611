"""Progress stream and batch lifecycle event schemas."""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field, model_validator

from copydesk_schemas.base import BaseSchema
from copydesk_schemas.primitives import StreamEventType
from copydesk_schemas.progress import ProgressSnapshot


class ProgressStreamEvent(BaseSchema):
    """Single message pushed over the progress stream."""

    type: StreamEventType = Field(..., description="Event type")
    data: ProgressSnapshot | None = Field(
        None, description="Snapshot payload for progress events"
    )
    message: str | None = Field(None, description="Reason for error events")

    @model_validator(mode="after")
    def validate_payload(self) -> ProgressStreamEvent:
        """Ensure payload fields match the event type.

        Returns:
            ProgressStreamEvent: Validated event.

        Raises:
            ValueError: If a progress event lacks data or an error lacks a message.
        """
        if self.type == StreamEventType.PROGRESS and self.data is None:
            raise ValueError("progress events require data")
        if self.type != StreamEventType.PROGRESS and self.data is not None:
            raise ValueError("only progress events carry data")
        if self.type == StreamEventType.ERROR and not self.message:
            raise ValueError("error events require a message")
        return self

    def to_sse(self) -> str:
        """Encode the event as a server-sent events frame.

        Returns:
            str: Frame terminated by a blank line.
        """
        payload = self.model_dump_json(exclude_none=True)
        return f"data: {payload}\n\n"


class BatchEvent(StrEnum):
    """Batch lifecycle log event names."""

    STARTED = "batch_started"
    COMPLETED = "batch_completed"
    LEASE_REJECTED = "batch_lease_rejected"


class ItemEvent(StrEnum):
    """Item lifecycle log event names."""

    STARTED = "item_started"
    COMPLETED = "item_completed"
    FAILED = "item_failed"
    SKIPPED = "item_skipped"
    TRANSLATION_FAILED = "translation_failed"


class BatchStartedData(BaseSchema):
    """Payload for batch start logs."""

    item_count: int = Field(..., ge=0, description="Items selected for the run")
    optimize: bool = Field(..., description="Whether items are rewritten")
    target_langs: list[str] = Field(..., description="Translation targets")


class BatchCompletedData(BaseSchema):
    """Payload for batch completion logs."""

    completed: int = Field(..., ge=0, description="Items that finished")
    failed: int = Field(..., ge=0, description="Items that ended in error")
    skipped: int = Field(..., ge=0, description="Items skipped by the run")
