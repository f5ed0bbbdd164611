"""JSONL log entry schema for pipeline events."""

from __future__ import annotations

from pydantic import Field

from copydesk_schemas.base import BaseSchema
from copydesk_schemas.primitives import (
    BatchId,
    EventName,
    ItemId,
    JsonValue,
    LogLevel,
    Timestamp,
)


class LogEntry(BaseSchema):
    """Single log line in JSONL format."""

    timestamp: Timestamp = Field(
        ..., description="ISO-8601 timestamp for the log entry"
    )
    level: LogLevel = Field(..., description="Log level")
    event: EventName = Field(..., description="Event name")
    batch_id: BatchId = Field(..., description="Batch identifier")
    item_id: ItemId | None = Field(None, description="Item identifier if applicable")
    message: str = Field(..., min_length=1, description="Log message")
    data: dict[str, JsonValue] | None = Field(None, description="Structured event data")
