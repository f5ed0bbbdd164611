"""Primitive types and enums shared across copydesk schemas."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated
from uuid import UUID

from pydantic import Field

ISO_8601_PATTERN = (
    r"^\d{4}-\d{2}-\d{2}T"
    r"\d{2}:\d{2}:\d{2}"
    r"(?:\.\d+)?"
    r"(?:Z|[+-]\d{2}:\d{2})$"
)
LANGUAGE_CODE_PATTERN = r"^[a-z]{2}$"
EVENT_NAME_PATTERN = r"^[a-z][a-z0-9_]*$"

type UploadId = UUID
type BatchId = UUID
type ItemId = UUID
type LeaseToken = Annotated[str, Field(min_length=1)]
type Timestamp = Annotated[str, Field(pattern=ISO_8601_PATTERN)]
type LanguageCode = Annotated[str, Field(pattern=LANGUAGE_CODE_PATTERN)]
type EventName = Annotated[str, Field(pattern=EVENT_NAME_PATTERN)]

type JsonPrimitive = str | int | float | bool | None
type JsonValue = JsonPrimitive | list["JsonValue"] | dict[str, "JsonValue"]


def utc_timestamp() -> str:
    """Return the current UTC time as an ISO-8601 string with a Z suffix.

    Returns:
        str: Timestamp string.
    """
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class JobType(StrEnum):
    """Kinds of rows an upload can carry."""

    PRODUCT_TEXTS = "product_texts"
    UI_STRINGS = "ui_strings"


class BatchStatus(StrEnum):
    """Batch lifecycle status."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"


class ItemStatus(StrEnum):
    """Work item status values for product and UI-string rows."""

    PENDING = "pending"
    OPTIMIZING = "optimizing"
    OPTIMIZED = "optimized"
    TRANSLATING = "translating"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class GatewayMode(StrEnum):
    """Text generation backend mode."""

    LIVE = "live"
    STUB = "stub"


class GatewayOperation(StrEnum):
    """Operations offered by the text gateway."""

    REWRITE = "rewrite"
    TRANSLATE = "translate"


class LogLevel(StrEnum):
    """Log severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class LogSinkType(StrEnum):
    """Supported log sink types."""

    CONSOLE = "console"
    FILE = "file"
    NOOP = "noop"


class StorageBackend(StrEnum):
    """Supported record store backends."""

    MEMORY = "memory"
    FILESYSTEM = "filesystem"


class StreamEventType(StrEnum):
    """Progress stream event types."""

    CONNECTED = "connected"
    PROGRESS = "progress"
    HEARTBEAT = "heartbeat"
    END = "end"
    ERROR = "error"
