"""Configuration schemas for the gateway, notifier, storage, and logging."""

from __future__ import annotations

from urllib.parse import urlparse

from pydantic import Field, field_validator, model_validator

from copydesk_schemas.base import BaseSchema
from copydesk_schemas.primitives import GatewayMode, LogSinkType, StorageBackend

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_LEASE_TTL_S = 900.0


class LogSinkConfig(BaseSchema):
    """Configuration for a single log sink."""

    type: LogSinkType = Field(..., description="Log sink type (console|file|noop)")

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: object) -> LogSinkType:
        if isinstance(value, LogSinkType):
            return value
        if isinstance(value, str):
            return LogSinkType(value)
        return value  # type: ignore[return-value]


class LoggingConfig(BaseSchema):
    """Logging configuration for batch runs."""

    sinks: list[LogSinkConfig] = Field(
        ..., min_length=1, description="Log sinks to enable"
    )

    @model_validator(mode="after")
    def validate_sink_types(self) -> LoggingConfig:
        """Ensure log sink types are unique.

        Returns:
            LoggingConfig: Validated logging configuration.

        Raises:
            ValueError: If sink types are duplicated.
        """
        sink_types = [sink.type for sink in self.sinks]
        if len(set(sink_types)) != len(sink_types):
            raise ValueError("log sinks must not contain duplicates")
        return self


class RetryConfig(BaseSchema):
    """Retry policy for live gateway requests."""

    max_attempts: int = Field(3, ge=1, description="Total attempts per call")
    backoff_ms: int = Field(400, ge=0, description="Delay before the first retry")
    jitter_ms: int = Field(100, ge=0, description="Upper bound of random jitter")

    def delay_s(self, attempt: int, jitter: float) -> float:
        """Return the delay before retrying after a failed attempt.

        Args:
            attempt: 1-based number of the attempt that just failed.
            jitter: Random fraction in [0, 1) scaling the jitter bound.

        Returns:
            float: Delay in seconds.
        """
        base_ms = self.backoff_ms * (2 ** (attempt - 1))
        return (base_ms + jitter * self.jitter_ms) / 1000


class GatewayConfig(BaseSchema):
    """Text generation gateway configuration."""

    mode: GatewayMode = Field(GatewayMode.STUB, description="Resolved backend mode")
    base_url: str = Field(
        DEFAULT_BASE_URL, min_length=1, description="OpenAI-compatible base URL"
    )
    model_optimize: str = Field(
        DEFAULT_MODEL, min_length=1, description="Model used for rewrites"
    )
    model_translate: str = Field(
        DEFAULT_MODEL, min_length=1, description="Model used for translations"
    )
    timeout_s: float = Field(45.0, gt=0, description="Per-attempt timeout")
    max_tokens: int = Field(900, ge=1, description="Completion token limit")
    temperature_optimize: float = Field(
        0.2, ge=0, le=2, description="Sampling temperature for rewrites"
    )
    temperature_translate: float = Field(
        0.0, ge=0, le=2, description="Sampling temperature for translations"
    )
    retry: RetryConfig = Field(
        default_factory=RetryConfig, description="Retry policy"
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        """Ensure base URL uses http/https with a host.

        Args:
            value: Raw base URL string.

        Returns:
            str: Base URL without a trailing slash.

        Raises:
            ValueError: If the URL is missing scheme/host.
        """
        parsed = urlparse(value)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(
                "base_url must be an http/https URL with host "
                "(for localhost include http://)"
            )
        return value.rstrip("/")


class NotifierConfig(BaseSchema):
    """Progress stream timing configuration."""

    poll_interval_s: float = Field(2.0, gt=0, description="Snapshot poll interval")
    heartbeat_interval_s: float = Field(
        30.0, gt=0, description="Heartbeat interval"
    )
    use_change_signal: bool = Field(
        True, description="Wake early when the orchestrator publishes a change"
    )

    @model_validator(mode="after")
    def validate_intervals(self) -> NotifierConfig:
        """Ensure heartbeats are less frequent than polls.

        Returns:
            NotifierConfig: Validated notifier configuration.

        Raises:
            ValueError: If the heartbeat interval does not exceed the poll interval.
        """
        if self.heartbeat_interval_s <= self.poll_interval_s:
            raise ValueError("heartbeat_interval_s must exceed poll_interval_s")
        return self


class StorageConfig(BaseSchema):
    """Record store configuration."""

    backend: StorageBackend = Field(
        StorageBackend.MEMORY, description="Record store backend"
    )
    root_dir: str | None = Field(None, description="Data directory for filesystem")
    lease_ttl_s: float | None = Field(
        DEFAULT_LEASE_TTL_S,
        ge=0,
        description="Seconds without renewal after which a lease is abandoned",
    )

    @model_validator(mode="after")
    def validate_root_dir(self) -> StorageConfig:
        """Require a data directory for the filesystem backend.

        Returns:
            StorageConfig: Validated storage configuration.

        Raises:
            ValueError: If the filesystem backend has no root directory.
        """
        if self.backend == StorageBackend.FILESYSTEM and not self.root_dir:
            raise ValueError("root_dir is required for the filesystem backend")
        return self


class AppConfig(BaseSchema):
    """Resolved application configuration."""

    gateway: GatewayConfig = Field(
        default_factory=GatewayConfig, description="Gateway settings"
    )
    notifier: NotifierConfig = Field(
        default_factory=NotifierConfig, description="Progress stream settings"
    )
    storage: StorageConfig = Field(
        default_factory=StorageConfig, description="Record store settings"
    )
    logging: LoggingConfig = Field(
        default_factory=lambda: LoggingConfig(sinks=[LogSinkConfig(type="console")]),
        description="Structured log sinks",
    )
    log_path: str | None = Field(None, description="JSONL path for the file sink")
