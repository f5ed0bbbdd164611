"""Runtime settings and environment loading utilities."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from copydesk_schemas.config import (
    DEFAULT_BASE_URL,
    DEFAULT_LEASE_TTL_S,
    DEFAULT_MODEL,
    AppConfig,
    GatewayConfig,
    LoggingConfig,
    LogSinkConfig,
    NotifierConfig,
    StorageConfig,
)
from copydesk_schemas.glossary import Glossary, GlossaryEntry
from copydesk_schemas.primitives import GatewayMode, LogSinkType, StorageBackend

_ENV_PATH = Path(".env")


class AppSettings(BaseSettings):
    """Settings loaded from environment variables or .env files."""

    model_config = SettingsConfigDict(
        env_file=_ENV_PATH,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Text generation backend
    openai_api_key: SecretStr | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_mode: GatewayMode = Field(default=GatewayMode.STUB, alias="OPENAI_MODE")
    openai_base_url: str = Field(default=DEFAULT_BASE_URL, alias="OPENAI_BASE_URL")
    openai_model_optimize: str = Field(
        default=DEFAULT_MODEL, alias="OPENAI_MODEL_OPTIMIZE"
    )
    openai_model_translate: str = Field(
        default=DEFAULT_MODEL, alias="OPENAI_MODEL_TRANSLATE"
    )
    openai_timeout_s: float = Field(default=45.0, alias="OPENAI_TIMEOUT_S")

    # Storage and observation
    storage_backend: StorageBackend = Field(
        default=StorageBackend.MEMORY, alias="COPYDESK_STORAGE_BACKEND"
    )
    data_dir: str | None = Field(default=None, alias="COPYDESK_DATA_DIR")
    lease_ttl_s: float | None = Field(
        default=DEFAULT_LEASE_TTL_S, alias="COPYDESK_LEASE_TTL_S"
    )
    poll_interval_s: float = Field(default=2.0, alias="COPYDESK_POLL_INTERVAL_S")
    heartbeat_interval_s: float = Field(
        default=30.0, alias="COPYDESK_HEARTBEAT_INTERVAL_S"
    )
    use_change_signal: bool = Field(default=True, alias="COPYDESK_USE_CHANGE_SIGNAL")

    # Logging and glossary
    log_level: str = Field(default="info", alias="COPYDESK_LOG_LEVEL")
    log_file: str | None = Field(default=None, alias="COPYDESK_LOG_FILE")
    glossary_path: str | None = Field(default=None, alias="COPYDESK_GLOSSARY_PATH")

    def api_key(self) -> str | None:
        """Return the backend credential, treating blank values as absent."""
        if self.openai_api_key is None:
            return None
        value = self.openai_api_key.get_secret_value().strip()
        return value or None

    def resolve_mode(self) -> GatewayMode:
        """Return live only when a credential is set and live mode is requested.

        Returns:
            GatewayMode: Effective gateway mode.
        """
        if self.api_key() is not None and self.openai_mode == GatewayMode.LIVE:
            return GatewayMode.LIVE
        return GatewayMode.STUB

    def build_gateway_config(self) -> GatewayConfig:
        """Map settings into the gateway configuration schema.

        Returns:
            GatewayConfig: Gateway configuration.
        """
        return GatewayConfig(
            mode=self.resolve_mode(),
            base_url=self.openai_base_url,
            model_optimize=self.openai_model_optimize,
            model_translate=self.openai_model_translate,
            timeout_s=self.openai_timeout_s,
        )

    def build_notifier_config(self) -> NotifierConfig:
        """Map settings into the notifier configuration schema.

        Returns:
            NotifierConfig: Notifier configuration.
        """
        return NotifierConfig(
            poll_interval_s=self.poll_interval_s,
            heartbeat_interval_s=self.heartbeat_interval_s,
            use_change_signal=self.use_change_signal,
        )

    def build_app_config(self) -> AppConfig:
        """Assemble the full application configuration.

        Returns:
            AppConfig: Resolved configuration.
        """
        sinks = [LogSinkConfig(type=LogSinkType.CONSOLE)]
        if self.log_file:
            sinks.append(LogSinkConfig(type=LogSinkType.FILE))
        return AppConfig(
            gateway=self.build_gateway_config(),
            notifier=self.build_notifier_config(),
            storage=StorageConfig(
                backend=self.storage_backend,
                root_dir=self.data_dir,
                lease_ttl_s=self.lease_ttl_s,
            ),
            logging=LoggingConfig(sinks=sinks),
            log_path=self.log_file,
        )

    def load_glossary(self) -> list[GlossaryEntry]:
        """Load glossary entries from the configured JSON file.

        Returns:
            list[GlossaryEntry]: Entries, empty when no file is configured.
        """
        if not self.glossary_path:
            return []
        payload = json.loads(Path(self.glossary_path).read_text(encoding="utf-8"))
        if isinstance(payload, list):
            payload = {"entries": payload}
        return Glossary.model_validate(payload).entries


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return cached settings loaded from the environment."""
    return AppSettings()
