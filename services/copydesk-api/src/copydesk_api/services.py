"""Wiring of the stores, gateway, and pipeline components used by the API."""

from __future__ import annotations

from dataclasses import dataclass

from copydesk_core.aggregator import ProgressAggregator
from copydesk_core.catalog import Catalog
from copydesk_core.config import AppSettings
from copydesk_core.gateway import TextGateway
from copydesk_core.notifier import ProgressNotifier
from copydesk_core.orchestrator import BatchOrchestrator
from copydesk_core.ports.llm import ChatRuntimeProtocol
from copydesk_core.ports.orchestrator import LogSinkProtocol
from copydesk_core.ports.storage import LogStoreProtocol, RecordStoreProtocol
from copydesk_core.scheduler import BackgroundRunner
from copydesk_core.signals import ChangeSignal
from copydesk_io.storage import (
    FileSystemLogStore,
    build_log_sink,
    build_record_store,
)
from copydesk_llm import OpenAICompatibleRuntime
from copydesk_schemas.config import AppConfig


@dataclass
class AppServices:
    """Components shared by every request of one application instance."""

    config: AppConfig
    store: RecordStoreProtocol
    gateway: TextGateway
    catalog: Catalog
    orchestrator: BatchOrchestrator
    aggregator: ProgressAggregator
    notifier: ProgressNotifier
    runner: BackgroundRunner
    signal: ChangeSignal


def build_services(
    settings: AppSettings,
    *,
    store: RecordStoreProtocol | None = None,
    runtime: ChatRuntimeProtocol | None = None,
    log_sink: LogSinkProtocol | None = None,
) -> AppServices:
    """Build the application components from settings.

    Args:
        settings: Loaded settings.
        store: Optional record store overriding the configured backend.
        runtime: Optional chat runtime overriding the httpx runtime.
        log_sink: Optional structured log sink overriding configuration.

    Returns:
        AppServices: Wired components.
    """
    config = settings.build_app_config()
    glossary = settings.load_glossary()
    record_store = store or build_record_store(config.storage)
    if log_sink is None:
        log_store: LogStoreProtocol | None = (
            FileSystemLogStore(config.log_path) if config.log_path else None
        )
        log_sink = build_log_sink(config.logging, log_store)
    chat_runtime = runtime or OpenAICompatibleRuntime(config.gateway.base_url)
    gateway = TextGateway(
        config.gateway,
        chat_runtime,
        api_key=settings.api_key(),
        glossary=glossary,
    )
    signal = ChangeSignal()
    aggregator = ProgressAggregator(record_store)
    return AppServices(
        config=config,
        store=record_store,
        gateway=gateway,
        catalog=Catalog(record_store),
        orchestrator=BatchOrchestrator(
            record_store,
            gateway,
            log_sink=log_sink,
            signal=signal,
            glossary=glossary,
        ),
        aggregator=aggregator,
        notifier=ProgressNotifier(aggregator, config.notifier, signal=signal),
        runner=BackgroundRunner(),
        signal=signal,
    )
