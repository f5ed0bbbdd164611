"""Core batch pipeline: state machine, gateway, orchestrator, and progress."""

from copydesk_core.aggregator import ProgressAggregator, compute_snapshot
from copydesk_core.catalog import Catalog
from copydesk_core.gateway import TextGateway
from copydesk_core.notifier import ProgressNotifier
from copydesk_core.orchestrator import BatchOrchestrator, BatchRunSummary, RunPlan
from copydesk_core.scheduler import BackgroundRunner
from copydesk_core.signals import ChangeSignal
from copydesk_schemas.version import VERSION

__all__ = [
    "VERSION",
    "BackgroundRunner",
    "BatchOrchestrator",
    "BatchRunSummary",
    "Catalog",
    "ChangeSignal",
    "ProgressAggregator",
    "ProgressNotifier",
    "RunPlan",
    "TextGateway",
    "compute_snapshot",
]
