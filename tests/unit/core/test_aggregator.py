"""Unit tests for progress aggregation."""

from __future__ import annotations

from uuid import uuid4

import pytest

from copydesk_core.aggregator import ProgressAggregator, compute_snapshot
from copydesk_core.ports.orchestrator import OrchestrationError, OrchestrationErrorCode
from copydesk_io.storage import InMemoryRecordStore
from copydesk_schemas.primitives import ItemStatus
from tests.helpers.records import BATCH_ID, build_product, build_ui_string, seed_batch


def test_optimizing_phase_counts_rewritten_items() -> None:
    """One rewritten item out of three reports 33 percent."""
    items = [
        build_product(0, status=ItemStatus.OPTIMIZED),
        build_product(1),
        build_product(2),
    ]

    snapshot = compute_snapshot(items)

    assert snapshot.done == 1
    assert snapshot.total == 3
    assert snapshot.percent == 33
    assert snapshot.counts.optimized == 1
    assert snapshot.counts.pending == 2


def test_translating_phase_counts_items_with_translations() -> None:
    """While translating, done counts items holding a translation."""
    items = [
        build_product(0, status=ItemStatus.TRANSLATING),
        build_product(1, status=ItemStatus.COMPLETED, translations={"da": "Hej"}),
        build_product(2, status=ItemStatus.COMPLETED, translations={"da": "  "}),
    ]

    snapshot = compute_snapshot(items)

    assert snapshot.done == 1
    assert snapshot.percent == 33


def test_final_phase_counts_everything_past_pending() -> None:
    """Without in-flight items, done counts every started item."""
    items = [
        build_product(0, status=ItemStatus.COMPLETED),
        build_product(1, status=ItemStatus.COMPLETED),
        build_product(2, status=ItemStatus.ERROR),
        build_product(3),
    ]

    snapshot = compute_snapshot(items)

    assert snapshot.done == 3
    assert snapshot.percent == 75
    assert snapshot.counts.error == 1


def test_ui_processing_counts_as_optimizing() -> None:
    """UI strings in flight are reported in the optimizing bucket."""
    items = [
        build_ui_string(0, status=ItemStatus.PROCESSING),
        build_ui_string(1, status=ItemStatus.COMPLETED),
    ]

    snapshot = compute_snapshot(items)

    assert snapshot.counts.optimizing == 1
    assert snapshot.done == 1
    assert snapshot.percent == 50



def test_ui_batch_in_flight_reports_completed_share() -> None:
    """A UI string in flight switches the percent to completed over total."""
    items = [
        build_ui_string(0, status=ItemStatus.COMPLETED),
        build_ui_string(1, status=ItemStatus.ERROR),
        build_ui_string(2, status=ItemStatus.PROCESSING),
        build_ui_string(3),
    ]

    in_flight = compute_snapshot(items)
    settled = compute_snapshot(
        [*items[:2], build_ui_string(2, status=ItemStatus.COMPLETED), items[3]]
    )

    assert in_flight.done == 1
    assert in_flight.percent == 25
    assert not in_flight.is_terminal()
    assert settled.done == 3
    assert settled.percent == 75


def test_empty_selection_reports_zero() -> None:
    """No items means zero percent."""
    snapshot = compute_snapshot([])

    assert snapshot.total == 0
    assert snapshot.percent == 0
    assert snapshot.is_terminal()


def test_percent_rounds_half_up() -> None:
    """Two of three done rounds to 67 and one of eight to 13."""
    two_of_three = [
        build_product(0, status=ItemStatus.COMPLETED),
        build_product(1, status=ItemStatus.COMPLETED),
        build_product(2),
    ]
    one_of_eight = [build_product(0, status=ItemStatus.COMPLETED)] + [
        build_product(index) for index in range(1, 8)
    ]

    assert compute_snapshot(two_of_three).percent == 67
    assert compute_snapshot(one_of_eight).percent == 13


async def test_summarize_is_idempotent_and_honors_selection() -> None:
    """Repeated reads agree and selections restrict the counts."""
    store = InMemoryRecordStore()
    items = [
        build_product(0, status=ItemStatus.COMPLETED),
        build_product(1),
        build_product(2),
    ]
    await seed_batch(store, items)
    aggregator = ProgressAggregator(store)

    first = await aggregator.summarize(BATCH_ID)
    second = await aggregator.summarize(BATCH_ID)
    selected = await aggregator.summarize(BATCH_ID, [items[0].id])

    assert first == second
    assert first.percent == 33
    assert selected.total == 1
    assert selected.percent == 100


async def test_summarize_unknown_batch() -> None:
    """Unknown batches raise a not-found orchestration error."""
    aggregator = ProgressAggregator(InMemoryRecordStore())

    with pytest.raises(OrchestrationError) as exc_info:
        await aggregator.summarize(uuid4())

    assert exc_info.value.info.code == OrchestrationErrorCode.BATCH_NOT_FOUND
