"""Phase-aware progress aggregation over persisted item state."""

from __future__ import annotations

from collections.abc import Sequence

from copydesk_core.ports.orchestrator import (
    OrchestrationErrorCode,
    orchestration_error,
)
from copydesk_core.ports.storage import RecordStoreProtocol
from copydesk_schemas.items import ProductItem, UIStringItem
from copydesk_schemas.primitives import BatchId, ItemId, ItemStatus
from copydesk_schemas.progress import ProgressSnapshot, StatusCounts

# UI-string items report their in-flight state in the optimizing bucket, so a
# UI batch with a string in flight reports completed over total as its percent.
_BUCKETS: dict[ItemStatus, str] = {
    ItemStatus.PENDING: "pending",
    ItemStatus.OPTIMIZING: "optimizing",
    ItemStatus.PROCESSING: "optimizing",
    ItemStatus.OPTIMIZED: "optimized",
    ItemStatus.TRANSLATING: "translating",
    ItemStatus.COMPLETED: "completed",
    ItemStatus.ERROR: "error",
}


def compute_snapshot(items: Sequence[ProductItem | UIStringItem]) -> ProgressSnapshot:
    """Count items per status and compute a phase-dependent percent.

    While anything is optimizing or optimized, done counts rewritten items.
    Otherwise, while anything is translating, done counts items holding at
    least one non-empty translation. Otherwise done counts every item that
    has left pending.

    Args:
        items: Selected items in their current persisted state.

    Returns:
        ProgressSnapshot: Snapshot of the selection.
    """
    tally = dict.fromkeys(_BUCKETS.values(), 0)
    for item in items:
        tally[_BUCKETS[ItemStatus(item.status)]] += 1
    counts = StatusCounts(**tally)
    total = len(items)
    if counts.optimizing > 0 or counts.optimized > 0:
        done = counts.optimized + counts.completed
    elif counts.translating > 0:
        done = sum(1 for item in items if _has_translation(item))
    else:
        done = total - counts.pending
    return ProgressSnapshot(
        done=done, total=total, percent=_percent(done, total), counts=counts
    )


def _has_translation(item: ProductItem | UIStringItem) -> bool:
    if not isinstance(item, ProductItem):
        return False
    return any(text.strip() for text in item.translations.values())


def _percent(done: int, total: int) -> int:
    if total == 0:
        return 0
    # Half-up rounding of 100 * done / total in integer arithmetic.
    return (200 * done + total) // (2 * total)


class ProgressAggregator:
    """Summarize progress for a batch selection by re-reading the store."""

    def __init__(self, store: RecordStoreProtocol) -> None:
        """Initialize the aggregator.

        Args:
            store: Record store holding item state.
        """
        self._store = store

    async def summarize(
        self, batch_id: BatchId, selection: Sequence[ItemId] | None = None
    ) -> ProgressSnapshot:
        """Compute a fresh snapshot for the selected items.

        Args:
            batch_id: Batch identifier.
            selection: Item ids to include, or None for the whole batch.

        Returns:
            ProgressSnapshot: Current snapshot.

        Raises:
            OrchestrationError: If the batch does not exist.
        """
        batch = await self._store.get_batch(batch_id)
        if batch is None:
            raise orchestration_error(
                OrchestrationErrorCode.BATCH_NOT_FOUND,
                "Batch not found",
                batch_id=batch_id,
            )
        items = await self._store.list_items_for_batch(batch_id, selection)
        return compute_snapshot(items)
