"""Resolve caller selections to stable item identifiers."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from copydesk_core.ports.orchestrator import (
    OrchestrationErrorCode,
    orchestration_error,
)
from copydesk_core.ports.storage import RecordStoreProtocol
from copydesk_schemas.primitives import BatchId, ItemId


def parse_selected_indices(raw: str | None) -> list[int] | None:
    """Parse a comma-separated index list from a query parameter.

    Args:
        raw: Raw parameter value such as ``"0,2,5"``.

    Returns:
        list[int] | None: Parsed indices, or None when the whole batch is meant.

    Raises:
        OrchestrationError: If a token is not a non-negative integer.
    """
    if raw is None or not raw.strip():
        return None
    indices: list[int] = []
    for token in raw.split(","):
        token = token.strip()
        if not token:
            continue
        if not token.isdigit():
            raise orchestration_error(
                OrchestrationErrorCode.INVALID_SELECTION,
                "selectedIndices must be comma-separated non-negative integers",
                field="selectedIndices",
                provided=raw,
            )
        indices.append(int(token))
    return indices or None


def resolve_indices(
    ordered_ids: Sequence[ItemId], indices: Iterable[int]
) -> list[ItemId]:
    """Map positions in creation order to item identifiers.

    Positions outside the collection are skipped and repeats are dropped.

    Args:
        ordered_ids: Member ids in creation order.
        indices: Selected positions.

    Returns:
        list[ItemId]: Resolved identifiers in selection order.
    """
    resolved: list[ItemId] = []
    seen: set[ItemId] = set()
    for index in indices:
        if index < 0 or index >= len(ordered_ids):
            continue
        item_id = ordered_ids[index]
        if item_id not in seen:
            seen.add(item_id)
            resolved.append(item_id)
    return resolved


def resolve_item_ids(
    member_ids: Sequence[ItemId], item_ids: Iterable[ItemId]
) -> list[ItemId]:
    """Keep the requested ids that belong to the batch.

    Args:
        member_ids: Batch member ids.
        item_ids: Requested ids.

    Returns:
        list[ItemId]: Member ids in request order, without repeats.
    """
    members = set(member_ids)
    resolved: list[ItemId] = []
    for item_id in item_ids:
        if item_id in members and item_id not in resolved:
            resolved.append(item_id)
    return resolved


async def resolve_selection(
    store: RecordStoreProtocol,
    batch_id: BatchId,
    *,
    indices: Sequence[int] | None = None,
    item_ids: Sequence[ItemId] | None = None,
) -> list[ItemId] | None:
    """Resolve an index or id selection against the batch's current members.

    Args:
        store: Record store.
        batch_id: Batch identifier.
        indices: Positions in creation order.
        item_ids: Explicit identifiers.

    Returns:
        list[ItemId] | None: Resolved ids, or None when the whole batch is meant.
    """
    if indices is None and item_ids is None:
        return None
    members = [item.id for item in await store.list_items_for_batch(batch_id)]
    if indices is not None:
        return resolve_indices(members, indices)
    return resolve_item_ids(members, item_ids or [])
