"""Record helpers shared by the record store adapters."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime

from pydantic import TypeAdapter, ValidationError

from copydesk_core.ports.storage import (
    StorageError,
    StorageErrorCode,
    StorageErrorDetails,
    StorageErrorInfo,
)
from copydesk_schemas.items import (
    Batch,
    BatchLease,
    ProductItem,
    UIStringItem,
    WorkItem,
)
from copydesk_schemas.primitives import ItemId, JsonValue, StorageBackend

WORK_ITEM_ADAPTER: TypeAdapter[ProductItem | UIStringItem] = TypeAdapter(WorkItem)

_IMMUTABLE_FIELDS = frozenset({"id", "kind", "upload_id", "sequence", "created_at"})


def apply_item_updates(
    item: ProductItem | UIStringItem,
    fields: Mapping[str, JsonValue],
    backend: StorageBackend,
) -> ProductItem | UIStringItem:
    """Return a validated copy of an item with field updates applied.

    Args:
        item: Current item.
        fields: Field updates.
        backend: Backend name for error details.

    Returns:
        ProductItem | UIStringItem: Updated item.

    Raises:
        StorageError: If a field is unknown, immutable, or fails validation.
    """
    invalid = [
        name
        for name in fields
        if name not in type(item).model_fields or name in _IMMUTABLE_FIELDS
    ]
    if invalid:
        raise _validation_error(item.id, f"Cannot update fields: {invalid}", backend)
    try:
        return type(item).model_validate({**item.model_dump(), **fields})
    except ValidationError as exc:
        raise _validation_error(item.id, str(exc), backend) from exc


def order_items(
    items: Sequence[ProductItem | UIStringItem],
) -> list[ProductItem | UIStringItem]:
    """Sort items by creation time, then by row position.

    Args:
        items: Items in any order.

    Returns:
        list[ProductItem | UIStringItem]: Items in creation order.
    """
    return sorted(items, key=lambda item: (item.created_at, item.sequence))


def select_batch_items(
    batch: Batch,
    items_by_id: Mapping[ItemId, ProductItem | UIStringItem],
    item_ids: Sequence[ItemId] | None,
) -> list[ProductItem | UIStringItem]:
    """Pick batch members, either all in creation order or the requested ids.

    Requested ids outside the batch membership or missing from the store are
    skipped.

    Args:
        batch: Batch record.
        items_by_id: Items available in the store.
        item_ids: Requested ids, or None for the whole batch.

    Returns:
        list[ProductItem | UIStringItem]: Selected items.
    """
    if item_ids is None:
        members = [
            items_by_id[item_id] for item_id in batch.item_ids if item_id in items_by_id
        ]
        return order_items(members)
    membership = set(batch.item_ids)
    selected: list[ProductItem | UIStringItem] = []
    seen: set[ItemId] = set()
    for item_id in item_ids:
        if item_id in seen or item_id not in membership:
            continue
        item = items_by_id.get(item_id)
        if item is not None:
            seen.add(item_id)
            selected.append(item)
    return selected


def lease_is_stale(
    lease: BatchLease, ttl_s: float | None, now: datetime | None = None
) -> bool:
    """Return whether a lease went unrenewed for longer than the TTL.

    Args:
        lease: Persisted lease.
        ttl_s: Staleness bound in seconds, or None for leases that never expire.
        now: Reference time, the current UTC time when omitted.

    Returns:
        bool: True if another run may take the lease over.
    """
    if ttl_s is None:
        return False
    last_seen = datetime.fromisoformat(lease.renewed_at or lease.acquired_at)
    age = (now or datetime.now(UTC)) - last_seen
    return age.total_seconds() >= ttl_s


def _validation_error(
    item_id: ItemId, message: str, backend: StorageBackend
) -> StorageError:
    return StorageError(
        StorageErrorInfo(
            code=StorageErrorCode.VALIDATION_ERROR,
            message=message,
            details=StorageErrorDetails(
                operation="update_item_fields",
                record_id=str(item_id),
                backend=backend,
            ),
        )
    )
