"""In-process record store."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from copydesk_core.ports.storage import (
    RecordStoreProtocol,
    build_lease_conflict_error,
    build_not_found_error,
)
from copydesk_io.storage.records import (
    apply_item_updates,
    lease_is_stale,
    order_items,
    select_batch_items,
)
from copydesk_schemas.items import Batch, BatchLease, ProductItem, UIStringItem, Upload
from copydesk_schemas.primitives import (
    BatchId,
    ItemId,
    JsonValue,
    LeaseToken,
    StorageBackend,
    UploadId,
    utc_timestamp,
)

_BACKEND = StorageBackend.MEMORY


class InMemoryRecordStore(RecordStoreProtocol):
    """Record store kept in dictionaries, returning copies on every read."""

    def __init__(self, *, lease_ttl_s: float | None = None) -> None:
        """Initialize empty collections.

        Args:
            lease_ttl_s: Seconds without renewal after which a lease may be
                taken over, or None for leases that never expire.
        """
        self._lease_ttl_s = lease_ttl_s
        self._uploads: dict[UploadId, Upload] = {}
        self._batches: dict[BatchId, Batch] = {}
        self._items: dict[ItemId, ProductItem | UIStringItem] = {}
        self._leases: dict[BatchId, BatchLease] = {}
        self._lock = asyncio.Lock()

    async def save_upload(self, upload: Upload) -> None:
        """Persist or replace an upload record."""
        async with self._lock:
            self._uploads[upload.id] = upload.model_copy(deep=True)

    async def get_upload(self, upload_id: UploadId) -> Upload | None:
        """Load an upload record if present."""
        upload = self._uploads.get(upload_id)
        return upload.model_copy(deep=True) if upload else None

    async def list_uploads(self) -> list[Upload]:
        """List uploads, newest first."""
        uploads = sorted(
            self._uploads.values(), key=lambda upload: upload.created_at, reverse=True
        )
        return [upload.model_copy(deep=True) for upload in uploads]

    async def delete_upload(self, upload_id: UploadId) -> None:
        """Delete an upload with its batches and items.

        Raises:
            StorageError: If the upload does not exist.
        """
        async with self._lock:
            if upload_id not in self._uploads:
                raise build_not_found_error(
                    "delete_upload", upload_id, backend=_BACKEND
                )
            del self._uploads[upload_id]
            for batch_id in [
                batch.id
                for batch in self._batches.values()
                if batch.upload_id == upload_id
            ]:
                del self._batches[batch_id]
                self._leases.pop(batch_id, None)
            for item_id in [
                item.id for item in self._items.values() if item.upload_id == upload_id
            ]:
                del self._items[item_id]

    async def save_batch(self, batch: Batch) -> None:
        """Persist or replace a batch record."""
        async with self._lock:
            self._batches[batch.id] = batch.model_copy(deep=True)

    async def get_batch(self, batch_id: BatchId) -> Batch | None:
        """Load a batch record if present."""
        batch = self._batches.get(batch_id)
        return batch.model_copy(deep=True) if batch else None

    async def list_batches(self, upload_id: UploadId | None = None) -> list[Batch]:
        """List batches, newest first, optionally for one upload."""
        batches = [
            batch
            for batch in self._batches.values()
            if upload_id is None or batch.upload_id == upload_id
        ]
        batches.sort(key=lambda batch: batch.created_at, reverse=True)
        return [batch.model_copy(deep=True) for batch in batches]

    async def save_items(self, items: Sequence[ProductItem | UIStringItem]) -> None:
        """Persist or replace work items."""
        async with self._lock:
            for item in items:
                self._items[item.id] = item.model_copy(deep=True)

    async def find_item(self, item_id: ItemId) -> ProductItem | UIStringItem | None:
        """Load a work item if present."""
        item = self._items.get(item_id)
        return item.model_copy(deep=True) if item else None

    async def update_item_fields(
        self, item_id: ItemId, fields: dict[str, JsonValue]
    ) -> ProductItem | UIStringItem:
        """Apply field updates to one item in a single write.

        Raises:
            StorageError: If the item is missing or the update is invalid.
        """
        async with self._lock:
            item = self._items.get(item_id)
            if item is None:
                raise build_not_found_error(
                    "update_item_fields", item_id, backend=_BACKEND
                )
            updated = apply_item_updates(item, fields, _BACKEND)
            self._items[item_id] = updated
            return updated.model_copy(deep=True)

    async def list_items_for_upload(
        self, upload_id: UploadId
    ) -> list[ProductItem | UIStringItem]:
        """List items of an upload in creation order."""
        items = [item for item in self._items.values() if item.upload_id == upload_id]
        return [item.model_copy(deep=True) for item in order_items(items)]

    async def list_items_for_batch(
        self, batch_id: BatchId, item_ids: Sequence[ItemId] | None = None
    ) -> list[ProductItem | UIStringItem]:
        """List member items of a batch, optionally restricted to ids.

        Raises:
            StorageError: If the batch does not exist.
        """
        batch = self._batches.get(batch_id)
        if batch is None:
            raise build_not_found_error(
                "list_items_for_batch", batch_id, backend=_BACKEND
            )
        selected = select_batch_items(batch, self._items, item_ids)
        return [item.model_copy(deep=True) for item in selected]

    async def acquire_lease(self, batch_id: BatchId, token: LeaseToken) -> BatchLease:
        """Acquire the exclusive run lease for a batch.

        Raises:
            StorageError: If the batch is missing or a live run holds the lease.
        """
        async with self._lock:
            if batch_id not in self._batches:
                raise build_not_found_error("acquire_lease", batch_id, backend=_BACKEND)
            held = self._leases.get(batch_id)
            if held is not None and not lease_is_stale(held, self._lease_ttl_s):
                raise build_lease_conflict_error(batch_id, backend=_BACKEND)
            lease = BatchLease(
                batch_id=batch_id, token=token, acquired_at=utc_timestamp()
            )
            self._leases[batch_id] = lease
            return lease

    async def renew_lease(self, batch_id: BatchId, token: LeaseToken) -> None:
        """Refresh a lease held by token; leases taken over are left alone."""
        async with self._lock:
            lease = self._leases.get(batch_id)
            if lease is not None and lease.token == token:
                self._leases[batch_id] = lease.model_copy(
                    update={"renewed_at": utc_timestamp()}
                )

    async def release_lease(self, batch_id: BatchId, token: LeaseToken) -> None:
        """Release a batch lease held by token; other holders are left alone."""
        async with self._lock:
            lease = self._leases.get(batch_id)
            if lease is not None and lease.token == token:
                del self._leases[batch_id]
