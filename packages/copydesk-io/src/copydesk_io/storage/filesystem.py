"""Filesystem-backed record and log stores."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from json import JSONDecodeError
from pathlib import Path
from typing import TypeVar
from uuid import UUID

from pydantic import ValidationError

from copydesk_core.ports.storage import (
    LogStoreProtocol,
    RecordStoreProtocol,
    StorageError,
    StorageErrorCode,
    StorageErrorDetails,
    StorageErrorInfo,
    build_lease_conflict_error,
    build_not_found_error,
)
from copydesk_io.storage.records import (
    WORK_ITEM_ADAPTER,
    apply_item_updates,
    lease_is_stale,
    order_items,
    select_batch_items,
)
from copydesk_schemas.base import BaseSchema
from copydesk_schemas.items import Batch, BatchLease, ProductItem, UIStringItem, Upload
from copydesk_schemas.logs import LogEntry
from copydesk_schemas.primitives import (
    BatchId,
    ItemId,
    JsonValue,
    LeaseToken,
    StorageBackend,
    UploadId,
    utc_timestamp,
)

ModelT = TypeVar("ModelT", bound=BaseSchema)

_BACKEND = StorageBackend.FILESYSTEM


class FileSystemRecordStore(RecordStoreProtocol):
    """Record store keeping one JSON document per record on disk."""

    def __init__(self, base_dir: str, *, lease_ttl_s: float | None = None) -> None:
        """Initialize the record store.

        Args:
            base_dir: Root directory for record files.
            lease_ttl_s: Seconds without renewal after which a lease file left
                by a crashed run may be taken over, or None to never expire.
        """
        self._lease_ttl_s = lease_ttl_s
        self._base_dir = Path(base_dir)
        self._upload_dir = self._base_dir / "uploads"
        self._batch_dir = self._base_dir / "batches"
        self._item_dir = self._base_dir / "items"
        self._lease_dir = self._base_dir / "leases"
        self._lock = asyncio.Lock()

    async def save_upload(self, upload: Upload) -> None:
        """Persist or replace an upload record."""
        await self._write(self._upload_dir / f"{upload.id}.json", upload, "save_upload")

    async def get_upload(self, upload_id: UploadId) -> Upload | None:
        """Load an upload record if present."""
        return await self._read(
            self._upload_dir / f"{upload_id}.json", Upload, "get_upload"
        )

    async def list_uploads(self) -> list[Upload]:
        """List uploads, newest first."""
        uploads = await self._read_all(self._upload_dir, Upload, "list_uploads")
        return sorted(uploads, key=lambda upload: upload.created_at, reverse=True)

    async def delete_upload(self, upload_id: UploadId) -> None:
        """Delete an upload with its batches and items.

        Raises:
            StorageError: If the upload does not exist or files cannot be removed.
        """
        async with self._lock:
            path = self._upload_dir / f"{upload_id}.json"
            if not await asyncio.to_thread(path.exists):
                raise build_not_found_error(
                    "delete_upload", upload_id, backend=_BACKEND
                )
            batches = await self.list_batches(upload_id)
            items = await self.list_items_for_upload(upload_id)
            targets = [path]
            for batch in batches:
                targets.append(self._batch_dir / f"{batch.id}.json")
                targets.append(self._lease_dir / f"{batch.id}.lease")
            targets.extend(self._item_dir / f"{item.id}.json" for item in items)
            try:
                await asyncio.to_thread(_unlink_all, targets)
            except OSError as exc:
                raise _io_error("delete_upload", path, exc) from exc

    async def save_batch(self, batch: Batch) -> None:
        """Persist or replace a batch record."""
        await self._write(self._batch_dir / f"{batch.id}.json", batch, "save_batch")

    async def get_batch(self, batch_id: BatchId) -> Batch | None:
        """Load a batch record if present."""
        return await self._read(
            self._batch_dir / f"{batch_id}.json", Batch, "get_batch"
        )

    async def list_batches(self, upload_id: UploadId | None = None) -> list[Batch]:
        """List batches, newest first, optionally for one upload."""
        batches = await self._read_all(self._batch_dir, Batch, "list_batches")
        if upload_id is not None:
            batches = [batch for batch in batches if batch.upload_id == upload_id]
        return sorted(batches, key=lambda batch: batch.created_at, reverse=True)

    async def save_items(self, items: Sequence[ProductItem | UIStringItem]) -> None:
        """Persist or replace work items."""
        for item in items:
            await self._write(self._item_dir / f"{item.id}.json", item, "save_items")

    async def find_item(self, item_id: ItemId) -> ProductItem | UIStringItem | None:
        """Load a work item if present.

        Raises:
            StorageError: If the item file cannot be read or parsed.
        """
        path = self._item_dir / f"{item_id}.json"
        if not await asyncio.to_thread(path.exists):
            return None
        try:
            return await asyncio.to_thread(_read_item, path)
        except (ValidationError, JSONDecodeError, ValueError) as exc:
            raise _parse_error("find_item", path, exc) from exc
        except OSError as exc:
            raise _io_error("find_item", path, exc) from exc

    async def update_item_fields(
        self, item_id: ItemId, fields: dict[str, JsonValue]
    ) -> ProductItem | UIStringItem:
        """Apply field updates to one item in a single write.

        Raises:
            StorageError: If the item is missing or the update is invalid.
        """
        async with self._lock:
            item = await self.find_item(item_id)
            if item is None:
                raise build_not_found_error(
                    "update_item_fields", item_id, backend=_BACKEND
                )
            updated = apply_item_updates(item, fields, _BACKEND)
            await self._write(
                self._item_dir / f"{item_id}.json", updated, "update_item_fields"
            )
            return updated

    async def list_items_for_upload(
        self, upload_id: UploadId
    ) -> list[ProductItem | UIStringItem]:
        """List items of an upload in creation order."""
        items = await self._read_items()
        return order_items([item for item in items if item.upload_id == upload_id])

    async def list_items_for_batch(
        self, batch_id: BatchId, item_ids: Sequence[ItemId] | None = None
    ) -> list[ProductItem | UIStringItem]:
        """List member items of a batch, optionally restricted to ids.

        Raises:
            StorageError: If the batch does not exist.
        """
        batch = await self.get_batch(batch_id)
        if batch is None:
            raise build_not_found_error(
                "list_items_for_batch", batch_id, backend=_BACKEND
            )
        wanted = batch.item_ids if item_ids is None else item_ids
        items_by_id: dict[ItemId, ProductItem | UIStringItem] = {}
        for item_id in wanted:
            item = await self.find_item(item_id)
            if item is not None:
                items_by_id[item.id] = item
        return select_batch_items(batch, items_by_id, item_ids)

    async def acquire_lease(self, batch_id: BatchId, token: LeaseToken) -> BatchLease:
        """Acquire the exclusive run lease by creating the lease file.

        Raises:
            StorageError: If the batch is missing or a live run holds the lease.
        """
        if await self.get_batch(batch_id) is None:
            raise build_not_found_error("acquire_lease", batch_id, backend=_BACKEND)
        lease = BatchLease(batch_id=batch_id, token=token, acquired_at=utc_timestamp())
        path = self._lease_dir / f"{batch_id}.lease"
        async with self._lock:
            held = await self._read(path, BatchLease, "acquire_lease")
            if held is not None and lease_is_stale(held, self._lease_ttl_s):
                try:
                    await asyncio.to_thread(path.unlink, missing_ok=True)
                except OSError as exc:
                    raise _io_error("acquire_lease", path, exc) from exc
            try:
                await asyncio.to_thread(_create_exclusive, path, lease)
            except FileExistsError as exc:
                raise build_lease_conflict_error(batch_id, backend=_BACKEND) from exc
            except OSError as exc:
                raise _io_error("acquire_lease", path, exc) from exc
        return lease

    async def renew_lease(self, batch_id: BatchId, token: LeaseToken) -> None:
        """Rewrite the lease file with a fresh renewal time when token owns it.

        Raises:
            StorageError: If the lease file cannot be read or written.
        """
        path = self._lease_dir / f"{batch_id}.lease"
        async with self._lock:
            lease = await self._read(path, BatchLease, "renew_lease")
            if lease is None or lease.token != token:
                return
            renewed = lease.model_copy(update={"renewed_at": utc_timestamp()})
            await self._write(path, renewed, "renew_lease")

    async def release_lease(self, batch_id: BatchId, token: LeaseToken) -> None:
        """Remove the lease file when it belongs to token.

        Raises:
            StorageError: If the lease file cannot be read or removed.
        """
        path = self._lease_dir / f"{batch_id}.lease"
        lease = await self._read(path, BatchLease, "release_lease")
        if lease is None or lease.token != token:
            return
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as exc:
            raise _io_error("release_lease", path, exc) from exc

    async def _write(self, path: Path, payload: BaseSchema, operation: str) -> None:
        try:
            await asyncio.to_thread(_write_json_file, path, payload)
        except OSError as exc:
            raise _io_error(operation, path, exc) from exc

    async def _read(
        self, path: Path, model: type[ModelT], operation: str
    ) -> ModelT | None:
        if not await asyncio.to_thread(path.exists):
            return None
        try:
            return await asyncio.to_thread(_read_json_model, path, model)
        except (ValidationError, JSONDecodeError, ValueError) as exc:
            raise _parse_error(operation, path, exc) from exc
        except OSError as exc:
            raise _io_error(operation, path, exc) from exc

    async def _read_all(
        self, directory: Path, model: type[ModelT], operation: str
    ) -> list[ModelT]:
        paths = await asyncio.to_thread(_list_json_files, directory)
        records: list[ModelT] = []
        for path in paths:
            record = await self._read(path, model, operation)
            if record is not None:
                records.append(record)
        return records

    async def _read_items(self) -> list[ProductItem | UIStringItem]:
        paths = await asyncio.to_thread(_list_json_files, self._item_dir)
        items: list[ProductItem | UIStringItem] = []
        for path in paths:
            item = await self.find_item(UUID(path.stem))
            if item is not None:
                items.append(item)
        return items


class FileSystemLogStore(LogStoreProtocol):
    """Append-only JSONL log file."""

    def __init__(self, path: str) -> None:
        """Initialize the log store.

        Args:
            path: JSONL file path.
        """
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        """Log file path."""
        return self._path

    async def append_log(self, entry: LogEntry) -> None:
        """Append a log entry as one JSON line.

        Raises:
            StorageError: If the file cannot be written.
        """
        async with self._lock:
            try:
                await asyncio.to_thread(_append_jsonl, self._path, entry)
            except OSError as exc:
                raise _io_error("append_log", self._path, exc) from exc


def _write_json_file(path: Path, payload: BaseSchema) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_suffix(path.suffix + ".tmp")
    temp_path.write_text(payload.model_dump_json(), encoding="utf-8")
    temp_path.replace(path)


def _read_json_model(path: Path, model: type[ModelT]) -> ModelT:
    return model.model_validate_json(path.read_text(encoding="utf-8"))


def _read_item(path: Path) -> ProductItem | UIStringItem:
    return WORK_ITEM_ADAPTER.validate_json(path.read_text(encoding="utf-8"))


def _list_json_files(directory: Path) -> list[Path]:
    if not directory.exists():
        return []
    return sorted(directory.glob("*.json"))


def _append_jsonl(path: Path, payload: BaseSchema) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as handle:
        handle.write(payload.model_dump_json() + "\n")


def _create_exclusive(path: Path, lease: BatchLease) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "x", encoding="utf-8") as handle:
        handle.write(lease.model_dump_json())


def _unlink_all(paths: Sequence[Path]) -> None:
    for path in paths:
        path.unlink(missing_ok=True)


def _io_error(operation: str, path: Path, exc: OSError) -> StorageError:
    return StorageError(
        StorageErrorInfo(
            code=StorageErrorCode.IO_ERROR,
            message=str(exc) or "I/O error",
            details=StorageErrorDetails(
                operation=operation, backend=_BACKEND, path=str(path)
            ),
        )
    )


def _parse_error(operation: str, path: Path, exc: Exception) -> StorageError:
    return StorageError(
        StorageErrorInfo(
            code=StorageErrorCode.SERIALIZATION_ERROR,
            message=f"Record at {path} could not be parsed",
            details=StorageErrorDetails(
                operation=operation,
                backend=_BACKEND,
                path=str(path),
                reason=str(exc),
            ),
        )
    )
