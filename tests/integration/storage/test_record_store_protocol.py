"""BDD integration tests for filesystem record store protocol compliance."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from pytest_bdd import given, scenarios, then, when

from copydesk_core.ports.storage import (
    RecordStoreProtocol,
    StorageError,
    StorageErrorCode,
)
from copydesk_io.storage import FileSystemRecordStore
from copydesk_schemas.items import ProductItem
from tests.helpers.records import BATCH_ID, UPLOAD_ID, build_product, seed_batch

pytestmark = pytest.mark.integration

# Link feature file
scenarios("../features/storage/record_store.feature")


class RecordStoreContext:
    """Context object for record store BDD scenarios."""

    data_dir: Path | None = None
    store: FileSystemRecordStore | None = None
    items: list[ProductItem] | None = None
    first_token: str | None = None


# --- Background steps ---


@given("an empty data directory", target_fixture="ctx")
def given_empty_data_dir(tmp_path: Path) -> RecordStoreContext:
    """Create an empty data directory.

    Returns:
        RecordStoreContext with the directory set.
    """
    ctx = RecordStoreContext()
    ctx.data_dir = tmp_path / "data"
    return ctx


@given("a FileSystemRecordStore instance")
def given_record_store(ctx: RecordStoreContext) -> None:
    """Create a FileSystemRecordStore over the data directory."""
    assert ctx.data_dir is not None
    ctx.store = FileSystemRecordStore(str(ctx.data_dir))


@given("a saved batch")
def given_saved_batch(ctx: RecordStoreContext) -> None:
    """Store an upload with one product and a batch holding it."""
    assert ctx.store is not None
    ctx.items = [build_product(0)]
    asyncio.run(seed_batch(ctx.store, ctx.items))


# --- Protocol ---


@then("the store implements RecordStoreProtocol")
def then_implements_protocol(ctx: RecordStoreContext) -> None:
    """Assert the store satisfies the runtime protocol check."""
    assert isinstance(ctx.store, RecordStoreProtocol)


# --- Ordering ---


@when("I save an upload with three products in reverse order")
def when_save_reverse_products(ctx: RecordStoreContext) -> None:
    """Build products whose save order differs from their sequence."""
    ctx.items = [build_product(2), build_product(1), build_product(0)]


@when("I save a batch holding every product")
def when_save_batch(ctx: RecordStoreContext) -> None:
    """Persist the upload, items, and batch."""
    assert ctx.store is not None
    assert ctx.items is not None
    asyncio.run(seed_batch(ctx.store, ctx.items))


@then("the batch items are listed by sequence")
def then_items_by_sequence(ctx: RecordStoreContext) -> None:
    """Assert listing follows creation order."""
    assert ctx.store is not None
    items = asyncio.run(ctx.store.list_items_for_batch(BATCH_ID))
    assert [item.sequence for item in items] == [0, 1, 2]


# --- Leases ---


@when("a first run acquires the lease")
def when_first_run_leases(ctx: RecordStoreContext) -> None:
    """Acquire the batch lease for a first run."""
    assert ctx.store is not None
    ctx.first_token = "first-run"
    asyncio.run(ctx.store.acquire_lease(BATCH_ID, ctx.first_token))


@then("a second lease attempt fails with a conflict")
def then_second_lease_conflicts(ctx: RecordStoreContext) -> None:
    """Assert a competing acquisition is rejected."""
    assert ctx.store is not None
    with pytest.raises(StorageError) as exc_info:
        asyncio.run(ctx.store.acquire_lease(BATCH_ID, "second-run"))
    assert exc_info.value.info.code == StorageErrorCode.CONFLICT


@then("the lease can be taken again after release")
def then_lease_reacquired(ctx: RecordStoreContext) -> None:
    """Assert releasing the lease frees the batch."""
    assert ctx.store is not None
    assert ctx.first_token is not None
    asyncio.run(ctx.store.release_lease(BATCH_ID, ctx.first_token))
    lease = asyncio.run(ctx.store.acquire_lease(BATCH_ID, "second-run"))
    assert lease.token == "second-run"


# --- Deletion ---


@when("I delete the upload")
def when_delete_upload(ctx: RecordStoreContext) -> None:
    """Delete the upload and everything under it."""
    assert ctx.store is not None
    asyncio.run(ctx.store.delete_upload(UPLOAD_ID))


@then("no record files remain")
def then_no_files_remain(ctx: RecordStoreContext) -> None:
    """Assert the data directory holds no JSON records."""
    assert ctx.data_dir is not None
    assert list(ctx.data_dir.rglob("*.json")) == []
