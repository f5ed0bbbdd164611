"""Unit tests for upload and batch creation."""

from __future__ import annotations

from uuid import uuid4

import pytest

from copydesk_core.catalog import Catalog
from copydesk_core.ports.orchestrator import OrchestrationError, OrchestrationErrorCode
from copydesk_io.storage import InMemoryRecordStore
from copydesk_schemas.items import ProductItem, UIStringItem
from copydesk_schemas.primitives import BatchStatus, ItemStatus, JobType
from copydesk_schemas.requests import (
    CreateBatchRequest,
    CreateUploadRequest,
    ProductRow,
    UIStringRow,
)


def _product_upload(count: int = 3) -> CreateUploadRequest:
    return CreateUploadRequest(
        name="Höstkatalog",
        job_type=JobType.PRODUCT_TEXTS,
        products=[
            ProductRow(name=f"Produkt {index}", description="Mjuk filt.")
            for index in range(count)
        ],
    )


async def test_create_upload_stores_pending_products() -> None:
    """Rows become pending items in row order."""
    store = InMemoryRecordStore()
    catalog = Catalog(store, clock=lambda: "2026-04-01T08:00:00Z")

    upload = await catalog.create_upload(_product_upload())

    items = await store.list_items_for_upload(upload.id)
    assert upload.total_count == 3
    assert [item.sequence for item in items] == [0, 1, 2]
    assert all(isinstance(item, ProductItem) for item in items)
    assert {item.status for item in items} == {ItemStatus.PENDING}
    assert items[0].created_at == "2026-04-01T08:00:00Z"


async def test_create_upload_stores_ui_strings() -> None:
    """UI rows keep their locale values."""
    store = InMemoryRecordStore()
    request = CreateUploadRequest(
        name="Knappar",
        job_type=JobType.UI_STRINGS,
        ui_strings=[UIStringRow(key="button.save", values={"sv-SE": "Spara"})],
    )

    upload = await Catalog(store).create_upload(request)

    (item,) = await store.list_items_for_upload(upload.id)
    assert isinstance(item, UIStringItem)
    assert item.values == {"sv-SE": "Spara"}


async def test_create_batch_keeps_creation_order() -> None:
    """Membership follows creation order whatever the request order."""
    store = InMemoryRecordStore()
    catalog = Catalog(store)
    upload = await catalog.create_upload(_product_upload())
    items = await store.list_items_for_upload(upload.id)

    batch = await catalog.create_batch(
        upload.id,
        CreateBatchRequest(name="Urval", indices=[2, 0, 2], target_langs=["da"]),
    )

    assert batch.item_ids == [items[0].id, items[2].id]
    assert batch.status == BatchStatus.PENDING
    assert batch.job_type == JobType.PRODUCT_TEXTS
    assert batch.target_langs == ["da"]


async def test_create_batch_without_selection_takes_everything() -> None:
    """No selection means every upload item."""
    store = InMemoryRecordStore()
    catalog = Catalog(store)
    upload = await catalog.create_upload(_product_upload(2))

    batch = await catalog.create_batch(upload.id, CreateBatchRequest(name="Allt"))

    assert len(batch.item_ids) == 2


async def test_create_batch_rejects_empty_membership() -> None:
    """A selection matching nothing is refused."""
    store = InMemoryRecordStore()
    catalog = Catalog(store)
    upload = await catalog.create_upload(_product_upload(1))

    with pytest.raises(OrchestrationError) as exc_info:
        await catalog.create_batch(
            upload.id, CreateBatchRequest(name="Tomt", item_ids=[uuid4()])
        )

    assert exc_info.value.info.code == OrchestrationErrorCode.INVALID_SELECTION


async def test_unknown_upload_is_reported() -> None:
    """Batch creation and deletion require an existing upload."""
    catalog = Catalog(InMemoryRecordStore())

    with pytest.raises(OrchestrationError) as create_info:
        await catalog.create_batch(uuid4(), CreateBatchRequest(name="X"))
    with pytest.raises(OrchestrationError) as delete_info:
        await catalog.delete_upload(uuid4())

    assert create_info.value.info.code == OrchestrationErrorCode.UPLOAD_NOT_FOUND
    assert delete_info.value.info.code == OrchestrationErrorCode.UPLOAD_NOT_FOUND


async def test_delete_upload_cascades() -> None:
    """Deleting an upload removes its batches and items."""
    store = InMemoryRecordStore()
    catalog = Catalog(store)
    upload = await catalog.create_upload(_product_upload(2))
    batch = await catalog.create_batch(upload.id, CreateBatchRequest(name="Allt"))

    await catalog.delete_upload(upload.id)

    assert await store.get_upload(upload.id) is None
    assert await store.get_batch(batch.id) is None
    assert await store.find_item(batch.item_ids[0]) is None


async def test_ui_upload_summary_counts_filled_locales() -> None:
    """UI strings count a language when any matching locale holds text."""
    store = InMemoryRecordStore()
    catalog = Catalog(store)
    upload = await catalog.create_upload(
        CreateUploadRequest(
            name="Appsträngar",
            job_type=JobType.UI_STRINGS,
            ui_strings=[
                UIStringRow(key="save", values={"sv-SE": "Spara", "da-DK": "Gem"}),
                UIStringRow(key="cancel", values={"sv-SE": "Avbryt", "da-dk": " "}),
                UIStringRow(key="close", values={"sv-SE": "Stäng"}),
            ],
        )
    )
    await catalog.create_batch(
        upload.id, CreateBatchRequest(name="UI", target_langs=["da", "fi"])
    )
    items = await store.list_items_for_upload(upload.id)
    await store.update_item_fields(items[0].id, {"status": "completed"})

    summary = await catalog.summarize_upload(upload.id)

    assert summary.total_rows == 3
    assert summary.optimized_count == 1
    assert summary.counts.pending == 2
    assert summary.translation_languages == ["da", "fi"]
    assert summary.translation_counts == {"da": 1, "fi": 0}


async def test_summary_rejects_malformed_languages() -> None:
    """Language filters must be two-letter lowercase codes."""
    catalog = Catalog(InMemoryRecordStore())
    upload = await catalog.create_upload(_product_upload(1))

    with pytest.raises(OrchestrationError) as exc_info:
        await catalog.summarize_upload(upload.id, ["en-US"])

    assert exc_info.value.info.code == OrchestrationErrorCode.INVALID_REQUEST


async def test_list_batches_reports_member_statuses_newest_first() -> None:
    """Every batch is listed with the status of each member."""
    store = InMemoryRecordStore()
    stamps = iter(f"2026-04-01T08:00:0{second}Z" for second in range(5))
    catalog = Catalog(store, clock=lambda: next(stamps))
    upload = await catalog.create_upload(_product_upload(2))
    older = await catalog.create_batch(upload.id, CreateBatchRequest(name="A"))
    newer = await catalog.create_batch(
        upload.id, CreateBatchRequest(name="B", indices=[1])
    )
    await store.update_item_fields(
        newer.item_ids[0], {"status": "error", "error_message": "Boom"}
    )

    overviews = await catalog.list_batches()

    assert [overview.batch.id for overview in overviews] == [newer.id, older.id]
    assert [entry.status for entry in overviews[0].items] == [ItemStatus.ERROR]
    assert [entry.status for entry in overviews[1].items] == [
        ItemStatus.PENDING,
        ItemStatus.ERROR,
    ]
