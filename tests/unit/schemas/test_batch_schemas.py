"""Unit tests for item, batch, request, and progress schemas."""

from __future__ import annotations

from uuid import uuid4

import pytest
from pydantic import TypeAdapter, ValidationError

from copydesk_schemas.events import ProgressStreamEvent
from copydesk_schemas.items import Batch, ProductItem, UIStringItem, WorkItem
from copydesk_schemas.primitives import (
    ItemStatus,
    JobType,
    StreamEventType,
    utc_timestamp,
)
from copydesk_schemas.progress import ProgressSnapshot, StatusCounts
from copydesk_schemas.requests import (
    CreateBatchRequest,
    CreateUploadRequest,
    ProcessRequest,
)

CREATED_AT = "2026-03-01T09:00:00Z"


def _snapshot(**counts: int) -> ProgressSnapshot:
    status_counts = StatusCounts(**counts)
    return ProgressSnapshot(
        done=0, total=status_counts.total(), percent=0, counts=status_counts
    )


def test_work_item_adapter_selects_variant_by_kind() -> None:
    """The kind tag decides which item model is built."""
    adapter = TypeAdapter(WorkItem)
    payload = {
        "kind": "ui_string",
        "id": str(uuid4()),
        "upload_id": str(uuid4()),
        "sequence": 0,
        "created_at": CREATED_AT,
        "key": "nav.home",
        "values": {"sv-SE": "Hem"},
    }

    item = adapter.validate_python(payload)

    assert isinstance(item, UIStringItem)
    assert item.status == ItemStatus.PENDING


def test_product_item_defaults_to_pending_without_results() -> None:
    """New product items carry no optimized text or translations."""
    item = ProductItem(
        id=uuid4(),
        upload_id=uuid4(),
        sequence=3,
        created_at=CREATED_AT,
        source_name="Termos",
    )

    assert item.status == ItemStatus.PENDING
    assert item.optimized_text is None
    assert item.translations == {}


def test_batch_rejects_duplicate_members() -> None:
    """Batch membership cannot list an item twice."""
    item_id = uuid4()
    with pytest.raises(ValidationError, match="unique"):
        Batch(
            id=uuid4(),
            upload_id=uuid4(),
            name="Dubbel",
            job_type=JobType.PRODUCT_TEXTS,
            item_ids=[item_id, item_id],
            created_at=CREATED_AT,
        )


def test_snapshot_counts_must_sum_to_total() -> None:
    """A snapshot whose buckets disagree with its total is invalid."""
    with pytest.raises(ValidationError, match="sum to total"):
        ProgressSnapshot(
            done=0, total=3, percent=0, counts=StatusCounts(pending=2)
        )


def test_snapshot_with_no_items_must_report_zero_percent() -> None:
    """An empty selection never reports progress."""
    with pytest.raises(ValidationError):
        ProgressSnapshot(done=0, total=0, percent=10, counts=StatusCounts())


def test_snapshot_terminal_only_without_waiting_or_in_flight_items() -> None:
    """Pending, optimizing, and translating items keep a snapshot open."""
    assert _snapshot(completed=2, error=1).is_terminal()
    assert _snapshot().is_terminal()
    assert not _snapshot(completed=2, pending=1).is_terminal()
    assert not _snapshot(optimizing=1).is_terminal()
    assert not _snapshot(translating=1, completed=1).is_terminal()


def test_stream_event_encodes_as_data_frame() -> None:
    """Stream events are framed as a data line followed by a blank line."""
    event = ProgressStreamEvent(type=StreamEventType.HEARTBEAT)

    assert event.to_sse() == 'data: {"type":"heartbeat"}\n\n'


def test_progress_stream_event_requires_snapshot() -> None:
    """Progress events without a snapshot are rejected."""
    with pytest.raises(ValidationError):
        ProgressStreamEvent(type=StreamEventType.PROGRESS)


def test_error_stream_event_requires_message() -> None:
    """Error events must explain the failure."""
    with pytest.raises(ValidationError):
        ProgressStreamEvent(type=StreamEventType.ERROR)


def test_process_request_rejects_two_selection_forms() -> None:
    """Indices and ids cannot be combined in one request."""
    with pytest.raises(ValidationError, match="either indices or item_ids"):
        ProcessRequest(optimize=True, indices=[0], item_ids=[uuid4()])


def test_process_request_dedupes_target_languages() -> None:
    """Repeated languages collapse while keeping first-seen order."""
    request = ProcessRequest(target_langs=["da", "no", "da", "en"])

    assert request.target_langs == ["da", "no", "en"]


def test_process_request_rejects_non_lowercase_language_codes() -> None:
    """Target languages are two lowercase letters."""
    with pytest.raises(ValidationError):
        ProcessRequest(target_langs=["DA"])


def test_create_upload_rejects_rows_of_other_kind() -> None:
    """Product uploads cannot carry UI-string rows."""
    with pytest.raises(ValidationError, match="ui_strings"):
        CreateUploadRequest(
            name="Blandat",
            job_type=JobType.PRODUCT_TEXTS,
            ui_strings=[{"key": "nav.home", "values": {"sv-SE": "Hem"}}],
        )


def test_create_batch_request_defaults() -> None:
    """A batch request without selection means every upload item."""
    request = CreateBatchRequest(name="Alla", target_langs=["da", "da"])

    assert request.item_ids is None
    assert request.indices is None
    assert request.target_langs == ["da"]


def test_utc_timestamp_uses_z_suffix() -> None:
    """Generated timestamps end with Z."""
    assert utc_timestamp().endswith("Z")
