"""Unit tests for selection parsing and resolution."""

from __future__ import annotations

from uuid import uuid4

import pytest

from copydesk_core.ports.orchestrator import OrchestrationError, OrchestrationErrorCode
from copydesk_core.selection import (
    parse_selected_indices,
    resolve_indices,
    resolve_item_ids,
    resolve_selection,
)
from copydesk_io.storage import InMemoryRecordStore
from tests.helpers.records import BATCH_ID, build_product, seed_batch


def test_parse_selected_indices() -> None:
    """Comma-separated indices parse and blanks mean everything."""
    assert parse_selected_indices("0, 2,5") == [0, 2, 5]
    assert parse_selected_indices("1,,3,") == [1, 3]
    assert parse_selected_indices(None) is None
    assert parse_selected_indices("  ") is None


def test_parse_selected_indices_rejects_garbage() -> None:
    """Non-numeric tokens are an invalid selection."""
    with pytest.raises(OrchestrationError) as exc_info:
        parse_selected_indices("0,a")

    assert exc_info.value.info.code == OrchestrationErrorCode.INVALID_SELECTION


def test_resolve_indices_skips_out_of_range_and_repeats() -> None:
    """Positions map to ids once, in selection order."""
    ids = [uuid4(), uuid4(), uuid4()]

    assert resolve_indices(ids, [2, 0, 2, 7, -1]) == [ids[2], ids[0]]


def test_resolve_item_ids_drops_non_members() -> None:
    """Ids outside the batch are silently skipped."""
    ids = [uuid4(), uuid4()]
    stranger = uuid4()

    assert resolve_item_ids(ids, [ids[1], stranger, ids[1]]) == [ids[1]]


async def test_resolve_selection_uses_creation_order() -> None:
    """Indices count positions in creation order, not storage order."""
    store = InMemoryRecordStore()
    items = [build_product(2), build_product(0), build_product(1)]
    await seed_batch(store, items)

    resolved = await resolve_selection(store, BATCH_ID, indices=[0, 2])

    assert resolved == [items[1].id, items[0].id]
    assert await resolve_selection(store, BATCH_ID) is None
