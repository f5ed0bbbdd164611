"""Batch run, progress, and event stream routes."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status
from fastapi.responses import StreamingResponse

from copydesk_api.dependencies import Services
from copydesk_api.responses import success
from copydesk_core.ports.orchestrator import OrchestrationErrorCode, orchestration_error
from copydesk_core.selection import parse_selected_indices, resolve_selection
from copydesk_schemas.items import Batch
from copydesk_schemas.primitives import ItemId
from copydesk_schemas.progress import ProgressSnapshot
from copydesk_schemas.requests import ProcessRequest, RegenerateRequest
from copydesk_schemas.responses import (
    ApiResponse,
    BatchDetail,
    BatchOverview,
    ProcessAccepted,
)

router = APIRouter(prefix="/batches", tags=["batches"])

SelectedIndices = Annotated[str | None, Query(alias="selectedIndices")]

_STREAM_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.get("")
async def list_batches(services: Services) -> ApiResponse[list[BatchOverview]]:
    """List batches, newest first, with the status of each member item."""
    return success(await services.catalog.list_batches())


@router.get("/{batch_id}")
async def get_batch(batch_id: UUID, services: Services) -> ApiResponse[BatchDetail]:
    """Return a batch with its member items in creation order."""
    batch = await _require_batch(services, batch_id)
    items = await services.store.list_items_for_batch(batch.id)
    return success(BatchDetail(batch=batch, items=items))


@router.post("/{batch_id}/process", status_code=status.HTTP_202_ACCEPTED)
async def process_batch(
    batch_id: UUID, request: ProcessRequest, services: Services
) -> ApiResponse[ProcessAccepted]:
    """Accept a run and continue it in the background.

    The lease is taken before the response is sent, so a second request for a
    batch that is still running is rejected with 409.
    """
    plan = await services.orchestrator.prepare_run(batch_id, request)
    services.runner.submit(plan.batch_id, services.orchestrator.execute(plan))
    return success(
        ProcessAccepted(batch_id=plan.batch_id, items_count=len(plan.item_ids))
    )


@router.post("/{batch_id}/regenerate", status_code=status.HTTP_202_ACCEPTED)
async def regenerate_batch(
    batch_id: UUID, request: RegenerateRequest, services: Services
) -> ApiResponse[ProcessAccepted]:
    """Accept a rewrite-only run over already processed items."""
    plan = await services.orchestrator.prepare_regenerate(batch_id, request.item_ids)
    services.runner.submit(plan.batch_id, services.orchestrator.execute(plan))
    return success(
        ProcessAccepted(batch_id=plan.batch_id, items_count=len(plan.item_ids))
    )


@router.get("/{batch_id}/progress")
async def batch_progress(
    batch_id: UUID, services: Services, selected_indices: SelectedIndices = None
) -> ApiResponse[ProgressSnapshot]:
    """Return a fresh progress snapshot for the batch or a selection of it."""
    selection = await _resolve_query_selection(services, batch_id, selected_indices)
    return success(await services.aggregator.summarize(batch_id, selection))


@router.get("/{batch_id}/events")
async def batch_events(
    batch_id: UUID, services: Services, selected_indices: SelectedIndices = None
) -> StreamingResponse:
    """Open a server-sent event stream of progress snapshots."""
    selection = await _resolve_query_selection(services, batch_id, selected_indices)

    async def stream() -> AsyncIterator[str]:
        async with aclosing(services.notifier.stream(batch_id, selection)) as events:
            async for event in events:
                yield event.to_sse()

    return StreamingResponse(
        stream(), media_type="text/event-stream", headers=_STREAM_HEADERS
    )


async def _require_batch(services: Services, batch_id: UUID) -> Batch:
    batch = await services.store.get_batch(batch_id)
    if batch is None:
        raise orchestration_error(
            OrchestrationErrorCode.BATCH_NOT_FOUND,
            "Batch not found",
            batch_id=batch_id,
        )
    return batch


async def _resolve_query_selection(
    services: Services, batch_id: UUID, raw: str | None
) -> list[ItemId] | None:
    indices = parse_selected_indices(raw)
    batch = await _require_batch(services, batch_id)
    return await resolve_selection(services.store, batch.id, indices=indices)
