"""Detached background tasks for batch runs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from copydesk_schemas.primitives import BatchId

logger = logging.getLogger(__name__)


class BackgroundRunner:
    """Own batch run tasks that outlive the request that started them."""

    def __init__(self) -> None:
        """Initialize an empty runner."""
        self._tasks: dict[BatchId, asyncio.Task[None]] = {}

    def submit(
        self, batch_id: BatchId, work: Coroutine[Any, Any, object]
    ) -> asyncio.Task[None]:
        """Start a detached task for a batch run.

        Args:
            batch_id: Batch the work belongs to.
            work: Coroutine to run.

        Returns:
            asyncio.Task[None]: Scheduled task.
        """
        task = asyncio.create_task(
            self._guard(batch_id, work), name=f"batch-{batch_id}"
        )
        self._tasks[batch_id] = task
        task.add_done_callback(lambda done: self._forget(batch_id, done))
        return task

    def is_active(self, batch_id: BatchId) -> bool:
        """Return whether a run task for the batch is still executing."""
        task = self._tasks.get(batch_id)
        return task is not None and not task.done()

    def active(self) -> list[BatchId]:
        """Return batch ids with executing tasks."""
        return [batch_id for batch_id, task in self._tasks.items() if not task.done()]

    async def wait_idle(self) -> None:
        """Wait until every submitted task has finished."""
        while self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel outstanding tasks and wait for them to unwind."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    def _forget(self, batch_id: BatchId, task: asyncio.Task[None]) -> None:
        if self._tasks.get(batch_id) is task:
            del self._tasks[batch_id]

    async def _guard(
        self, batch_id: BatchId, work: Coroutine[Any, Any, object]
    ) -> None:
        try:
            await work
        except asyncio.CancelledError:
            logger.info("Background run for batch %s cancelled", batch_id)
            raise
        except Exception:
            logger.exception("Background run for batch %s crashed", batch_id)
