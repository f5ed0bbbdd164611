"""Long-lived progress stream driven by polling persisted state."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Callable, Sequence

from copydesk_core.aggregator import ProgressAggregator
from copydesk_core.ports.orchestrator import OrchestrationError
from copydesk_core.ports.storage import StorageError
from copydesk_core.signals import ChangeSignal
from copydesk_schemas.config import NotifierConfig
from copydesk_schemas.events import ProgressStreamEvent
from copydesk_schemas.primitives import BatchId, ItemId, StreamEventType
from copydesk_schemas.progress import ProgressSnapshot

logger = logging.getLogger(__name__)


class ProgressNotifier:
    """Push connected, progress, heartbeat, end, and error events for a batch."""

    def __init__(
        self,
        aggregator: ProgressAggregator,
        config: NotifierConfig | None = None,
        *,
        signal: ChangeSignal | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the notifier.

        Args:
            aggregator: Snapshot source.
            config: Poll and heartbeat timing.
            signal: Optional change hub that wakes polls early.
            clock: Monotonic clock in seconds.
        """
        self._aggregator = aggregator
        self._config = config or NotifierConfig()
        self._signal = signal if self._config.use_change_signal else None
        self._clock = clock

    async def stream(
        self, batch_id: BatchId, selection: Sequence[ItemId] | None = None
    ) -> AsyncIterator[ProgressStreamEvent]:
        """Yield stream events until the selection is finished or a read fails.

        Closing the generator (for example on client disconnect) stops both
        timers and releases the change subscription.

        Args:
            batch_id: Batch identifier.
            selection: Item ids to observe, or None for the whole batch.

        Yields:
            ProgressStreamEvent: Next event to push.
        """
        wakeup = self._signal.subscribe(batch_id) if self._signal else None
        try:
            yield ProgressStreamEvent(type=StreamEventType.CONNECTED)
            snapshot = await self._read(batch_id, selection)
            if snapshot is None:
                yield _error_event("Progress monitoring failed")
                return
            yield _progress_event(snapshot)

            poll_s = self._config.poll_interval_s
            heartbeat_s = self._config.heartbeat_interval_s
            now = self._clock()
            next_poll = now + poll_s
            next_heartbeat = now + heartbeat_s
            while True:
                timeout = max(0.0, min(next_poll, next_heartbeat) - self._clock())
                woken = await self._wait(timeout, wakeup)
                now = self._clock()
                if now >= next_heartbeat:
                    yield ProgressStreamEvent(type=StreamEventType.HEARTBEAT)
                    next_heartbeat = now + heartbeat_s
                if not woken and now < next_poll:
                    continue
                snapshot = await self._read(batch_id, selection)
                if snapshot is None:
                    yield _error_event("Progress monitoring failed")
                    return
                yield _progress_event(snapshot)
                if snapshot.is_terminal():
                    yield ProgressStreamEvent(type=StreamEventType.END)
                    return
                next_poll = self._clock() + poll_s
        finally:
            if self._signal is not None and wakeup is not None:
                self._signal.unsubscribe(batch_id, wakeup)
            logger.debug("Progress stream for batch %s closed", batch_id)

    async def _read(
        self, batch_id: BatchId, selection: Sequence[ItemId] | None
    ) -> ProgressSnapshot | None:
        try:
            return await self._aggregator.summarize(batch_id, selection)
        except (OrchestrationError, StorageError) as exc:
            logger.warning("Progress read for batch %s failed: %s", batch_id, exc)
            return None

    async def _wait(self, timeout: float, wakeup: asyncio.Event | None) -> bool:
        if wakeup is None:
            await asyncio.sleep(timeout)
            return False
        try:
            async with asyncio.timeout(timeout):
                await wakeup.wait()
        except TimeoutError:
            return False
        wakeup.clear()
        return True


def _progress_event(snapshot: ProgressSnapshot) -> ProgressStreamEvent:
    return ProgressStreamEvent(type=StreamEventType.PROGRESS, data=snapshot)


def _error_event(message: str) -> ProgressStreamEvent:
    return ProgressStreamEvent(type=StreamEventType.ERROR, message=message)
