"""In-process change notifications between the orchestrator and observers."""

from __future__ import annotations

import asyncio
from collections import defaultdict

from copydesk_schemas.primitives import BatchId


class ChangeSignal:
    """Per-batch wakeup hub; observers still poll when nothing is published."""

    def __init__(self) -> None:
        """Initialize an empty hub."""
        self._subscribers: defaultdict[BatchId, set[asyncio.Event]] = defaultdict(set)

    def subscribe(self, batch_id: BatchId) -> asyncio.Event:
        """Register an observer and return the event it waits on.

        Args:
            batch_id: Batch to observe.

        Returns:
            asyncio.Event: Event set on each publish for the batch.
        """
        event = asyncio.Event()
        self._subscribers[batch_id].add(event)
        return event

    def unsubscribe(self, batch_id: BatchId, event: asyncio.Event) -> None:
        """Remove an observer registration.

        Args:
            batch_id: Observed batch.
            event: Event returned by subscribe.
        """
        subscribers = self._subscribers.get(batch_id)
        if subscribers is None:
            return
        subscribers.discard(event)
        if not subscribers:
            del self._subscribers[batch_id]

    def publish(self, batch_id: BatchId) -> None:
        """Wake every observer of a batch.

        Args:
            batch_id: Batch whose items changed.
        """
        for event in self._subscribers.get(batch_id, ()):
            event.set()

    def subscriber_count(self, batch_id: BatchId) -> int:
        """Return how many observers are registered for a batch."""
        return len(self._subscribers.get(batch_id, ()))
