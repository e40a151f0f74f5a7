"""Lock-guarded buffer of events waiting to be flushed."""

from __future__ import annotations

import asyncio

from .events import TrackEventParams


class BatchQueue:
    """
    Ordered buffer of pending events.

    The raw list is never handed out. The lock is held only for the
    append or the drain itself, never across a network call.
    """

    def __init__(self):
        self._buffer: list[TrackEventParams] = []
        self._lock = asyncio.Lock()

    async def enqueue(self, event: TrackEventParams) -> int:
        """Append an event; returns the queue length right after."""
        async with self._lock:
            self._buffer.append(event)
            return len(self._buffer)

    async def drain_all(self) -> list[TrackEventParams]:
        """Atomically take every queued event, leaving the queue empty."""
        async with self._lock:
            if not self._buffer:
                return []
            batch = self._buffer.copy()
            self._buffer.clear()
            return batch

    def __len__(self) -> int:
        return len(self._buffer)
