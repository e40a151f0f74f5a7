"""Drains the batch queue and sends the drained events concurrently."""

from __future__ import annotations

import asyncio
import logging

from .batch_queue import BatchQueue
from .debug import DebugLog
from .errors import TrackError
from .events import BatchError, BatchResult, TrackEventParams
from .sender import EventSender


logger = logging.getLogger(__name__)


class Flusher:
    """
    Flush engine.

    Each drained event gets its own task; no event waits on another.
    Per-event failures land in the BatchResult and are never raised.
    """

    def __init__(self, queue: BatchQueue, sender: EventSender, log: DebugLog | None = None):
        self._queue = queue
        self._sender = sender
        self._log = log or DebugLog()

    async def flush(self, cancel: asyncio.Event | None = None) -> BatchResult:
        """
        Drain the queue and send everything in it.

        Returns only after every send has finished. `cancel` reaches each
        send; sends still in flight when it fires count as failed.
        """
        batch = await self._queue.drain_all()
        if not batch:
            return BatchResult()

        self._log(f"Flushing batch of {len(batch)} events")

        result = BatchResult()
        result_lock = asyncio.Lock()

        async def send_one(event: TrackEventParams) -> None:
            try:
                await self._sender.send(event, cancel)
            except Exception as e:
                if not isinstance(e, TrackError):
                    logger.error(f"Unexpected error sending event: {e!r}")
                async with result_lock:
                    result.failed += 1
                    result.errors.append(BatchError(event=event, error=e))
            else:
                async with result_lock:
                    result.successful += 1

        await asyncio.gather(*(send_one(event) for event in batch))

        self._log(f"Batch complete: {result.successful} successful, {result.failed} failed")
        return result
