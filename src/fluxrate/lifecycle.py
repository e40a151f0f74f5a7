"""Background periodic flushing and its orderly stop."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum

from .batch_queue import BatchQueue
from .debug import DebugLog
from .flusher import Flusher


logger = logging.getLogger(__name__)


class LifecycleState(str, Enum):
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"     # Terminal


class BatchTimer:
    """
    Flushes the queue every `interval` seconds while running.

    stop() returns only once the background task has exited, so no
    periodic flush can start after it.
    """

    def __init__(
        self,
        interval: float,
        queue: BatchQueue,
        flusher: Flusher,
        log: DebugLog | None = None,
    ):
        self.interval = interval
        self.state = LifecycleState.RUNNING
        self._queue = queue
        self._flusher = flusher
        self._log = log or DebugLog()
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def started(self) -> bool:
        return self._task is not None

    def start(self) -> None:
        """Spawn the periodic task. Needs a running event loop."""
        if self._task is not None or self.state != LifecycleState.RUNNING:
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(), name="fluxrate-batch-timer")

    async def _run(self) -> None:
        self._log(f"Batch timer started (interval={self.interval}s)")

        while True:
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
                break
            except asyncio.TimeoutError:
                pass

            if not len(self._queue):
                continue

            try:
                result = await self._flusher.flush()
                self._log(
                    f"Periodic flush: {result.successful} successful, {result.failed} failed"
                )
            except Exception:
                logger.exception("Periodic flush failed")

        self._log("Batch timer stopped")

    async def stop(self) -> None:
        """Signal the periodic task and wait for it to exit."""
        if self.state == LifecycleState.STOPPED:
            return
        self.state = LifecycleState.STOPPING
        self._stop_event.set()
        if self._task is not None:
            await self._task
        self.state = LifecycleState.STOPPED
