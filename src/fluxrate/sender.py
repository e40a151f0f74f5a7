"""Single-event delivery with bounded retry and exponential backoff."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Coroutine, TypeVar

from .debug import DebugLog
from .errors import TrackCancelled, TrackError
from .events import TrackEventParams, TrackEventResponse


T = TypeVar("T")

SendFunc = Callable[[TrackEventParams], Coroutine[Any, Any, TrackEventResponse]]

BASE_DELAY_MS = 1000
MAX_DELAY_MS = 10000


def backoff_delay(attempt: int) -> float:
    """
    Seconds to wait after failed attempt number `attempt` (1-indexed).

    1s, 2s, 4s, 8s, then capped at 10s.
    """
    return min(BASE_DELAY_MS * 2 ** (attempt - 1), MAX_DELAY_MS) / 1000


def cancel_after(seconds: float) -> asyncio.Event:
    """Cancellation signal that fires after a deadline."""
    signal = asyncio.Event()
    asyncio.get_running_loop().call_later(seconds, signal.set)
    return signal


async def run_cancellable(
    coro: Coroutine[Any, Any, T],
    cancel: asyncio.Event | None,
    reason: str = "Send cancelled",
) -> T:
    """
    Await `coro` unless `cancel` fires first.

    When the signal wins, the work is cancelled and TrackCancelled is raised.
    """
    if cancel is None:
        return await coro
    if cancel.is_set():
        coro.close()
        raise TrackCancelled(reason)

    work = asyncio.ensure_future(coro)
    waiter = asyncio.ensure_future(cancel.wait())
    try:
        done, _ = await asyncio.wait(
            {work, waiter}, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        for task in (work, waiter):
            if not task.done():
                task.cancel()

    if work in done:
        return work.result()

    # Let the abandoned work unwind before reporting
    await asyncio.gather(work, return_exceptions=True)
    raise TrackCancelled(reason)


class EventSender:
    """
    Performs one logical "send this event" operation.

    Up to `max_attempts` attempts; failed attempts (other than the last)
    are followed by a backoff wait. A cancellation signal aborts the
    current attempt or wait and ends the retries.
    """

    def __init__(
        self,
        send: SendFunc,
        max_attempts: int = 1,
        sleep: Callable[[float], Coroutine[Any, Any, None]] = asyncio.sleep,
        log: DebugLog | None = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._send = send
        self.max_attempts = max_attempts
        self._sleep = sleep
        self._log = log or DebugLog()

    async def send(
        self,
        event: TrackEventParams,
        cancel: asyncio.Event | None = None,
    ) -> TrackEventResponse:
        """
        Deliver an event.

        Returns:
            The confirmed record

        Raises:
            TrackCancelled: the signal fired
            TrackError: the last failure once attempts are exhausted
        """
        last_error: TrackError | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                return await run_cancellable(
                    self._send(event),
                    cancel,
                    f"Send cancelled during attempt {attempt}/{self.max_attempts}",
                )
            except TrackCancelled:
                raise
            except TrackError as e:
                last_error = e
                self._log(f"Attempt {attempt}/{self.max_attempts} failed: {e}")

            if attempt < self.max_attempts:
                delay = backoff_delay(attempt)
                self._log(f"Retrying in {delay:g}s...")
                await run_cancellable(
                    self._sleep(delay),
                    cancel,
                    f"Send cancelled while waiting to retry (after attempt {attempt})",
                )

        assert last_error is not None
        raise last_error
