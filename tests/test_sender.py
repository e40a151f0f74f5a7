"""Tests for single-event delivery with retry."""

import asyncio

import pytest

from fluxrate import APIError, TrackCancelled, TrackEventParams, TransportError
from fluxrate.events import TrackEventResponse
from fluxrate.sender import EventSender, backoff_delay, cancel_after, run_cancellable


EVENT = TrackEventParams(meter_token="mtr_1", customer_external_id="user_1", quantity=1)
RECORD = TrackEventResponse(
    id="evt_1",
    customer_id="cus_1",
    meter_id="mtr_1",
    quantity="1.00",
    timestamp="2024-01-15T10:30:00Z",
    created_at="2024-01-15T10:30:00Z",
)


class FlakySend:
    """Fails the first `failures` calls, then succeeds."""

    def __init__(self, failures: int, error=None):
        self.failures = failures
        self.error = error or APIError("Failed to track event: 500 Internal Server Error - boom", 500)
        self.calls = 0

    async def __call__(self, event):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return RECORD


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class TestBackoff:
    def test_delay_sequence(self):
        assert [backoff_delay(a) for a in range(1, 6)] == [1.0, 2.0, 4.0, 8.0, 10.0]

    def test_capped(self):
        assert backoff_delay(6) == 10.0
        assert backoff_delay(50) == 10.0


class TestRetry:
    @pytest.mark.asyncio
    async def test_success_first_try(self):
        send = FlakySend(0)
        sleep = RecordingSleep()
        sender = EventSender(send, max_attempts=3, sleep=sleep)

        assert await sender.send(EVENT) == RECORD
        assert send.calls == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self):
        send = FlakySend(2)
        sleep = RecordingSleep()
        sender = EventSender(send, max_attempts=5, sleep=sleep)

        assert await sender.send(EVENT) == RECORD
        assert send.calls == 3
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_exhausted_raises_last_error(self):
        send = FlakySend(100)
        sleep = RecordingSleep()
        sender = EventSender(send, max_attempts=5, sleep=sleep)

        with pytest.raises(APIError, match="boom"):
            await sender.send(EVENT)

        assert send.calls == 5
        # No wait after the last attempt
        assert sleep.delays == [1.0, 2.0, 4.0, 8.0]

    @pytest.mark.asyncio
    async def test_single_attempt(self):
        send = FlakySend(1, TransportError("Failed to send request: refused"))
        sleep = RecordingSleep()
        sender = EventSender(send, max_attempts=1, sleep=sleep)

        with pytest.raises(TransportError):
            await sender.send(EVENT)
        assert send.calls == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_client_errors_are_retried(self):
        send = FlakySend(1, APIError("Failed to track event: 400 Bad Request - bad", 400))
        sender = EventSender(send, max_attempts=2, sleep=RecordingSleep())

        assert await sender.send(EVENT) == RECORD
        assert send.calls == 2

    def test_invalid_attempts(self):
        with pytest.raises(ValueError):
            EventSender(FlakySend(0), max_attempts=0)


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_during_backoff(self):
        send = FlakySend(100)
        # Real sleep: the 1s backoff is interrupted by the signal
        sender = EventSender(send, max_attempts=10)
        cancel = cancel_after(0.05)

        loop = asyncio.get_running_loop()
        started = loop.time()
        with pytest.raises(TrackCancelled, match="waiting to retry"):
            await sender.send(EVENT, cancel)

        assert send.calls == 1
        assert loop.time() - started < 0.9

    @pytest.mark.asyncio
    async def test_cancel_during_attempt(self):
        entered = asyncio.Event()
        finished = []

        async def slow_send(event):
            entered.set()
            await asyncio.sleep(5)
            finished.append(event)
            return RECORD

        sender = EventSender(slow_send, max_attempts=3, sleep=RecordingSleep())
        cancel = asyncio.Event()

        task = asyncio.create_task(sender.send(EVENT, cancel))
        await entered.wait()
        cancel.set()

        with pytest.raises(TrackCancelled, match="attempt 1/3"):
            await task
        assert finished == []

    @pytest.mark.asyncio
    async def test_already_cancelled(self):
        send = FlakySend(0)
        sender = EventSender(send, max_attempts=3)
        cancel = asyncio.Event()
        cancel.set()

        with pytest.raises(TrackCancelled):
            await sender.send(EVENT, cancel)
        assert send.calls == 0

    @pytest.mark.asyncio
    async def test_cancelled_is_track_error_not_transport(self):
        cancel = asyncio.Event()
        cancel.set()

        with pytest.raises(TrackCancelled) as exc_info:
            await run_cancellable(asyncio.sleep(1), cancel)
        assert not isinstance(exc_info.value, (TransportError, APIError))
        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_signal_unused(self):
        cancel = asyncio.Event()
        assert await run_cancellable(asyncio.sleep(0, result="done"), cancel) == "done"
