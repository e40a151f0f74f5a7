"""Main client class."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from .batch_queue import BatchQueue
from .config import ClientConfig
from .customers import CustomerFilter
from .debug import DebugLog
from .errors import ShutdownError
from .events import BatchResult, TrackEventParams, TrackEventResponse
from .flusher import Flusher
from .lifecycle import BatchTimer, LifecycleState
from .sender import EventSender
from .transport import post_event
from .version import __version__


logger = logging.getLogger(__name__)


class FluxRate:
    """
    Client for reporting metered usage to FluxRate.

    Usage:
        async with FluxRate(api_key="sk_test_...") as fluxrate:
            await fluxrate.track(
                meter_token="mtr_api_calls",
                customer_external_id="user_123",
                quantity=1,
            )

        # Or with an explicit config
        fluxrate = FluxRate(ClientConfig(
            api_key="sk_live_...",
            batch_size=50,
            allowed_customers=("user_123", "user_456"),
        ))
        ...
        await fluxrate.shutdown()

    With batching enabled (the default) track() queues the event and
    returns None; queued events go out when the queue reaches
    batch_size, every batch_interval seconds, on flush(), and on
    shutdown().
    """

    def __init__(self, config: ClientConfig | None = None, **overrides: Any):
        if config is None:
            config = ClientConfig(**overrides)
        elif overrides:
            config = config.replace(**overrides)
        self.config = config

        self._log = DebugLog(config.debug)
        self._customers = CustomerFilter(config.allowed_customers)

        self._owns_http = config.http_client is None
        self._http = config.http_client or httpx.AsyncClient(timeout=config.timeout)

        self._queue = BatchQueue()
        self._sender = EventSender(self._post, max_attempts=config.max_attempts, log=self._log)
        self._flusher = Flusher(self._queue, self._sender, self._log)
        self._timer: BatchTimer | None = None
        if config.enable_batching:
            self._timer = BatchTimer(config.batch_interval, self._queue, self._flusher, self._log)

        # Size-triggered flushes still in flight
        self._background: set[asyncio.Task] = set()

        self._log(
            f"SDK initialized: version={__version__}, apiUrl={config.api_url}, "
            f"batching={config.enable_batching}, batchSize={config.batch_size}"
        )

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet; the timer starts on first use
            return
        self._start_timer()

    # -- public API --------------------------------------------------------

    @property
    def state(self) -> LifecycleState:
        """
        Lifecycle of the periodic flush.

        STOPPED without batching, and also before the timer has started
        (a client built outside a running loop until its first use).
        """
        if self._timer is None:
            return LifecycleState.STOPPED
        if self._timer.state == LifecycleState.RUNNING and not self._timer.started:
            return LifecycleState.STOPPED
        return self._timer.state

    @property
    def pending(self) -> int:
        """Events currently queued."""
        return len(self._queue)

    async def start(self) -> None:
        """Start the periodic flush if it is not running yet."""
        self._start_timer()

    async def track(
        self,
        event: TrackEventParams | None = None,
        *,
        cancel: asyncio.Event | None = None,
        **fields: Any,
    ) -> TrackEventResponse | None:
        """
        Track a usage event.

        Accepts a TrackEventParams or its fields as keyword arguments.

        Returns:
            The confirmed record when batching is disabled. None when the
            event was queued or its customer is not allowed.

        Raises:
            TrackError: batching disabled and the send failed
        """
        event = _coerce_event(event, fields)

        if not self._customers.allows(event.customer_external_id):
            self._log(f"Skipping event for disallowed customer: {event.customer_external_id}")
            return None

        if not self.config.enable_batching:
            return await self.track_immediate(event, cancel=cancel)

        self._start_timer()
        queue_len = await self._queue.enqueue(event)
        self._log(f"Event queued for batching ({queue_len}/{self.config.batch_size})")

        if queue_len >= self.config.batch_size:
            self._spawn_flush(cancel)

        return None

    async def track_immediate(
        self,
        event: TrackEventParams | None = None,
        *,
        cancel: asyncio.Event | None = None,
        **fields: Any,
    ) -> TrackEventResponse:
        """
        Send an event right away, bypassing the queue.

        Raises:
            TrackError: every attempt failed, or `cancel` fired
        """
        event = _coerce_event(event, fields)
        return await self._sender.send(event, cancel)

    async def flush(self, cancel: asyncio.Event | None = None) -> BatchResult:
        """Send everything queued now. Per-event failures are in the result."""
        self._start_timer()
        return await self._flusher.flush(cancel)

    async def wait_for_pending_flushes(self) -> None:
        """Wait for size-triggered flushes that are still running."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def shutdown(self, cancel: asyncio.Event | None = None) -> None:
        """
        Stop the periodic flush and send whatever is still queued.

        Raises:
            ShutdownError: some events in the final flush failed
        """
        self._log("Shutting down SDK...")

        if self._timer is not None:
            await self._timer.stop()

        try:
            await self.wait_for_pending_flushes()
            result = await self._flusher.flush(cancel)
        finally:
            if self._owns_http and not self._http.is_closed:
                await self._http.aclose()

        if result.failed:
            raise ShutdownError(result)

        self._log("SDK shutdown complete")

    async def __aenter__(self) -> FluxRate:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()

    # -- internals ---------------------------------------------------------

    def _start_timer(self) -> None:
        if self._timer is not None and not self._timer.started:
            self._timer.start()

    def _spawn_flush(self, cancel: asyncio.Event | None) -> None:
        """Flush in the background; the result is only logged."""
        task = asyncio.get_running_loop().create_task(self._background_flush(cancel))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _background_flush(self, cancel: asyncio.Event | None) -> None:
        try:
            result = await self._flusher.flush(cancel)
        except Exception:
            logger.exception("Batch flush error")
            return
        for failure in result.errors:
            self._log(f"Batch flush error: {failure.error}")

    def _http_client(self) -> httpx.AsyncClient:
        # An owned client closed by shutdown() is reopened for late sends
        if self._owns_http and self._http.is_closed:
            self._http = httpx.AsyncClient(timeout=self.config.timeout)
        return self._http

    async def _post(self, event: TrackEventParams) -> TrackEventResponse:
        self._log(f"Sending event: {event.to_payload()}")
        return await post_event(
            self._http_client(), self.config.api_url, self.config.api_key, event
        )


def _coerce_event(event: TrackEventParams | None, fields: dict[str, Any]) -> TrackEventParams:
    if event is not None:
        if fields:
            raise TypeError("Pass either a TrackEventParams or event fields, not both")
        return event
    return TrackEventParams(**fields)
