"""
FluxRate SDK

Usage-based billing event tracking for SaaS applications.

Usage:
    from fluxrate import FluxRate, TrackEventParams

    async with FluxRate(api_key="sk_test_...") as fluxrate:
        # Queued and sent in batches
        await fluxrate.track(
            meter_token="mtr_api_calls",
            customer_external_id="user_123",
            quantity=1,
        )

        # Sent right away, returns the confirmed record
        record = await fluxrate.track_immediate(TrackEventParams(
            meter_token="mtr_storage",
            customer_external_id="user_123",
            quantity=2.5,
            idempotency_key="upload-8812",
        ))

        # Force a flush and inspect the outcome
        result = await fluxrate.flush()
        print(result.successful, result.failed)
"""

from .client import FluxRate
from .config import ClientConfig, default_config, DEFAULT_API_URL
from .events import (
    TrackEventParams,
    TrackEventResponse,
    BatchResult,
    BatchError,
)
from .errors import (
    FluxRateError,
    ConfigurationError,
    TrackError,
    TransportError,
    APIError,
    TrackCancelled,
    ShutdownError,
)
from .lifecycle import LifecycleState
from .sender import backoff_delay, cancel_after
from .version import __version__

__all__ = [
    # Core classes
    "FluxRate",
    "ClientConfig",
    "default_config",
    "DEFAULT_API_URL",
    "LifecycleState",
    # Event types
    "TrackEventParams",
    "TrackEventResponse",
    "BatchResult",
    "BatchError",
    # Helpers
    "backoff_delay",
    "cancel_after",
    # Exceptions
    "FluxRateError",
    "ConfigurationError",
    "TrackError",
    "TransportError",
    "APIError",
    "TrackCancelled",
    "ShutdownError",
]
