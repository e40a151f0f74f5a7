"""Exceptions raised by the FluxRate SDK."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .events import BatchResult


class FluxRateError(Exception):
    """Base exception for FluxRate SDK errors."""
    pass


class ConfigurationError(FluxRateError):
    """Invalid client configuration."""
    pass


class TrackError(FluxRateError):
    """A usage event could not be delivered."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TransportError(TrackError):
    """Network failure or unreadable response."""
    pass


class APIError(TrackError):
    """The API answered with status >= 400."""
    pass


class TrackCancelled(TrackError):
    """The caller's cancellation signal fired before the send completed."""

    def __init__(self, message: str = "Send cancelled"):
        super().__init__(message)


class ShutdownError(FluxRateError):
    """Some events failed to flush during shutdown."""

    def __init__(self, result: BatchResult):
        super().__init__(
            f"Failed to flush remaining events: "
            f"{result.failed} of {result.total} events failed"
        )
        self.result = result
