"""Test doubles for the FluxRate API."""

from .fake_api import API_KEY, API_URL, FakeFluxRateAPI, TrackRequest

__all__ = [
    "API_KEY",
    "API_URL",
    "FakeFluxRateAPI",
    "TrackRequest",
]
