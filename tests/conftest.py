"""Shared test fixtures for the FluxRate SDK tests."""

import os

import pytest

from fluxrate import ClientConfig
from tests.mocks import API_KEY, API_URL, FakeFluxRateAPI


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep FLUXRATE_* variables from the host out of config defaults."""
    for name in list(os.environ):
        if name.startswith("FLUXRATE_"):
            monkeypatch.delenv(name)


@pytest.fixture
def api() -> FakeFluxRateAPI:
    """Fake track API."""
    return FakeFluxRateAPI()


@pytest.fixture
def make_config(api):
    """Build a config wired to the fake API."""
    def factory(**overrides) -> ClientConfig:
        values = {
            "api_key": API_KEY,
            "api_url": API_URL,
            "enable_retry": False,
            "http_client": api.http_client(),
        }
        values.update(overrides)
        return ClientConfig(**values)

    return factory
