"""Client configuration."""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from typing import Any

import httpx

from .errors import ConfigurationError


DEFAULT_API_URL = "https://api.fluxrate.co/api/v1"
API_KEY_PREFIX = "sk_"


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None


def _env_customers() -> tuple[str, ...]:
    raw = os.environ.get("FLUXRATE_ALLOWED_CUSTOMERS", "")
    return tuple(c.strip() for c in raw.split(",") if c.strip())


@dataclass(frozen=True)
class ClientConfig:
    """
    Configuration for the FluxRate client.

    Can be set via:
    - Constructor arguments
    - Environment variables (FLUXRATE_*)
    - Config file (YAML or JSON)

    Immutable once built; use replace() to derive a modified copy.
    """
    # Organization API key (sk_live_... or sk_test_...)
    api_key: str = field(
        default_factory=lambda: os.environ.get("FLUXRATE_API_KEY", "")
    )

    # API base URL
    api_url: str = field(
        default_factory=lambda: os.environ.get("FLUXRATE_API_URL", DEFAULT_API_URL)
    )

    # Queue events and send them in batches
    enable_batching: bool = field(
        default_factory=lambda: _env_bool("FLUXRATE_ENABLE_BATCHING", True)
    )

    # Queue length that triggers an automatic flush
    batch_size: int = field(
        default_factory=lambda: _env_int("FLUXRATE_BATCH_SIZE", 100)
    )

    # Periodic flush interval (seconds)
    batch_interval: float = field(
        default_factory=lambda: _env_float("FLUXRATE_BATCH_INTERVAL", 5.0)
    )

    # Retry failed sends with exponential backoff
    enable_retry: bool = field(
        default_factory=lambda: _env_bool("FLUXRATE_ENABLE_RETRY", True)
    )

    # Attempts per event when retry is enabled
    max_retries: int = field(
        default_factory=lambda: _env_int("FLUXRATE_MAX_RETRIES", 10)
    )

    # Customers to track; empty means every customer is tracked
    allowed_customers: tuple[str, ...] = field(default_factory=_env_customers)

    # Emit debug log lines
    debug: bool = field(
        default_factory=lambda: _env_bool("FLUXRATE_DEBUG", False)
    )

    # Request timeout (seconds) for the client-owned HTTP client
    timeout: float = field(
        default_factory=lambda: _env_float("FLUXRATE_TIMEOUT", 30.0)
    )

    # Pluggable HTTP client; the caller keeps ownership
    http_client: httpx.AsyncClient | None = field(
        default=None, repr=False, compare=False
    )

    def __post_init__(self):
        if not self.api_key or not self.api_key.startswith(API_KEY_PREFIX):
            raise ConfigurationError(
                "Invalid API key: must start with 'sk_live_' or 'sk_test_'"
            )
        if not self.api_url:
            raise ConfigurationError("api_url must not be empty")
        if self.batch_size < 1:
            raise ConfigurationError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.max_retries < 1:
            raise ConfigurationError(f"max_retries must be >= 1, got {self.max_retries}")
        if self.batch_interval <= 0:
            raise ConfigurationError(
                f"batch_interval must be positive, got {self.batch_interval}"
            )
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")

        # Frozen: normalize through object.__setattr__
        object.__setattr__(self, "api_url", self.api_url.rstrip("/"))
        if isinstance(self.allowed_customers, str):
            customers = [c.strip() for c in self.allowed_customers.split(",")]
        else:
            customers = list(self.allowed_customers or ())
        object.__setattr__(self, "allowed_customers", tuple(c for c in customers if c))

    @property
    def max_attempts(self) -> int:
        """Send attempts per event."""
        return self.max_retries if self.enable_retry else 1

    def replace(self, **changes: Any) -> ClientConfig:
        """Return a validated copy with the given fields changed."""
        return dataclasses.replace(self, **changes)

    def to_dict(self, mask_key: bool = True) -> dict[str, Any]:
        """Serializable view of the config (without the HTTP client)."""
        key = self.api_key
        if mask_key:
            key = key[:8] + "*" * max(len(key) - 8, 0)
        return {
            "api_key": key,
            "api_url": self.api_url,
            "enable_batching": self.enable_batching,
            "batch_size": self.batch_size,
            "batch_interval": self.batch_interval,
            "enable_retry": self.enable_retry,
            "max_retries": self.max_retries,
            "allowed_customers": list(self.allowed_customers),
            "debug": self.debug,
            "timeout": self.timeout,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], **overrides: Any) -> ClientConfig:
        """Create config from dictionary. Unknown keys are rejected."""
        known = {f.name for f in dataclasses.fields(cls)} - {"http_client"}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        values = {**data, **overrides}
        if isinstance(values.get("allowed_customers"), list):
            values["allowed_customers"] = tuple(values["allowed_customers"])
        return cls(**values)

    @classmethod
    def from_yaml(cls, path: str, **overrides: Any) -> ClientConfig:
        """Load config from YAML file."""
        import yaml
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {}, **overrides)

    @classmethod
    def from_json(cls, path: str, **overrides: Any) -> ClientConfig:
        """Load config from JSON file."""
        import json
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data, **overrides)

    @classmethod
    def from_file(cls, path: str, **overrides: Any) -> ClientConfig:
        """Load config from a .yaml/.yml or .json file."""
        if path.endswith((".yaml", ".yml")):
            return cls.from_yaml(path, **overrides)
        if path.endswith(".json"):
            return cls.from_json(path, **overrides)
        raise ConfigurationError(f"Unsupported config file type: {path}")


def default_config(api_key: str) -> ClientConfig:
    """Config with every default applied and the given key."""
    return ClientConfig(
        api_key=api_key,
        api_url=DEFAULT_API_URL,
        enable_batching=True,
        batch_size=100,
        batch_interval=5.0,
        enable_retry=True,
        max_retries=10,
        allowed_customers=(),
        debug=False,
        timeout=30.0,
    )
