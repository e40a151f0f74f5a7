"""Usage event types and their wire representation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def format_timestamp(value: datetime) -> str:
    """Render a datetime as an RFC3339 string (seconds precision).

    Naive datetimes are taken to be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.replace(microsecond=0).isoformat()
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


@dataclass(frozen=True, slots=True)
class TrackEventParams:
    """
    A single metered usage fact.

    Created by the caller for every track call. The idempotency key is
    forwarded verbatim so the server can deduplicate; the client does
    no deduplication of its own.
    """
    # Token of the meter to report against
    meter_token: str

    # Caller's own customer id (not the server-side UUID)
    customer_external_id: str

    # Usage quantity, in the meter's units
    quantity: float

    # Defaults to server receive time when absent
    timestamp: datetime | None = None

    idempotency_key: str | None = None

    metadata: dict[str, Any] | None = None

    def to_payload(self) -> dict[str, Any]:
        """Build the JSON body for POST /sdk/track."""
        body: dict[str, Any] = {
            "meter_token": self.meter_token,
            "customer_external_id": self.customer_external_id,
            "quantity": self.quantity,
        }
        if self.timestamp is not None:
            body["timestamp"] = format_timestamp(self.timestamp)
        if self.idempotency_key:
            body["idempotency_key"] = self.idempotency_key
        if self.metadata is not None:
            body["metadata"] = self.metadata
        return body


@dataclass(frozen=True, slots=True)
class TrackEventResponse:
    """Event record confirmed by the API."""
    id: str
    customer_id: str
    meter_id: str
    quantity: str
    timestamp: str
    created_at: str
    meta_data: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrackEventResponse:
        return cls(
            id=str(data.get("id", "")),
            customer_id=str(data.get("customer_id", "")),
            meter_id=str(data.get("meter_id", "")),
            quantity=str(data.get("quantity", "")),
            timestamp=str(data.get("timestamp", "")),
            created_at=str(data.get("created_at", "")),
            meta_data=data.get("meta_data"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "meter_id": self.meter_id,
            "quantity": self.quantity,
            "timestamp": self.timestamp,
            "created_at": self.created_at,
            "meta_data": self.meta_data,
        }


@dataclass(frozen=True, slots=True)
class BatchError:
    """An event that failed during a flush, with its failure."""
    event: TrackEventParams
    error: Exception


@dataclass
class BatchResult:
    """Outcome summary of one flush pass."""
    successful: int = 0
    failed: int = 0
    errors: list[BatchError] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.successful + self.failed

    @property
    def ok(self) -> bool:
        """True when no event in the pass failed."""
        return self.failed == 0
