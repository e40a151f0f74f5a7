"""In-process fake of the FluxRate track API.

Served through httpx.ASGITransport so the SDK's real HTTP path runs
without a network.
"""

from __future__ import annotations

import asyncio
import itertools
from datetime import datetime, timezone
from typing import Any

import httpx
from fastapi import FastAPI, Header, HTTPException
from pydantic import BaseModel


API_URL = "http://fluxrate.test/api/v1"
API_KEY = "sk_test_123"


class TrackRequest(BaseModel):
    """Wire body of POST /sdk/track."""
    meter_token: str
    customer_external_id: str
    quantity: float
    timestamp: str | None = None
    idempotency_key: str | None = None
    metadata: dict[str, Any] | None = None


class FakeFluxRateAPI:
    """
    Records every track request it receives.

    Failure injection:
        api.fail_next(2, status_code=503, detail="maintenance")
        api.fail_customers.add("user_bad")
        api.delay = 0.5
    """

    def __init__(self, api_key: str = API_KEY):
        self.api_key = api_key
        self.calls = 0
        self.received: list[TrackRequest] = []
        self.headers: list[dict[str, str]] = []
        self.delay = 0.0
        self.fail_customers: set[str] = set()
        self._failures: list[tuple[int, str]] = []
        self._ids = itertools.count(1)
        self.app = self._build_app()

    def fail_next(self, times: int, status_code: int = 500, detail: str = "Internal error") -> None:
        self._failures.extend([(status_code, detail)] * times)

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.ASGITransport(app=self.app))

    @property
    def customers(self) -> list[str]:
        return [r.customer_external_id for r in self.received]

    def _build_app(self) -> FastAPI:
        app = FastAPI()

        @app.post("/api/v1/sdk/track")
        async def track(body: TrackRequest, x_api_key: str = Header(...)) -> dict[str, Any]:
            self.calls += 1
            self.headers.append({"x-api-key": x_api_key})

            if self.delay:
                await asyncio.sleep(self.delay)
            if x_api_key != self.api_key:
                raise HTTPException(status_code=401, detail="Invalid API key")
            if self._failures:
                status_code, detail = self._failures.pop(0)
                raise HTTPException(status_code=status_code, detail=detail)
            if body.customer_external_id in self.fail_customers:
                raise HTTPException(status_code=422, detail="Unknown customer")

            self.received.append(body)
            now = datetime.now(timezone.utc).isoformat()
            return {
                "id": f"evt_{next(self._ids)}",
                "customer_id": f"cus_{body.customer_external_id}",
                "meter_id": f"mtr_{body.meter_token}",
                "quantity": f"{body.quantity:.2f}",
                "timestamp": body.timestamp or now,
                "created_at": now,
                "meta_data": body.metadata,
            }

        return app
