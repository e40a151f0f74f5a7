#!/usr/bin/env python3
"""Demo script showing FluxRate usage tracking.

Demonstrates:
1. Batched tracking
2. Tracking with metadata
3. Idempotency keys (server-side deduplication)
4. Immediate tracking
5. Manual flush and graceful shutdown

Run with:
    export FLUXRATE_API_KEY=sk_test_...
    export FLUXRATE_METER_TOKEN=mtr_...
    python examples/usage_demo.py
"""

import asyncio
import os
import sys
import time

from fluxrate import ClientConfig, FluxRate, ShutdownError, TrackError


def print_section(title: str):
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f" {title}")
    print("=" * 70)


async def simulate_api_usage(fluxrate: FluxRate, meter_token: str):
    print_section("1. BATCHED TRACKING - queued, sent in the background")
    await fluxrate.track(meter_token=meter_token, customer_external_id="user_123", quantity=1)
    print(f"Queued ({fluxrate.pending} pending)")

    print_section("2. METADATA")
    await fluxrate.track(
        meter_token=meter_token,
        customer_external_id="user_456",
        quantity=1,
        metadata={"endpoint": "/api/data", "method": "POST", "duration_ms": 123},
    )
    print(f"Queued ({fluxrate.pending} pending)")

    print_section("3. IDEMPOTENCY - same key twice, the server keeps one")
    key = f"req_{int(time.time() * 1000)}"
    for _ in range(2):
        await fluxrate.track(
            meter_token=meter_token,
            customer_external_id="user_789",
            quantity=1,
            idempotency_key=key,
        )
    print(f"Queued twice with key {key}")

    print_section("4. IMMEDIATE TRACKING - bypasses the queue")
    try:
        record = await fluxrate.track_immediate(
            meter_token=meter_token,
            customer_external_id="user_premium",
            quantity=1,
        )
        print(f"Event sent immediately: {record.id}")
    except TrackError as e:
        print(f"Error: {e}")

    print_section("5. MANUAL FLUSH")
    result = await fluxrate.flush()
    print(f"Flushed {result.successful} events, {result.failed} failed")
    for failure in result.errors:
        print(f"  {failure.event.customer_external_id}: {failure.error}")


async def main() -> int:
    meter_token = os.environ.get("FLUXRATE_METER_TOKEN")
    if not meter_token:
        print("FLUXRATE_METER_TOKEN environment variable is required")
        return 1

    config = ClientConfig(debug=True, batch_interval=5.0)
    fluxrate = FluxRate(config)

    await simulate_api_usage(fluxrate, meter_token)

    print_section("SHUTDOWN")
    try:
        await fluxrate.shutdown()
    except ShutdownError as e:
        print(f"Shutdown error: {e}")
        return 1
    print("Shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
