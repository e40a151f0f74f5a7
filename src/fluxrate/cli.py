#!/usr/bin/env python3
"""
CLI tool for reporting usage to FluxRate.

Usage:
    fluxrate track --meter mtr_api_calls --customer user_123 --quantity 1
    fluxrate simulate --meter mtr_api_calls --customers user_1,user_2 --events 25
    fluxrate --config fluxrate.yaml config

The API key comes from --api-key, the config file, or FLUXRATE_API_KEY.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import datetime
from typing import Any

from colorama import Fore, Style, init as colorama_init

from .client import FluxRate
from .config import ClientConfig
from .errors import ConfigurationError, ShutdownError, TrackError
from .events import BatchResult, TrackEventParams


colorama_init()


def colorize(text: str, color: str) -> str:
    return f"{color}{text}{Style.RESET_ALL}"


def print_json(data: Any, indent: int = 2) -> None:
    print(json.dumps(data, indent=indent, default=str))


def print_result(result: BatchResult) -> None:
    """Pretty print a flush summary."""
    print(colorize("Successful:", Style.BRIGHT), colorize(str(result.successful), Fore.GREEN))
    failed_color = Fore.RED if result.failed else Fore.GREEN
    print(colorize("Failed:", Style.BRIGHT), colorize(str(result.failed), failed_color))
    for failure in result.errors:
        print(
            f"  {failure.event.customer_external_id} "
            f"{failure.event.meter_token}: {colorize(str(failure.error), Fore.RED)}"
        )


def load_config(args, **overrides: Any) -> ClientConfig:
    """Resolve config from file/env plus command-line flags."""
    if args.api_key:
        overrides["api_key"] = args.api_key
    if args.api_url:
        overrides["api_url"] = args.api_url
    if args.debug:
        overrides["debug"] = True
    if args.config:
        return ClientConfig.from_file(args.config, **overrides)
    return ClientConfig(**overrides)


async def cmd_track(args) -> int:
    """Send one event immediately."""
    config = load_config(args, enable_batching=False)
    try:
        timestamp = datetime.fromisoformat(args.timestamp) if args.timestamp else None
    except ValueError:
        print(colorize(f"Error: invalid --timestamp {args.timestamp!r}", Fore.RED), file=sys.stderr)
        return 2
    try:
        metadata = json.loads(args.metadata) if args.metadata else None
    except json.JSONDecodeError as e:
        print(colorize(f"Error: invalid --metadata JSON: {e}", Fore.RED), file=sys.stderr)
        return 2
    if metadata is not None and not isinstance(metadata, dict):
        print(colorize("Error: --metadata must be a JSON object", Fore.RED), file=sys.stderr)
        return 2

    event = TrackEventParams(
        meter_token=args.meter,
        customer_external_id=args.customer,
        quantity=args.quantity,
        timestamp=timestamp,
        idempotency_key=args.idempotency_key,
        metadata=metadata,
    )

    fluxrate = FluxRate(config)
    try:
        record = await fluxrate.track(event)
    except TrackError as e:
        print(colorize(f"Error: {e}", Fore.RED), file=sys.stderr)
        return 1
    finally:
        await fluxrate.shutdown()

    if record is None:
        print(colorize(f"Skipped: customer {args.customer} is not allowed", Fore.YELLOW))
        return 0

    print(colorize("Event tracked:", Style.BRIGHT), colorize(record.id, Fore.GREEN))
    print_json(record.to_dict())
    return 0


async def cmd_simulate(args) -> int:
    """Queue a run of batched events, then flush and shut down."""
    config = load_config(args, enable_batching=True)
    customers = [c.strip() for c in args.customers.split(",") if c.strip()]
    if not customers:
        print(colorize("Error: --customers must name at least one customer", Fore.RED), file=sys.stderr)
        return 2

    fluxrate = FluxRate(config)
    for i in range(args.events):
        await fluxrate.track(
            meter_token=args.meter,
            customer_external_id=customers[i % len(customers)],
            quantity=args.quantity,
            metadata={"simulated": True, "sequence": i},
        )
    print(colorize("Queued:", Style.BRIGHT), f"{args.events} events ({fluxrate.pending} pending)")

    await fluxrate.wait_for_pending_flushes()
    result = await fluxrate.flush()
    print_result(result)

    try:
        await fluxrate.shutdown()
    except ShutdownError as e:
        print(colorize(str(e), Fore.RED), file=sys.stderr)
        return 1

    return 1 if result.failed else 0


async def cmd_config(args) -> int:
    """Show the resolved configuration."""
    print_json(load_config(args).to_dict())
    return 0


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        description="CLI tool for FluxRate usage tracking",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("--api-key", help="API key (default: $FLUXRATE_API_KEY)")
    parser.add_argument("--api-url", help="API base URL")
    parser.add_argument("--config", help="YAML or JSON config file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # track command
    track_parser = subparsers.add_parser("track", help="Send one usage event")
    track_parser.add_argument("--meter", required=True, help="Meter token")
    track_parser.add_argument("--customer", required=True, help="Customer external ID")
    track_parser.add_argument("--quantity", type=float, default=1.0, help="Usage quantity")
    track_parser.add_argument("--timestamp", help="ISO 8601 timestamp (default: now)")
    track_parser.add_argument("--idempotency-key", help="Key for server-side deduplication")
    track_parser.add_argument("--metadata", help="JSON object of extra data")

    # simulate command
    sim_parser = subparsers.add_parser("simulate", help="Send a batch of sample events")
    sim_parser.add_argument("--meter", required=True, help="Meter token")
    sim_parser.add_argument("--customers", default="user_123,user_456", help="Comma-separated IDs")
    sim_parser.add_argument("--events", type=int, default=10, help="Number of events")
    sim_parser.add_argument("--quantity", type=float, default=1.0, help="Quantity per event")

    # config command
    subparsers.add_parser("config", help="Show the resolved configuration")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    commands = {
        "track": cmd_track,
        "simulate": cmd_simulate,
        "config": cmd_config,
    }

    try:
        return asyncio.run(commands[args.command](args))
    except ConfigurationError as e:
        print(colorize(f"Configuration error: {e}", Fore.RED), file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main() or 0)
