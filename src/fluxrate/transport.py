"""HTTP transport for the track endpoint."""

from __future__ import annotations

import json
from typing import Any

import httpx

from .errors import APIError, TransportError
from .events import TrackEventParams, TrackEventResponse
from .version import __version__

TRACK_PATH = "/sdk/track"

USER_AGENT = f"fluxrate-python/{__version__}"


def build_headers(api_key: str) -> dict[str, str]:
    """Build request headers."""
    return {
        "Content-Type": "application/json",
        "X-API-Key": api_key,
        "User-Agent": USER_AGENT,
    }


def error_detail(body: bytes) -> str:
    """Best-effort error text from an error response body."""
    try:
        data: Any = json.loads(body)
    except ValueError:
        return "Unknown error"
    if isinstance(data, dict):
        for key in ("detail", "message"):
            value = data.get(key)
            if value:
                return value if isinstance(value, str) else json.dumps(value)
    return "Unknown error"


async def post_event(
    client: httpx.AsyncClient,
    api_url: str,
    api_key: str,
    event: TrackEventParams,
) -> TrackEventResponse:
    """
    Send one event to POST <api_url>/sdk/track.

    Raises:
        TransportError: unencodable event, network failure, or unparseable
            success body
        APIError: status >= 400
    """
    try:
        body = json.dumps(event.to_payload(), allow_nan=False)
    except (TypeError, ValueError) as e:
        raise TransportError(f"Failed to marshal request body: {e}") from e

    try:
        response = await client.post(
            f"{api_url}{TRACK_PATH}",
            content=body,
            headers=build_headers(api_key),
        )
    except httpx.HTTPError as e:
        raise TransportError(f"Failed to send request: {e}") from e

    if response.status_code >= 400:
        raise APIError(
            f"Failed to track event: {response.status_code} "
            f"{response.reason_phrase} - {error_detail(response.content)}",
            status_code=response.status_code,
        )

    try:
        data = response.json()
    except ValueError as e:
        raise TransportError(
            f"Failed to parse response: {e}", status_code=response.status_code
        ) from e
    if not isinstance(data, dict):
        raise TransportError(
            "Failed to parse response: expected a JSON object",
            status_code=response.status_code,
        )

    return TrackEventResponse.from_dict(data)
