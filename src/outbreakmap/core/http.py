"""
HTTP helpers for the ingestion clients.

Two upstreams are spoken to: Overpass (form-encoded POST, because QL queries outgrow URL
limits) and OpenWeatherMap (plain GET). Both return JSON. Non-2xx responses raise so each
client applies its own failure policy.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# The public Overpass instances throttle clients without a descriptive User-Agent.
DEFAULT_USER_AGENT = "outbreakmap/0.1.0 (+https://local)"

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def parse_retry_after_seconds(value: str | None) -> float | None:
    """Seconds from a numeric `Retry-After` header (HTTP-date values are ignored)."""
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


def _request_json(
    method: str,
    url: str,
    *,
    params: dict[str, Any] | None,
    data: dict[str, Any] | None,
    headers: dict[str, str] | None,
    timeout_seconds: float,
) -> Any:
    merged_headers = {"User-Agent": DEFAULT_USER_AGENT, "Accept": "application/json"}
    merged_headers.update(headers or {})
    logger.debug("%s %s", method, url)
    with httpx.Client(timeout=timeout_seconds) as client:
        resp = client.request(method, url, params=params, data=data, headers=merged_headers)
        resp.raise_for_status()
        return resp.json()


def get_json(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 15,
) -> Any:
    """GET `url` and decode the JSON body.

    Raises:
        httpx.HTTPError: Transport failure or non-2xx status.
        ValueError: Body is not JSON.
    """
    return _request_json("GET", url, params=params, data=None, headers=headers, timeout_seconds=timeout_seconds)


def post_form(
    url: str,
    *,
    data: dict[str, Any],
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 15,
) -> Any:
    """POST `data` form-encoded and decode the JSON body (same errors as `get_json`)."""
    return _request_json("POST", url, params=None, data=data, headers=headers, timeout_seconds=timeout_seconds)
