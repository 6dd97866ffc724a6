"""
Weather ingestion client (OpenWeatherMap current weather).

The dashboard shows the current conditions at the map centre. The map centre changes on every
pan, so the cache key rounds coordinates to 2 decimals (~1 km): rapid moves inside the same
area reuse one upstream call.

Failure policy:
- no API key configured -> placeholder `Weather` (no network call);
- upstream/decoding error -> `None` (logged), never an exception.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from outbreakmap.config.settings import Settings
from outbreakmap.core.cache import FileCache
from outbreakmap.core.http import get_json
from outbreakmap.core.ingestion_meta import record_ingestion_source

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Weather:
    """Current conditions for display."""

    location: str
    temp_c: int
    description: str
    icon: str

    def as_dict(self) -> dict[str, Any]:
        return {"location": self.location, "temp_c": self.temp_c, "description": self.description, "icon": self.icon}


def parse_current_weather(payload: dict[str, Any]) -> Weather:
    """Extract display fields from an OpenWeatherMap `/weather` response.

    Raises:
        ValueError: If required fields are missing.
    """
    try:
        first = (payload.get("weather") or [])[0]
        return Weather(
            location=str(payload.get("name") or ""),
            temp_c=int(round(float(payload["main"]["temp"]))),
            description=str(first.get("description") or ""),
            icon=str(first.get("icon") or ""),
        )
    except (KeyError, IndexError, TypeError, AttributeError) as exc:
        raise ValueError(f"Unexpected weather payload: {exc}") from exc


class WeatherClient:
    """Fetches and caches OpenWeatherMap data for a coordinate."""

    def __init__(self, settings: Settings, cache: FileCache):
        self._settings = settings
        self._cache = cache

    def _placeholder(self) -> Weather:
        cfg = self._settings.ingestion.weather
        return Weather(location=cfg.placeholder_location, temp_c=28, description="Weather API Key needed", icon="50d")

    def _fetch_current(self, lat: float, lon: float) -> dict[str, Any]:
        cfg = self._settings.ingestion.weather
        params = {"lat": lat, "lon": lon, "appid": cfg.api_key, "units": cfg.units}
        return get_json(cfg.base_url, params=params, timeout_seconds=self._settings.app.http_timeout_seconds)

    def get_current(self, *, lat: float, lon: float) -> Weather | None:
        cfg = self._settings.ingestion.weather
        source_name = f"weather:openweathermap:{lat:.2f},{lon:.2f}"
        if not cfg.api_key:
            logger.warning("OpenWeatherMap API key not configured; returning placeholder weather")
            record_ingestion_source(source_name, "placeholder")
            return self._placeholder()

        cache_key = f"owm:{lat:.2f}:{lon:.2f}:{cfg.units}"
        called = fetched = False

        def builder() -> dict[str, Any]:
            nonlocal called, fetched
            called = True
            logger.info("Fetching weather for lat=%.2f lon=%.2f", lat, lon)
            payload = self._fetch_current(round(lat, 2), round(lon, 2))
            # Raises ValueError so malformed payloads never reach the cache.
            parse_current_weather(payload)
            fetched = True
            return payload

        try:
            payload = self._cache.get_or_set(
                "weather",
                cache_key,
                builder,
                ttl_seconds=int(cfg.cache_ttl_seconds),
                stale_if_error=True,
                stale_predicate=lambda exc: isinstance(exc, httpx.HTTPError),
            )
            weather = parse_current_weather(payload)
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Weather fetch error: %s", exc)
            record_ingestion_source(source_name, "none", error=type(exc).__name__)
            return None

        mode = "live" if fetched else ("stale" if called else "cache")
        entry = self._cache.get_entry_meta("weather", cache_key) or {}
        record_ingestion_source(source_name, mode, as_of_unix=entry.get("created_at_unix"))
        return weather
