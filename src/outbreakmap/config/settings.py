# src/outbreakmap/config/settings.py
"""
Settings models and loaders.

The base payload is the packaged `defaults.yaml`, or the file named by `OUTBREAKMAP_CONFIG_PATH`.
A handful of environment variables (see `_ENV_OVERRIDES`) are laid on top, with `.env` loaded
first. Proximity buffers, bbox padding and cache TTLs belong here rather than in `spatial`.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

from outbreakmap.core.env import load_dotenv_if_present


def _yaml_mapping(text: str, source: str) -> dict[str, Any]:
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{source}: expected a YAML mapping at the top level")
    return data


def _packaged_yaml(filename: str) -> dict[str, Any]:
    return _yaml_mapping(resources.files("outbreakmap.config").joinpath(filename).read_text(encoding="utf-8"), filename)


class AppSettings(BaseModel):
    name: str = "OutbreakMap"
    http_timeout_seconds: float = 15
    log_level: str = "INFO"


class CacheSettings(BaseModel):
    enabled: bool = True
    dir: str = ".cache/outbreakmap"
    default_ttl_seconds: int = 60 * 60 * 24


class ScenarioSettings(BaseModel):
    # None -> packaged Pune scenario.
    path: str | None = None


class MapSettings(BaseModel):
    default_zoom: int = Field(13, ge=0, le=24)


class RetrySettings(BaseModel):
    # Extra attempts after the first call; 0 disables retrying.
    max_attempts: int = Field(2, ge=0)
    base_delay_seconds: float = Field(1.0, ge=0)
    max_delay_seconds: float = Field(10.0, ge=0)


class OverpassSettings(BaseModel):
    base_url: str = "https://overpass-api.de/api/interpreter"
    query_timeout_seconds: int = Field(25, ge=1)
    bbox_padding_deg: float = Field(0.01, ge=0)
    cache_ttl_seconds: int = 60 * 60 * 24 * 7
    retry: RetrySettings = Field(default_factory=RetrySettings)


class WeatherSettings(BaseModel):
    base_url: str = "https://api.openweathermap.org/data/2.5/weather"
    api_key: str | None = None
    units: Literal["metric", "imperial", "standard"] = "metric"
    cache_ttl_seconds: int = 60 * 10
    placeholder_location: str = "Pune"


class IngestionSettings(BaseModel):
    overpass: OverpassSettings = Field(default_factory=OverpassSettings)
    weather: WeatherSettings = Field(default_factory=WeatherSettings)


class ProximitySettings(BaseModel):
    method: Literal["segment", "arc_length"] = "segment"
    contaminated_buffer_m: float = Field(0.0, ge=0)
    risk_buffer_m: float = Field(1700.0, ge=0)
    # Only used by the arc_length method.
    min_extension_m: float = Field(500.0, ge=0)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    scenario: ScenarioSettings = Field(default_factory=ScenarioSettings)
    map: MapSettings = Field(default_factory=MapSettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    proximity: ProximitySettings = Field(default_factory=ProximitySettings)


# Environment variable -> dotted settings path.
_ENV_OVERRIDES: dict[str, tuple[str, ...]] = {
    "OUTBREAKMAP_CACHE_DIR": ("cache", "dir"),
    "OUTBREAKMAP_LOG_LEVEL": ("app", "log_level"),
    "OUTBREAKMAP_SCENARIO_PATH": ("scenario", "path"),
    "OPENWEATHER_API_KEY": ("ingestion", "weather", "api_key"),
}


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay the few environment variables we honour onto the raw YAML payload."""
    data = dict(data)
    for var, path in _ENV_OVERRIDES.items():
        value = os.getenv(var)
        if not value:
            continue
        node = data
        for part in path[:-1]:
            node = node.setdefault(part, {})
        node[path[-1]] = value
    return data


@lru_cache
def get_settings() -> Settings:
    """Packaged defaults (or `OUTBREAKMAP_CONFIG_PATH`) plus env overrides, validated once."""
    load_dotenv_if_present()
    config_path = os.getenv("OUTBREAKMAP_CONFIG_PATH")
    if config_path:
        raw = _yaml_mapping(Path(config_path).read_text(encoding="utf-8"), config_path)
    else:
        raw = _packaged_yaml("defaults.yaml")
    return Settings.model_validate(_apply_env_overrides(raw))


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """dictConfig payload from the packaged `logging.yaml` (cached; copy before editing)."""
    return _packaged_yaml("logging.yaml")
