"""
Waterway geometry ingestion (Overpass API).

This module fetches rivers, streams, canals and water areas inside a bounding box and parses
them into `WaterFeature` records for the proximity segmenter.

Failure policy:
- malformed elements (no geometry, fewer than 2 vertices) are skipped one by one;
- network/decoding errors never reach the spatial engine: `get_waterways()` returns `[]`,
  and `WaterwayLoader` lands in the FAILED state with an empty feature list.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

import httpx

from outbreakmap.config.settings import Settings
from outbreakmap.core.cache import FileCache
from outbreakmap.core.geo import GeoPoint
from outbreakmap.core.http import RETRYABLE_STATUS_CODES, parse_retry_after_seconds, post_form
from outbreakmap.core.ingestion_meta import record_ingestion_source
from outbreakmap.spatial.bbox import BoundingBox
from outbreakmap.spatial.segments import WaterFeature

logger = logging.getLogger(__name__)


def _upstream_error(exc: Exception) -> bool:
    return isinstance(exc, (httpx.HTTPError, ValueError))


def build_waterway_query(bbox: BoundingBox, *, timeout_seconds: int = 25) -> str:
    """Overpass QL for waterway lines and water areas inside `bbox`."""
    b = bbox.as_overpass()
    return (
        f"[out:json][timeout:{int(timeout_seconds)}];\n"
        "(\n"
        f'  way["waterway"]({b});\n'
        f'  way["natural"="water"]({b});\n'
        f'  relation["natural"="water"]({b});\n'
        ");\n"
        "out geom;"
    )


def _parse_geometry(raw: Any) -> tuple[GeoPoint, ...]:
    if not isinstance(raw, list):
        return ()
    points: list[GeoPoint] = []
    for node in raw:
        if not isinstance(node, dict):
            continue
        try:
            points.append(GeoPoint(lat=float(node["lat"]), lon=float(node["lon"])))
        except (KeyError, TypeError, ValueError):
            continue
    return tuple(points)


def _is_closed(path: tuple[GeoPoint, ...]) -> bool:
    return len(path) >= 4 and path[0] == path[-1]


def parse_waterway_elements(payload: Any) -> list[WaterFeature]:
    """Turn an Overpass `out geom` response into waterway features.

    Ways become lines unless tagged `natural=water` or closed. Relation members (outer rings of
    lakes and reservoirs) become polygons keyed `relation/<id>/<k>`.
    """
    elements = payload.get("elements") if isinstance(payload, dict) else None
    if not isinstance(elements, list):
        return []

    out: list[WaterFeature] = []
    for el in elements:
        if not isinstance(el, dict):
            continue
        tags = el.get("tags") if isinstance(el.get("tags"), dict) else {}
        name = tags.get("name")
        kind = el.get("type")

        if kind == "way":
            path = _parse_geometry(el.get("geometry"))
            if len(path) < 2:
                continue
            is_polygon = tags.get("natural") == "water" or _is_closed(path)
            out.append(WaterFeature(id=f"way/{el.get('id')}", path=path, is_polygon=is_polygon, name=name))
            continue

        if kind == "relation":
            members = el.get("members")
            if not isinstance(members, list):
                continue
            k = 0
            for member in members:
                if not isinstance(member, dict) or member.get("role", "outer") not in ("outer", ""):
                    continue
                path = _parse_geometry(member.get("geometry"))
                if len(path) < 2:
                    continue
                out.append(
                    WaterFeature(id=f"relation/{el.get('id')}/{k}", path=path, is_polygon=True, name=name)
                )
                k += 1
    return out


class OverpassClient:
    """Fetches and caches Overpass responses, then parses them into `WaterFeature`s."""

    def __init__(self, settings: Settings, cache: FileCache):
        self._settings = settings
        self._cache = cache

    def _post_query(self, query: str) -> dict[str, Any]:
        """POST a QL query with exponential backoff on 429/5xx and transport errors."""
        cfg = self._settings.ingestion.overpass
        retry = cfg.retry
        # Give the HTTP client a little longer than the server-side query timeout.
        timeout = max(float(self._settings.app.http_timeout_seconds), float(cfg.query_timeout_seconds) + 5)

        attempt = 0
        while True:
            try:
                return post_form(cfg.base_url, data={"data": query}, timeout_seconds=timeout)
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                if status not in RETRYABLE_STATUS_CODES or attempt >= retry.max_attempts:
                    raise
                delay = min(retry.max_delay_seconds, retry.base_delay_seconds * (2**attempt))
                retry_after = parse_retry_after_seconds(exc.response.headers.get("Retry-After"))
                if retry_after is not None:
                    delay = max(delay, retry_after)
                logger.warning(
                    "Overpass returned status=%s; retrying in %.2fs (attempt %s/%s)",
                    status,
                    delay,
                    attempt + 1,
                    retry.max_attempts,
                )
            except httpx.TransportError:
                if attempt >= retry.max_attempts:
                    raise
                delay = min(retry.max_delay_seconds, retry.base_delay_seconds * (2**attempt))
                logger.warning(
                    "Overpass transport error; retrying in %.2fs (attempt %s/%s)",
                    delay,
                    attempt + 1,
                    retry.max_attempts,
                )
            time.sleep(delay)
            attempt += 1

    def fetch_waterways(self, bbox: BoundingBox) -> list[WaterFeature]:
        """Return features inside `bbox` (cached, stale-if-error).

        Raises:
            httpx.HTTPError: When the upstream call fails and no stale copy exists.
            ValueError: When the response is not JSON.
        """
        cfg = self._settings.ingestion.overpass
        scope = bbox.as_overpass()
        cache_key = f"waterways:{scope}"
        query = build_waterway_query(bbox, timeout_seconds=cfg.query_timeout_seconds)
        called = fetched = False

        def builder() -> dict[str, Any]:
            nonlocal called, fetched
            called = True
            logger.info("Fetching waterways for bbox=%s", scope)
            payload = self._post_query(query)
            fetched = True
            return payload

        try:
            payload = self._cache.get_or_set(
                "overpass",
                cache_key,
                builder,
                ttl_seconds=cfg.cache_ttl_seconds,
                stale_if_error=True,
                stale_predicate=_upstream_error,
            )
        except (httpx.HTTPError, ValueError) as exc:
            record_ingestion_source(f"overpass:{scope}", "none", error=type(exc).__name__)
            raise

        mode = "live" if fetched else ("stale" if called else "cache")
        entry = self._cache.get_entry_meta("overpass", cache_key) or {}
        record_ingestion_source(f"overpass:{scope}", mode, as_of_unix=entry.get("created_at_unix"))
        features = parse_waterway_elements(payload)
        logger.debug("Parsed %d waterway features (mode=%s)", len(features), mode)
        return features

    def get_waterways(self, bbox: BoundingBox) -> list[WaterFeature]:
        """Fail-open variant of `fetch_waterways`: any upstream error yields `[]`."""
        try:
            return self.fetch_waterways(bbox)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Waterway fetch failed for bbox=%s: %s", bbox.as_overpass(), exc)
            return []


class FetchState(str, Enum):
    idle = "idle"
    loading = "loading"
    ready = "ready"
    failed = "failed"


@dataclass(frozen=True)
class WaterwaySnapshot:
    """Loader state at a point in time. FAILED always carries an empty feature list."""

    state: FetchState
    bbox: BoundingBox | None = None
    features: tuple[WaterFeature, ...] = field(default_factory=tuple)
    error: str | None = None

    @property
    def settled(self) -> bool:
        return self.state in (FetchState.ready, FetchState.failed)


class WaterwayLoader:
    """Explicit IDLE -> LOADING -> READY | FAILED state machine around a waterway fetch.

    `load(bbox)` only triggers a fetch when the bbox changed since the last settled result,
    so rerendering the same view never hits the network twice. The lock guards state
    transitions only; the fetch itself runs unlocked. Callers asking for the bbox already in
    flight wait for that fetch. A fetch superseded by a newer bbox still answers its own
    caller but is not published.
    """

    def __init__(self, fetch: Callable[[BoundingBox], list[WaterFeature]]):
        self._fetch = fetch
        self._cond = threading.Condition()
        self._generation = 0
        self._snapshot = WaterwaySnapshot(state=FetchState.idle)

    @property
    def snapshot(self) -> WaterwaySnapshot:
        return self._snapshot

    def load(self, bbox: BoundingBox) -> WaterwaySnapshot:
        with self._cond:
            while True:
                current = self._snapshot
                if current.settled and current.bbox == bbox:
                    return current
                if current.state is FetchState.loading and current.bbox == bbox:
                    self._cond.wait()
                    continue
                break
            self._generation += 1
            generation = self._generation
            self._snapshot = WaterwaySnapshot(state=FetchState.loading, bbox=bbox)
            self._cond.notify_all()

        try:
            features = self._fetch(bbox)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Waterway loader failed for bbox=%s: %s", bbox.as_overpass(), exc)
            result = WaterwaySnapshot(state=FetchState.failed, bbox=bbox, error=type(exc).__name__)
        except Exception as exc:
            # Cache I/O and other local faults still settle the loader.
            logger.exception("Unexpected waterway loader error for bbox=%s", bbox.as_overpass())
            result = WaterwaySnapshot(state=FetchState.failed, bbox=bbox, error=type(exc).__name__)
        else:
            result = WaterwaySnapshot(state=FetchState.ready, bbox=bbox, features=tuple(features))

        with self._cond:
            if generation == self._generation:
                self._snapshot = result
            self._cond.notify_all()
        return result

    def reset(self) -> None:
        with self._cond:
            self._generation += 1
            self._snapshot = WaterwaySnapshot(state=FetchState.idle)
            self._cond.notify_all()
