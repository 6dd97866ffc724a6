"""
Dashboard assembly.

Pipeline for one map view:
1) aggregate case reports for the current zoom,
2) segment waterways against clusters ("contaminated water", no buffer) and against risk
   zones ("at-risk water", buffered),
3) attach zones, sensors, facilities and sidebar stats, honouring layer visibility.

Every step is a pure function of its inputs, so whole results are memoized per
(scenario, zoom, waterways, settings, visibility) fingerprint.
"""

from __future__ import annotations

import json
import logging
import threading
from collections import OrderedDict
from datetime import datetime, timezone
from hashlib import sha256
from typing import Any, Sequence

from outbreakmap.config.settings import Settings
from outbreakmap.core.cache import FileCache
from outbreakmap.core.env import resolve_project_path
from outbreakmap.core.geo import Circle
from outbreakmap.dashboard.stats import compute_stats
from outbreakmap.domain.models import (
    DashboardResult,
    GroupOut,
    LayerVisibility,
    Scenario,
    SegmentOut,
    Zone,
    from_core_point,
    zone_to_circle,
)
from outbreakmap.spatial.aggregate import AggregatedGroup, aggregate_cases
from outbreakmap.spatial.bbox import BoundingBox, bounding_box_for_circles
from outbreakmap.spatial.highlights import highlighted_segments
from outbreakmap.spatial.segments import Segment, WaterFeature, segments_near_zones

logger = logging.getLogger(__name__)

_MEMO_MAX_ENTRIES = 64
_memo: OrderedDict[str, DashboardResult] = OrderedDict()
_memo_lock = threading.Lock()


def build_cache(settings: Settings) -> FileCache:
    return FileCache(
        resolve_project_path(settings.cache.dir),
        enabled=settings.cache.enabled,
        default_ttl_seconds=settings.cache.default_ttl_seconds,
    )


def group_to_out(group: AggregatedGroup) -> GroupOut:
    return GroupOut(
        id=group.id,
        type=group.type,
        center=from_core_point(group.center),
        member_count=len(group.members),
        marker_radius=group.marker_radius,
        members=list(group.members),
    )


def segment_to_out(segment: Segment) -> SegmentOut:
    return SegmentOut(id=segment.id, path=[from_core_point(p) for p in segment.path])


def waterway_bbox(scenario: Scenario, settings: Settings) -> BoundingBox:
    """Query region for waterways: every cluster and risk zone, padded."""
    circles = [zone_to_circle(z) for z in [*scenario.clusters, *scenario.risk_zones]]
    return bounding_box_for_circles(circles, settings.ingestion.overpass.bbox_padding_deg)


def water_segments(
    features: Sequence[WaterFeature], zones: Sequence[Zone], *, buffer_m: float, settings: Settings
) -> list[Segment]:
    """Segments of `features` near `zones` using the configured proximity method."""
    circles: list[Circle] = [zone_to_circle(z) for z in zones]
    if settings.proximity.method == "arc_length":
        return highlighted_segments(features, circles, min_extension_m=settings.proximity.min_extension_m)
    return segments_near_zones(features, circles, buffer_m)


def _fingerprint(*parts: Any) -> str:
    return sha256(json.dumps(parts, sort_keys=True, default=str).encode("utf-8")).hexdigest()


def _features_payload(features: Sequence[WaterFeature]) -> list[Any]:
    return [[f.id, f.is_polygon, [(p.lat, p.lon) for p in f.path]] for f in features]


def build_dashboard(
    scenario: Scenario,
    *,
    zoom: int,
    waterways: Sequence[WaterFeature],
    settings: Settings,
    visibility: LayerVisibility | None = None,
) -> DashboardResult:
    """Build every overlay for one map view (hidden layers come back empty)."""
    visibility = visibility or LayerVisibility()
    key = _fingerprint(
        scenario.model_dump(mode="json"),
        int(zoom),
        _features_payload(waterways),
        settings.proximity.model_dump(mode="json"),
        visibility.model_dump(mode="json"),
    )
    with _memo_lock:
        cached = _memo.get(key)
        if cached is not None:
            _memo.move_to_end(key)
    if cached is not None:
        return cached.model_copy(update={"generated_at": datetime.now(timezone.utc)})

    groups = [group_to_out(g) for g in aggregate_cases(scenario.cases, zoom)] if visibility.cases else []

    contaminated: list[SegmentOut] = []
    if visibility.contaminated_water:
        contaminated = [
            segment_to_out(s)
            for s in water_segments(
                waterways, scenario.clusters, buffer_m=settings.proximity.contaminated_buffer_m, settings=settings
            )
        ]
    at_risk: list[SegmentOut] = []
    if visibility.at_risk_water:
        at_risk = [
            segment_to_out(s)
            for s in water_segments(
                waterways, scenario.risk_zones, buffer_m=settings.proximity.risk_buffer_m, settings=settings
            )
        ]

    result = DashboardResult(
        generated_at=datetime.now(timezone.utc),
        zoom=int(zoom),
        groups=groups,
        sensors=scenario.sensors if visibility.sensors else [],
        clusters=scenario.clusters if visibility.contaminated_zones else [],
        risk_zones=scenario.risk_zones if visibility.in_risk_zones else [],
        facilities=scenario.facilities if visibility.health_facilities else [],
        contaminated_water=contaminated,
        at_risk_water=at_risk,
        stats=compute_stats(scenario),
        meta={"proximity_method": settings.proximity.method, "waterway_features": len(waterways)},
    )
    logger.debug(
        "Dashboard zoom=%d groups=%d contaminated=%d at_risk=%d",
        zoom,
        len(groups),
        len(contaminated),
        len(at_risk),
    )

    with _memo_lock:
        _memo[key] = result
        if len(_memo) > _MEMO_MAX_ENTRIES:
            _memo.popitem(last=False)
    return result


def clear_dashboard_memo() -> None:
    with _memo_lock:
        _memo.clear()
