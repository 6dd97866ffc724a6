"""
Waterway proximity segmentation.

Given circular zones and waterway features, return the parts of each feature that lie in
(or near) a zone:
- polygons (lakes, reservoirs) are all-or-nothing: included when any vertex is inside a zone;
- lines (rivers, canals) are cut into runs of consecutive vertex pairs whose segment passes
  within `radius + buffer_m` of a zone centre.

Output paths reuse the input vertices (no interpolation), so a highlighted run always starts
and ends on an original vertex.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from outbreakmap.core.geo import Circle, GeoPoint, haversine_m, point_to_segment_distance_m

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WaterFeature:
    """A waterway line or water-area boundary."""

    id: str
    path: tuple[GeoPoint, ...]
    is_polygon: bool = False
    name: str | None = None


@dataclass(frozen=True)
class Segment:
    """A contiguous sub-run of a feature's vertices."""

    id: str
    path: tuple[GeoPoint, ...]


def segment_id(feature_id: str, index: int) -> str:
    return f"{feature_id}:{index}"


def polygon_touches_zones(path: Sequence[GeoPoint], zones: Sequence[Circle]) -> bool:
    """True when any vertex lies within a zone radius (no buffer for polygons)."""
    for zone in zones:
        for vertex in path:
            if haversine_m(vertex, zone.center) <= zone.radius_m:
                return True
    return False


def _pair_qualifies(a: GeoPoint, b: GeoPoint, zones: Sequence[Circle], buffer_m: float) -> bool:
    for zone in zones:
        if point_to_segment_distance_m(zone.center, a, b).distance_m <= zone.radius_m + buffer_m:
            return True
    return False


def line_segments_near_zones(feature: WaterFeature, zones: Sequence[Circle], buffer_m: float) -> list[Segment]:
    out: list[Segment] = []
    path = feature.path
    run: list[GeoPoint] = []
    for i in range(len(path) - 1):
        a, b = path[i], path[i + 1]
        if _pair_qualifies(a, b, zones, buffer_m):
            if not run:
                run.append(a)
            run.append(b)
            continue
        if run:
            out.append(Segment(id=segment_id(feature.id, len(out)), path=tuple(run)))
            run = []
    if run:
        out.append(Segment(id=segment_id(feature.id, len(out)), path=tuple(run)))
    return out


def segments_near_zones(
    features: Sequence[WaterFeature],
    zones: Sequence[Circle],
    buffer_m: float = 0.0,
) -> list[Segment]:
    """Return the parts of `features` inside or within `buffer_m` of any zone.

    A feature may yield zero, one or several segments. Features with fewer than two vertices
    are skipped.
    """
    if not zones:
        return []
    buffer_m = max(0.0, float(buffer_m))

    out: list[Segment] = []
    for feature in features:
        if len(feature.path) < 2:
            continue
        if feature.is_polygon:
            if polygon_touches_zones(feature.path, zones):
                out.append(Segment(id=segment_id(feature.id, 0), path=tuple(feature.path)))
            continue
        out.extend(line_segments_near_zones(feature, zones, buffer_m))

    logger.debug("Segmented %d features against %d zones -> %d segments", len(features), len(zones), len(out))
    return out
