"""
Zoom-adaptive aggregation of case reports.

Cases are bucketed by rounding their coordinates to a zoom-dependent number of decimal
places. This is an O(n) stand-in for distance-based clustering: buckets only need to
merge points that would visually overlap at the current zoom, and the bucket key makes
group ids reproducible between renders (popups stay attached to the same group).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol

from outbreakmap.core.geo import GeoPoint

# (min zoom, decimal places), evaluated top-down.
ZOOM_PRECISION_TABLE: tuple[tuple[int, int], ...] = ((16, 4), (14, 3), (12, 2), (10, 1))
NO_CLUSTERING_PRECISION = 4

SINGLETON_MARKER_RADIUS = 6
MAX_GROUP_MARKER_RADIUS = 20


class _LatLon(Protocol):
    lat: float
    lon: float


class CaseLike(Protocol):
    id: str
    type: Any
    position: _LatLon


def precision_for_zoom(zoom: int) -> int:
    """Return the rounding precision (decimal places) used at `zoom`."""
    for min_zoom, precision in ZOOM_PRECISION_TABLE:
        if zoom >= min_zoom:
            return precision
    return 0


def _type_key(case_type: Any) -> str:
    return str(getattr(case_type, "value", case_type))


@dataclass
class AggregatedGroup:
    """Cases sharing a bucket; `center` is the running mean of member positions."""

    id: str
    type: Any
    center: GeoPoint
    members: list[Any] = field(default_factory=list)

    def add(self, case: CaseLike) -> None:
        """Append `case` and update the centroid incrementally."""
        self.members.append(case)
        n = len(self.members)
        if n == 1:
            self.center = GeoPoint(lat=float(case.position.lat), lon=float(case.position.lon))
            return
        lat = (self.center.lat * (n - 1) + float(case.position.lat)) / n
        lon = (self.center.lon * (n - 1) + float(case.position.lon)) / n
        self.center = GeoPoint(lat=lat, lon=lon)

    @property
    def marker_radius(self) -> float:
        return group_marker_radius(len(self.members))


def group_marker_radius(member_count: int) -> float:
    """Marker radius (pixels) for a group: grows with sqrt(count), capped at 20."""
    if member_count <= 1:
        return SINGLETON_MARKER_RADIUS
    return min(MAX_GROUP_MARKER_RADIUS, SINGLETON_MARKER_RADIUS + math.sqrt(member_count) * 2)


def aggregate_cases(cases: Iterable[CaseLike], zoom: int) -> list[AggregatedGroup]:
    """Group `cases` for display at `zoom`.

    At zoom >= 16 every case is its own group (id = case id). Below that, cases with the same
    type whose coordinates round to the same value share a group. Groups come back in the
    order their bucket was first seen.
    """
    precision = precision_for_zoom(int(zoom))

    if precision >= NO_CLUSTERING_PRECISION:
        out: list[AggregatedGroup] = []
        for case in cases:
            center = GeoPoint(lat=float(case.position.lat), lon=float(case.position.lon))
            out.append(AggregatedGroup(id=str(case.id), type=case.type, center=center, members=[case]))
        return out

    groups: dict[tuple[str, float, float], AggregatedGroup] = {}
    for case in cases:
        lat_r = round(float(case.position.lat), precision)
        lon_r = round(float(case.position.lon), precision)
        key = (_type_key(case.type), lat_r, lon_r)
        group = groups.get(key)
        if group is None:
            group = AggregatedGroup(
                id=f"{key[0]}:{lat_r:.{precision}f}:{lon_r:.{precision}f}",
                type=case.type,
                center=GeoPoint(lat=lat_r, lon=lon_r),
            )
            groups[key] = group
        group.add(case)
    return list(groups.values())
