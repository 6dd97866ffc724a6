from __future__ import annotations
from dataclasses import dataclass
from math import asin, cos, hypot, radians, sin, sqrt

"""
Geospatial helpers.

We keep a tiny geometry layer here so the spatial engine can do distance calculations
without pulling in heavier GIS dependencies (shapely/pyproj).

Planar helpers project onto a local equirectangular plane. That is accurate enough for
map-view scale geometry (a few kilometres), not for continental distances.
"""

EARTH_RADIUS_M = 6_371_000
METERS_PER_DEG_LAT = 111_320.0


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float


@dataclass(frozen=True)
class Circle:
    """A circular zone (contamination cluster or risk zone)."""

    center: GeoPoint
    radius_m: float


@dataclass(frozen=True)
class SegmentProjection:
    """Result of projecting a point onto a segment."""

    distance_m: float
    fraction: float
    segment_length_m: float


def haversine_m(a: GeoPoint, b: GeoPoint) -> float:
    """Compute great-circle distance in meters between two points."""
    r = EARTH_RADIUS_M
    lat1 = radians(a.lat)
    lon1 = radians(a.lon)
    lat2 = radians(b.lat)
    lon2 = radians(b.lon)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return 2 * r * asin(sqrt(min(1.0, h)))


def meters_per_deg_lon(lat_deg: float) -> float:
    """Length of one degree of longitude at `lat_deg` (shrinks toward the poles)."""
    return METERS_PER_DEG_LAT * cos(radians(float(lat_deg)))


def point_to_segment_distance_m(p: GeoPoint, a: GeoPoint, b: GeoPoint) -> SegmentProjection:
    """Distance from `p` to segment `a -> b` on a local plane centred at the segment's mid latitude.

    `fraction` is the clamped position of the closest point along the segment (0 at `a`,
    1 at `b`). A zero-length segment falls back to the point-to-point distance with fraction 0.
    """
    if a == b:
        return SegmentProjection(distance_m=haversine_m(p, a), fraction=0.0, segment_length_m=0.0)

    mid_lat = (a.lat + b.lat) / 2
    kx = meters_per_deg_lon(mid_lat)
    ky = METERS_PER_DEG_LAT

    # Origin at `a`.
    dx = (b.lon - a.lon) * kx
    dy = (b.lat - a.lat) * ky
    px = (p.lon - a.lon) * kx
    py = (p.lat - a.lat) * ky

    len2 = dx * dx + dy * dy
    if len2 == 0:
        return SegmentProjection(distance_m=haversine_m(p, a), fraction=0.0, segment_length_m=0.0)

    t = (px * dx + py * dy) / len2
    t = max(0.0, min(1.0, t))
    distance = hypot(px - t * dx, py - t * dy)
    return SegmentProjection(distance_m=distance, fraction=t, segment_length_m=sqrt(len2))
