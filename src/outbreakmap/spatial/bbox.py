"""
Bounding box around a set of circles.

Used to scope the Overpass waterway query to the area covered by clusters and risk zones.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from outbreakmap.core.geo import METERS_PER_DEG_LAT, Circle, meters_per_deg_lon


@dataclass(frozen=True)
class BoundingBox:
    """Lat/lon box in decimal degrees."""

    south: float
    west: float
    north: float
    east: float

    def as_overpass(self) -> str:
        """Overpass QL bbox filter order: south,west,north,east."""
        return f"{self.south:.6f},{self.west:.6f},{self.north:.6f},{self.east:.6f}"

    def padded(self, padding_deg: float) -> "BoundingBox":
        p = float(padding_deg)
        return BoundingBox(south=self.south - p, west=self.west - p, north=self.north + p, east=self.east + p)


# Default Pune viewport. Signals "no query scope" rather than a real area of interest.
FALLBACK_BBOX = BoundingBox(south=18.45, west=73.78, north=18.60, east=73.95)


def bounding_box_for_circles(circles: Iterable[Circle], padding_deg: float = 0.0) -> BoundingBox:
    """Smallest lat/lon box enclosing every circle, padded by `padding_deg` on each side.

    Returns `FALLBACK_BBOX` (unpadded) when there are no circles.
    """
    south = west = float("inf")
    north = east = float("-inf")
    seen = False
    for c in circles:
        seen = True
        lat_delta = float(c.radius_m) / METERS_PER_DEG_LAT
        lon_scale = meters_per_deg_lon(c.center.lat)
        lon_delta = float(c.radius_m) / lon_scale if lon_scale > 0 else 180.0
        south = min(south, c.center.lat - lat_delta)
        north = max(north, c.center.lat + lat_delta)
        west = min(west, c.center.lon - lon_delta)
        east = max(east, c.center.lon + lon_delta)
    if not seen:
        return FALLBACK_BBOX
    return BoundingBox(south=south, west=west, north=north, east=east).padded(padding_deg)
