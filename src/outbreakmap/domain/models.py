"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- scenario entities (`Sensor`, `CaseReport`, `Zone`, `Facility`)
- API/CLI inputs (`AggregateRequest`, `SegmentsRequest`, `DashboardRequest`)
- render-ready output (`GroupOut`, `SegmentOut`, `DashboardResult`)

The spatial engine itself works on small frozen dataclasses (`outbreakmap.core.geo`);
conversion helpers live at the bottom of this module.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from outbreakmap.core.geo import Circle, GeoPoint as CoreGeoPoint


class GeoPoint(BaseModel):
    """A geographic point in decimal degrees."""

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class SensorStatus(str, Enum):
    active = "Active"
    inactive = "Inactive"
    contaminated = "Contaminated"


class CaseType(str, Enum):
    confirmed = "Confirmed"
    self_reported = "Self-Reported"


class FacilityType(str, Enum):
    hospital = "Hospital"
    clinic = "Clinic"


class SensorReading(BaseModel):
    """One daily water sample. `date` is DD-MM-YYYY."""

    date: str
    water_quality: int = Field(..., description="Index 0-100")
    bacteria_count: int = Field(..., description="Per 100 ml")


class Sensor(BaseModel):
    id: str
    position: GeoPoint
    status: SensorStatus = SensorStatus.active
    readings: list[SensorReading] = Field(default_factory=list)


class CaseReport(BaseModel):
    """A confirmed or self-reported case. Only id/type/position matter for aggregation."""

    id: str
    position: GeoPoint
    type: CaseType
    name: str = ""
    age: int | None = Field(default=None, ge=0, le=150)
    gender: Literal["Male", "Female", "Other"] | None = None
    symptoms: list[str] = Field(default_factory=list)
    disease: str = ""


class Zone(BaseModel):
    """A contamination cluster or risk zone."""

    id: str
    center: GeoPoint
    radius_m: float = Field(..., ge=0)


class Facility(BaseModel):
    id: str
    type: FacilityType
    name: str
    position: GeoPoint


class Scenario(BaseModel):
    """Everything shown on the map for one outbreak scenario."""

    name: str = ""
    map_center: GeoPoint | None = None
    sensors: list[Sensor] = Field(default_factory=list)
    cases: list[CaseReport] = Field(default_factory=list)
    clusters: list[Zone] = Field(default_factory=list)
    risk_zones: list[Zone] = Field(default_factory=list)
    facilities: list[Facility] = Field(default_factory=list)


class LayerVisibility(BaseModel):
    sensors: bool = True
    cases: bool = True
    contaminated_zones: bool = True
    in_risk_zones: bool = True
    health_facilities: bool = True
    contaminated_water: bool = True
    at_risk_water: bool = True


class MapStats(BaseModel):
    active_sensors: int
    reported_cases: int
    contaminated_clusters: int
    total_risk_zone_area_km2: str


class WaterFeatureIn(BaseModel):
    id: str
    path: list[GeoPoint] = Field(default_factory=list)
    is_polygon: bool = False
    name: str | None = None


class AggregateRequest(BaseModel):
    cases: list[CaseReport]
    zoom: int


class SegmentsRequest(BaseModel):
    features: list[WaterFeatureIn]
    zones: list[Zone]
    buffer_m: float = Field(default=0.0, ge=0)


class BoundingBoxRequest(BaseModel):
    circles: list[Zone] = Field(default_factory=list)
    padding_deg: float = Field(default=0.0, ge=0)


class DashboardRequest(BaseModel):
    zoom: int = 13
    visibility: LayerVisibility = Field(default_factory=LayerVisibility)
    settings_overrides: dict[str, Any] | None = None


class GroupOut(BaseModel):
    """An aggregated case group ready for rendering."""

    id: str
    type: CaseType
    center: GeoPoint
    member_count: int = Field(..., ge=1)
    marker_radius: float
    members: list[CaseReport]


class SegmentOut(BaseModel):
    id: str
    path: list[GeoPoint]


class BoundingBoxOut(BaseModel):
    south: float
    west: float
    north: float
    east: float
    fallback: bool = False


class DashboardResult(BaseModel):
    """All overlays for one map view."""

    generated_at: datetime
    zoom: int
    groups: list[GroupOut] = Field(default_factory=list)
    sensors: list[Sensor] = Field(default_factory=list)
    clusters: list[Zone] = Field(default_factory=list)
    risk_zones: list[Zone] = Field(default_factory=list)
    facilities: list[Facility] = Field(default_factory=list)
    contaminated_water: list[SegmentOut] = Field(default_factory=list)
    at_risk_water: list[SegmentOut] = Field(default_factory=list)
    stats: MapStats
    meta: dict[str, Any] = Field(default_factory=dict)


def to_core_point(p: GeoPoint) -> CoreGeoPoint:
    return CoreGeoPoint(lat=float(p.lat), lon=float(p.lon))


def from_core_point(p: CoreGeoPoint) -> GeoPoint:
    return GeoPoint(lat=p.lat, lon=p.lon)


def zone_to_circle(zone: Zone) -> Circle:
    return Circle(center=to_core_point(zone.center), radius_m=float(zone.radius_m))
