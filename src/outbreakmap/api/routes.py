"""
API routes.

Endpoints:
- GET  `/api/scenario`: the loaded outbreak scenario.
- GET  `/api/stats`: sidebar statistics.
- GET  `/api/settings`: public settings for the map UI (secrets redacted).
- POST `/api/aggregate`: zoom-dependent case groups.
- POST `/api/segments`: waterway segments near zones.
- POST `/api/bbox`: padded bounding box around circles.
- POST `/api/dashboard`: every overlay for one map view (fetches waterways).
- GET  `/api/weather`: current weather at a coordinate.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import APIRouter, HTTPException, Query

from outbreakmap.catalog.loader import load_scenario
from outbreakmap.config.overrides import apply_settings_overrides
from outbreakmap.config.settings import get_settings
from outbreakmap.core.cache import FileCache, record_cache_stats
from outbreakmap.core.ingestion_meta import capture_ingestion_meta
from outbreakmap.dashboard.build import build_cache, build_dashboard, group_to_out, segment_to_out, waterway_bbox
from outbreakmap.dashboard.stats import compute_stats
from outbreakmap.domain.models import (
    AggregateRequest,
    BoundingBoxOut,
    BoundingBoxRequest,
    DashboardRequest,
    DashboardResult,
    GroupOut,
    MapStats,
    Scenario,
    SegmentOut,
    SegmentsRequest,
    to_core_point,
    zone_to_circle,
)
from outbreakmap.ingestion.overpass_client import OverpassClient, WaterwayLoader
from outbreakmap.ingestion.weather_client import WeatherClient
from outbreakmap.spatial.aggregate import aggregate_cases
from outbreakmap.spatial.bbox import FALLBACK_BBOX, bounding_box_for_circles
from outbreakmap.spatial.segments import WaterFeature, segments_near_zones

router = APIRouter()


@lru_cache
def _cache() -> FileCache:
    return build_cache(get_settings())


@lru_cache
def _clients() -> tuple[OverpassClient, WeatherClient]:
    settings = get_settings()
    cache = _cache()
    return OverpassClient(settings, cache), WeatherClient(settings, cache)


@lru_cache
def _waterway_loader() -> WaterwayLoader:
    overpass, _ = _clients()
    return WaterwayLoader(overpass.fetch_waterways)


@lru_cache
def _scenario() -> Scenario:
    return load_scenario(get_settings().scenario.path)


@router.get("/api/scenario", response_model=Scenario)
def get_scenario() -> Scenario:
    return _scenario()


@router.get("/api/stats", response_model=MapStats)
def get_stats() -> MapStats:
    return compute_stats(_scenario())


@router.get("/api/settings")
def get_public_settings() -> dict:
    """Return safe-to-expose settings for UI defaults (API key removed)."""
    settings = get_settings()
    data = settings.model_dump(mode="json")
    data.get("ingestion", {}).get("weather", {}).pop("api_key", None)
    return {
        "map": data.get("map", {}),
        "proximity": data.get("proximity", {}),
        "ingestion": data.get("ingestion", {}),
    }


@router.post("/api/aggregate", response_model=list[GroupOut])
def post_aggregate(request: AggregateRequest) -> list[GroupOut]:
    return [group_to_out(g) for g in aggregate_cases(request.cases, request.zoom)]


@router.post("/api/segments", response_model=list[SegmentOut])
def post_segments(request: SegmentsRequest) -> list[SegmentOut]:
    features = [
        WaterFeature(id=f.id, path=tuple(to_core_point(p) for p in f.path), is_polygon=f.is_polygon, name=f.name)
        for f in request.features
    ]
    zones = [zone_to_circle(z) for z in request.zones]
    return [segment_to_out(s) for s in segments_near_zones(features, zones, request.buffer_m)]


@router.post("/api/bbox", response_model=BoundingBoxOut)
def post_bbox(request: BoundingBoxRequest) -> BoundingBoxOut:
    bbox = bounding_box_for_circles([zone_to_circle(z) for z in request.circles], request.padding_deg)
    return BoundingBoxOut(
        south=bbox.south, west=bbox.west, north=bbox.north, east=bbox.east, fallback=not request.circles
    )


@router.post("/api/dashboard", response_model=DashboardResult)
def post_dashboard(request: DashboardRequest) -> DashboardResult:
    """Build all overlays for the seed scenario at the requested zoom."""
    try:
        settings = apply_settings_overrides(get_settings(), request.settings_overrides)
        scenario = _scenario()
        bbox = waterway_bbox(scenario, settings)
        with record_cache_stats() as stats, capture_ingestion_meta() as ing:
            snapshot = _waterway_loader().load(bbox) if bbox != FALLBACK_BBOX else None
            features = list(snapshot.features) if snapshot else []
            result = build_dashboard(
                scenario,
                zoom=request.zoom,
                waterways=features,
                settings=settings,
                visibility=request.visibility,
            )
        meta = {
            **(result.meta or {}),
            "waterways": {
                "state": snapshot.state.value if snapshot else "idle",
                "bbox": bbox.as_overpass(),
            },
            "cache": stats.as_dict(),
            "freshness": ing.sources,
        }
        return result.model_copy(update={"meta": meta})
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail={"code": "VALIDATION_ERROR", "message": str(e)},
        ) from e
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail={"code": "INTERNAL_ERROR", "message": str(e)},
        ) from e


@router.get("/api/weather")
def get_weather(lat: float = Query(..., ge=-90, le=90), lon: float = Query(..., ge=-180, le=180)) -> dict:
    _, weather_client = _clients()
    with capture_ingestion_meta() as ing:
        weather = weather_client.get_current(lat=lat, lon=lon)
    return {"weather": weather.as_dict() if weather else None, "freshness": ing.sources}
