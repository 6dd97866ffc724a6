import httpx
from starlette.testclient import TestClient

from outbreakmap.api.app import app
from outbreakmap.core.geo import GeoPoint
from outbreakmap.ingestion.overpass_client import WaterwayLoader
from outbreakmap.ingestion.weather_client import Weather
from outbreakmap.spatial.bbox import FALLBACK_BBOX
from outbreakmap.spatial.segments import WaterFeature


def _river() -> WaterFeature:
    path = tuple(GeoPoint(lat=18.523, lon=round(73.84 + 0.005 * i, 3)) for i in range(9))
    return WaterFeature(id="way/1", path=path, name="Mula")


class _StubWeatherClient:
    def get_current(self, *, lat: float, lon: float):
        return Weather(location="Pune", temp_c=27, description="haze", icon="50d")


def _offline(monkeypatch, fetch):
    # Patch the cached factories so API tests stay offline.
    import outbreakmap.api.routes as routes

    loader = WaterwayLoader(fetch)
    monkeypatch.setattr(routes, "_waterway_loader", lambda: loader)
    monkeypatch.setattr(routes, "_clients", lambda: (None, _StubWeatherClient()))
    return loader


def test_healthz():
    client = TestClient(app)
    assert client.get("/healthz").json() == {"status": "ok"}


def test_scenario_and_stats():
    client = TestClient(app)

    scenario = client.get("/api/scenario").json()
    stats = client.get("/api/stats").json()

    assert len(scenario["cases"]) == 9
    assert stats == {
        "active_sensors": 2,
        "reported_cases": 9,
        "contaminated_clusters": 1,
        "total_risk_zone_area_km2": "12.57",
    }


def test_public_settings_hide_api_key():
    client = TestClient(app)

    data = client.get("/api/settings").json()

    assert "api_key" not in data["ingestion"]["weather"]
    assert data["proximity"]["method"] == "segment"


def test_aggregate_endpoint_groups_close_cases():
    client = TestClient(app)
    cases = [
        {"id": f"c{i}", "position": {"lat": 18.522 + i * 0.0001, "lon": 73.855}, "type": "Confirmed"}
        for i in range(4)
    ]

    resp = client.post("/api/aggregate", json={"cases": cases, "zoom": 8})

    assert resp.status_code == 200
    (group,) = resp.json()
    assert group["member_count"] == 4
    assert group["marker_radius"] == 10.0


def test_aggregate_endpoint_accepts_any_integer_zoom():
    client = TestClient(app)
    cases = [
        {"id": "a", "position": {"lat": 18.52, "lon": 73.85}, "type": "Confirmed"},
        {"id": "b", "position": {"lat": 18.61, "lon": 73.91}, "type": "Confirmed"},
    ]

    deep = client.post("/api/aggregate", json={"cases": cases, "zoom": 25})
    wide = client.post("/api/aggregate", json={"cases": cases, "zoom": -1})

    assert deep.status_code == 200
    assert [g["id"] for g in deep.json()] == ["a", "b"]
    assert wide.status_code == 200
    assert [g["member_count"] for g in wide.json()] == [2]
    assert client.post("/api/aggregate", json={"cases": [], "zoom": "far"}).status_code == 422


def test_segments_endpoint():
    client = TestClient(app)
    river = _river()
    body = {
        "features": [{"id": river.id, "path": [{"lat": p.lat, "lon": p.lon} for p in river.path]}],
        "zones": [{"id": "z", "center": {"lat": 18.523, "lon": 73.857}, "radius_m": 700}],
    }

    resp = client.post("/api/segments", json=body)

    assert resp.status_code == 200
    assert [s["id"] for s in resp.json()] == ["way/1:0"]


def test_bbox_endpoint_reports_fallback():
    client = TestClient(app)

    empty = client.post("/api/bbox", json={"circles": []}).json()
    real = client.post(
        "/api/bbox",
        json={"circles": [{"id": "z", "center": {"lat": 18.5, "lon": 73.8}, "radius_m": 1000}], "padding_deg": 0.01},
    ).json()

    assert empty["fallback"] is True
    assert (empty["south"], empty["west"], empty["north"], empty["east"]) == (
        FALLBACK_BBOX.south,
        FALLBACK_BBOX.west,
        FALLBACK_BBOX.north,
        FALLBACK_BBOX.east,
    )
    assert real["fallback"] is False
    assert real["south"] < 18.5 - 0.01


def test_dashboard_includes_water_layers_and_debug_meta(monkeypatch):
    calls = []

    def fetch(bbox):
        calls.append(bbox)
        return [_river()]

    _offline(monkeypatch, fetch)
    client = TestClient(app)

    resp = client.post("/api/dashboard", json={"zoom": 13})
    again = client.post("/api/dashboard", json={"zoom": 15})

    assert resp.status_code == 200
    assert again.status_code == 200
    data = resp.json()
    assert len(data["contaminated_water"]) == 1
    assert len(data["at_risk_water"]) == 1
    assert data["meta"]["waterways"]["state"] == "ready"
    assert "cache" in data["meta"]
    assert len(calls) == 1


def test_dashboard_survives_waterway_failure(monkeypatch):
    def fetch(bbox):
        raise httpx.ConnectError("overpass unreachable")

    _offline(monkeypatch, fetch)
    client = TestClient(app)

    resp = client.post("/api/dashboard", json={"zoom": 13})

    assert resp.status_code == 200
    data = resp.json()
    assert data["meta"]["waterways"]["state"] == "failed"
    assert data["contaminated_water"] == []
    assert data["at_risk_water"] == []
    assert len(data["groups"]) > 0


def test_dashboard_rejects_disallowed_overrides(monkeypatch):
    _offline(monkeypatch, lambda bbox: [])
    client = TestClient(app)

    resp = client.post("/api/dashboard", json={"settings_overrides": {"scenario": {"path": "/etc/passwd"}}})

    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "VALIDATION_ERROR"


def test_weather_endpoint(monkeypatch):
    _offline(monkeypatch, lambda bbox: [])
    client = TestClient(app)

    resp = client.get("/api/weather", params={"lat": 18.52, "lon": 73.86})

    assert resp.status_code == 200
    assert resp.json()["weather"]["temp_c"] == 27
