import pytest

from outbreakmap.core.geo import METERS_PER_DEG_LAT, Circle, GeoPoint, meters_per_deg_lon
from outbreakmap.spatial.bbox import FALLBACK_BBOX, BoundingBox, bounding_box_for_circles


def test_empty_input_returns_unpadded_fallback():
    assert bounding_box_for_circles([]) == FALLBACK_BBOX
    assert bounding_box_for_circles([], padding_deg=0.5) == FALLBACK_BBOX


def test_single_circle_box_spans_its_radius():
    center = GeoPoint(lat=18.523, lon=73.857)
    bbox = bounding_box_for_circles([Circle(center=center, radius_m=2000)])

    lat_delta = 2000 / METERS_PER_DEG_LAT
    lon_delta = 2000 / meters_per_deg_lon(center.lat)
    assert bbox.south == pytest.approx(center.lat - lat_delta)
    assert bbox.north == pytest.approx(center.lat + lat_delta)
    assert bbox.west == pytest.approx(center.lon - lon_delta)
    assert bbox.east == pytest.approx(center.lon + lon_delta)


def test_box_encloses_every_circle():
    circles = [
        Circle(center=GeoPoint(lat=18.52, lon=73.85), radius_m=700),
        Circle(center=GeoPoint(lat=18.56, lon=73.80), radius_m=2000),
        Circle(center=GeoPoint(lat=18.48, lon=73.92), radius_m=100),
    ]

    bbox = bounding_box_for_circles(circles)

    for c in circles:
        lat_delta = c.radius_m / METERS_PER_DEG_LAT
        lon_delta = c.radius_m / meters_per_deg_lon(c.center.lat)
        assert bbox.south <= c.center.lat - lat_delta + 1e-12
        assert bbox.north >= c.center.lat + lat_delta - 1e-12
        assert bbox.west <= c.center.lon - lon_delta + 1e-12
        assert bbox.east >= c.center.lon + lon_delta - 1e-12


def test_padding_expands_each_side():
    circles = [Circle(center=GeoPoint(lat=18.52, lon=73.85), radius_m=700)]

    plain = bounding_box_for_circles(circles)
    padded = bounding_box_for_circles(circles, padding_deg=0.01)

    assert padded.south == pytest.approx(plain.south - 0.01)
    assert padded.west == pytest.approx(plain.west - 0.01)
    assert padded.north == pytest.approx(plain.north + 0.01)
    assert padded.east == pytest.approx(plain.east + 0.01)


def test_zero_radius_circle_collapses_to_its_center():
    bbox = bounding_box_for_circles([Circle(center=GeoPoint(lat=18.5, lon=73.8), radius_m=0)])
    assert bbox == BoundingBox(south=18.5, west=73.8, north=18.5, east=73.8)


def test_as_overpass_orders_south_west_north_east():
    bbox = BoundingBox(south=18.45, west=73.78, north=18.6, east=73.95)
    assert bbox.as_overpass() == "18.450000,73.780000,18.600000,73.950000"
