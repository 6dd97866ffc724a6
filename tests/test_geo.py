import pytest

from outbreakmap.core.geo import (
    METERS_PER_DEG_LAT,
    GeoPoint,
    haversine_m,
    meters_per_deg_lon,
    point_to_segment_distance_m,
)


def test_haversine_zero_for_same_point_and_symmetric():
    a = GeoPoint(lat=18.5204, lon=73.8567)
    b = GeoPoint(lat=18.5300, lon=73.8767)

    assert haversine_m(a, a) == 0
    assert haversine_m(a, b) > 0
    assert haversine_m(a, b) == pytest.approx(haversine_m(b, a), rel=1e-12)


def test_haversine_one_degree_of_latitude():
    d = haversine_m(GeoPoint(lat=0.0, lon=0.0), GeoPoint(lat=1.0, lon=0.0))
    assert d == pytest.approx(111_194.93, rel=1e-6)


def test_meters_per_degree_longitude_shrinks_toward_poles():
    assert meters_per_deg_lon(0) == pytest.approx(METERS_PER_DEG_LAT)
    assert meters_per_deg_lon(60) == pytest.approx(METERS_PER_DEG_LAT / 2, rel=1e-9)
    assert meters_per_deg_lon(89) < meters_per_deg_lon(45) < meters_per_deg_lon(10)


def test_point_on_segment_has_zero_distance_and_proportional_fraction():
    a = GeoPoint(lat=18.5, lon=73.80)
    b = GeoPoint(lat=18.5, lon=73.90)

    mid = point_to_segment_distance_m(GeoPoint(lat=18.5, lon=73.85), a, b)
    quarter = point_to_segment_distance_m(GeoPoint(lat=18.5, lon=73.825), a, b)

    assert mid.distance_m == pytest.approx(0.0, abs=1e-6)
    assert mid.fraction == pytest.approx(0.5)
    assert quarter.fraction == pytest.approx(0.25)
    assert mid.segment_length_m == pytest.approx(0.1 * meters_per_deg_lon(18.5))


def test_perpendicular_distance_uses_local_plane():
    a = GeoPoint(lat=18.5, lon=73.80)
    b = GeoPoint(lat=18.5, lon=73.90)

    proj = point_to_segment_distance_m(GeoPoint(lat=18.51, lon=73.85), a, b)

    assert proj.distance_m == pytest.approx(0.01 * METERS_PER_DEG_LAT, rel=1e-6)
    assert proj.fraction == pytest.approx(0.5)


def test_fraction_is_clamped_beyond_endpoints():
    a = GeoPoint(lat=18.5, lon=73.80)
    b = GeoPoint(lat=18.5, lon=73.90)

    past_b = point_to_segment_distance_m(GeoPoint(lat=18.5, lon=74.00), a, b)
    before_a = point_to_segment_distance_m(GeoPoint(lat=18.5, lon=73.70), a, b)

    assert past_b.fraction == 1.0
    assert past_b.distance_m == pytest.approx(0.1 * meters_per_deg_lon(18.5), rel=1e-6)
    assert before_a.fraction == 0.0


def test_degenerate_segment_falls_back_to_point_distance():
    a = GeoPoint(lat=18.5, lon=73.8)
    p = GeoPoint(lat=18.51, lon=73.8)

    proj = point_to_segment_distance_m(p, a, a)

    assert proj.fraction == 0.0
    assert proj.segment_length_m == 0.0
    assert proj.distance_m == pytest.approx(haversine_m(p, a))
