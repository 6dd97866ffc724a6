from datetime import date

import pytest

from outbreakmap.catalog.loader import add_case, add_sensor, load_scenario, remove_sensor
from outbreakmap.catalog.readings import (
    BASELINE_BACTERIA_COUNT,
    BASELINE_WATER_QUALITY,
    flat_line_readings,
    parse_readings_csv,
    readings_for_new_sensor,
)
from outbreakmap.domain.models import CaseType, SensorStatus


def test_packaged_scenario_loads():
    scenario = load_scenario()

    assert [s.id for s in scenario.sensors] == ["sensor-1", "sensor-2", "sensor-3"]
    assert len(scenario.cases) == 9
    assert len(scenario.clusters) == 1
    assert scenario.risk_zones[0].radius_m == 2000
    assert scenario.sensors[1].status == SensorStatus.contaminated
    assert len(scenario.sensors[0].readings) == 10


def test_load_scenario_from_file(tmp_path):
    path = tmp_path / "scenario.json"
    path.write_text('{"name": "empty", "cases": []}', encoding="utf-8")

    scenario = load_scenario(path)

    assert scenario.name == "empty"
    assert scenario.sensors == []


def test_add_case_returns_a_copy_with_sequential_id():
    scenario = load_scenario()

    updated = add_case(scenario, lat=18.53, lon=73.87, case_type=CaseType.self_reported)

    assert len(scenario.cases) == 9
    new = updated.cases[-1]
    assert new.id == "case-10"
    assert new.name == "Patient 10"
    assert new.type == CaseType.self_reported
    assert new.disease == "Suspected: Gastroenteritis"


def test_add_sensor_is_active():
    scenario = load_scenario()
    readings = flat_line_readings(date(2025, 9, 1), today=date(2025, 9, 2))

    updated = add_sensor(scenario, lat=18.51, lon=73.84, readings=readings)

    assert updated.sensors[-1].id == "sensor-4"
    assert updated.sensors[-1].status == SensorStatus.active
    assert len(updated.sensors[-1].readings) == 2


def test_parse_readings_csv_skips_header_and_malformed_rows():
    text = (
        "date,waterQuality,bacteriaCount\n"
        "01-09-2025,80,12\n"
        "\n"
        "bad,row\n"
        "02-09-2025,x,3\n"
        "03-09-2025,,3\n"
        "04-09-2025, 70 , 15\n"
    )

    readings = parse_readings_csv(text)

    assert [(r.date, r.water_quality, r.bacteria_count) for r in readings] == [
        ("01-09-2025", 80, 12),
        ("04-09-2025", 70, 15),
    ]


def test_flat_line_readings_cover_each_day_inclusive():
    readings = flat_line_readings(date(2025, 9, 8), today=date(2025, 9, 10))

    assert [r.date for r in readings] == ["08-09-2025", "09-09-2025", "10-09-2025"]
    assert {r.water_quality for r in readings} == {BASELINE_WATER_QUALITY}
    assert {r.bacteria_count for r in readings} == {BASELINE_BACTERIA_COUNT}


def test_flat_line_readings_future_installation_yields_one_reading():
    readings = flat_line_readings(date(2025, 10, 1), today=date(2025, 9, 10))

    assert [r.date for r in readings] == ["01-10-2025"]


def test_readings_for_new_sensor_falls_back_when_csv_is_empty():
    today = date(2025, 9, 10)

    from_csv = readings_for_new_sensor(date(2025, 9, 1), "date,q,b\n05-09-2025,60,30\n", today=today)
    fallback = readings_for_new_sensor(date(2025, 9, 9), "date,q,b\nnot,a,row\n", today=today)

    assert [r.date for r in from_csv] == ["05-09-2025"]
    assert [r.date for r in fallback] == ["09-09-2025", "10-09-2025"]


def test_remove_sensor_returns_a_copy_without_it():
    scenario = load_scenario()

    updated = remove_sensor(scenario, "sensor-2")

    assert [s.id for s in updated.sensors] == ["sensor-1", "sensor-3"]
    assert len(scenario.sensors) == 3


def test_remove_sensor_rejects_unknown_ids():
    with pytest.raises(KeyError):
        remove_sensor(load_scenario(), "sensor-42")
