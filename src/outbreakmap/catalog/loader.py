"""
Scenario loader.

A scenario is a JSON document with sensors, case reports, clusters, risk zones and health
facilities. The packaged default is a simulated outbreak in Pune; `scenario.path` in settings
points at a replacement file. We validate into typed Pydantic models so the spatial layer can
assume a consistent shape.
"""

from __future__ import annotations

import json
from importlib import resources
from pathlib import Path

from outbreakmap.core.env import resolve_project_path
from outbreakmap.domain.models import CaseReport, CaseType, GeoPoint, Scenario, Sensor, SensorReading, SensorStatus

DEFAULT_SCENARIO_FILE = "pune_scenario.json"


def load_scenario(path: str | Path | None = None) -> Scenario:
    """Load and validate a scenario JSON file (packaged Pune scenario when `path` is None)."""
    if path is None:
        text = resources.files("outbreakmap.catalog").joinpath(DEFAULT_SCENARIO_FILE).read_text(encoding="utf-8")
    else:
        text = resolve_project_path(path).read_text(encoding="utf-8")
    return Scenario.model_validate(json.loads(text))


def add_case(scenario: Scenario, *, lat: float, lon: float, case_type: CaseType) -> Scenario:
    """Return a copy of `scenario` with one new placeholder case at (lat, lon)."""
    n = len(scenario.cases) + 1
    confirmed = case_type == CaseType.confirmed
    case = CaseReport(
        id=f"case-{n}",
        position=GeoPoint(lat=lat, lon=lon),
        type=case_type,
        name=f"Patient {n}",
        symptoms=["High Fever", "Dehydration"] if confirmed else ["Fever", "Headache"],
        disease="Unconfirmed" if confirmed else "Suspected: Gastroenteritis",
    )
    return scenario.model_copy(update={"cases": [*scenario.cases, case]})


def add_sensor(scenario: Scenario, *, lat: float, lon: float, readings: list[SensorReading]) -> Scenario:
    """Return a copy of `scenario` with one new active sensor."""
    sensor = Sensor(
        id=f"sensor-{len(scenario.sensors) + 1}",
        position=GeoPoint(lat=lat, lon=lon),
        status=SensorStatus.active,
        readings=list(readings),
    )
    return scenario.model_copy(update={"sensors": [*scenario.sensors, sensor]})



def remove_sensor(scenario: Scenario, sensor_id: str) -> Scenario:
    """Return a copy of `scenario` without the sensor `sensor_id`.

    Raises:
        KeyError: No sensor has that id.
    """
    remaining = [s for s in scenario.sensors if s.id != sensor_id]
    if len(remaining) == len(scenario.sensors):
        raise KeyError(sensor_id)
    return scenario.model_copy(update={"sensors": remaining})
