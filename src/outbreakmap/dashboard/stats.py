"""
Sidebar statistics for a scenario.
"""

from __future__ import annotations

import math

from outbreakmap.domain.models import MapStats, Scenario, SensorStatus


def total_zone_area_km2(radii_m: list[float]) -> float:
    return sum(math.pi * float(r) ** 2 / 1_000_000 for r in radii_m)


def compute_stats(scenario: Scenario) -> MapStats:
    """Counts shown in the sidebar; the risk-zone area is pre-formatted with 2 decimals."""
    active = sum(1 for s in scenario.sensors if s.status != SensorStatus.inactive)
    area = total_zone_area_km2([z.radius_m for z in scenario.risk_zones])
    return MapStats(
        active_sensors=active,
        reported_cases=len(scenario.cases),
        contaminated_clusters=len(scenario.clusters),
        total_risk_zone_area_km2=f"{area:.2f}",
    )
