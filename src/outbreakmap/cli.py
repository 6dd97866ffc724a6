"""
OutbreakMap CLI entrypoint.

This CLI is intended for quick local inspection of the spatial engine without a map frontend.
It delegates to `outbreakmap.spatial` and `outbreakmap.dashboard`.
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import date
from pathlib import Path
from typing import Any

from outbreakmap.catalog.loader import add_case, add_sensor, load_scenario, remove_sensor
from outbreakmap.catalog.readings import readings_for_new_sensor
from outbreakmap.config.settings import Settings, get_settings
from outbreakmap.core.logging import configure_logging
from outbreakmap.dashboard.build import build_cache, build_dashboard, group_to_out, waterway_bbox
from outbreakmap.dashboard.stats import compute_stats
from outbreakmap.domain.models import CaseType, Scenario
from outbreakmap.ingestion.overpass_client import OverpassClient, parse_waterway_elements
from outbreakmap.spatial.aggregate import aggregate_cases
from outbreakmap.spatial.segments import WaterFeature


def _load(args: argparse.Namespace) -> tuple[Settings, Scenario]:
    settings = get_settings()
    path = args.scenario or settings.scenario.path
    return settings, load_scenario(path)


def _waterways(args: argparse.Namespace, settings: Settings, scenario: Scenario) -> list[WaterFeature]:
    """Waterways from a saved Overpass response, or live (fail-open) when no file is given."""
    if args.waterways_file:
        payload = json.loads(Path(args.waterways_file).read_text(encoding="utf-8"))
        return parse_waterway_elements(payload)
    client = OverpassClient(settings, build_cache(settings))
    return client.get_waterways(waterway_bbox(scenario, settings))


def _cmd_aggregate(args: argparse.Namespace) -> int:
    _, scenario = _load(args)
    for lat, lon, case_type in args.add_case:
        scenario = add_case(scenario, lat=float(lat), lon=float(lon), case_type=CaseType(case_type))
    groups = [group_to_out(g) for g in aggregate_cases(scenario.cases, int(args.zoom))]
    if args.json:
        print(json.dumps([g.model_dump(mode="json") for g in groups], ensure_ascii=False, indent=2))
        return 0
    print(f"zoom={args.zoom} groups={len(groups)}")
    for g in groups:
        ids = ", ".join(m.id for m in g.members)
        print(f"  {g.id:<28} {g.type.value:<14} n={g.member_count:<3} r={g.marker_radius:.1f}  [{ids}]")
    return 0


def _cmd_add_sensor(args: argparse.Namespace) -> int:
    """Preview a new sensor (CSV readings or flat baseline) and the resulting stats."""
    _, scenario = _load(args)
    installed = date.fromisoformat(args.installed)
    csv_text = Path(args.csv).read_text(encoding="utf-8") if args.csv else None
    readings = readings_for_new_sensor(installed, csv_text)
    scenario = add_sensor(scenario, lat=float(args.lat), lon=float(args.lon), readings=readings)
    payload = {
        "sensor": scenario.sensors[-1].model_dump(mode="json"),
        "stats": compute_stats(scenario).model_dump(mode="json"),
    }
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


def _cmd_remove_sensor(args: argparse.Namespace) -> int:
    """Preview the scenario stats after removing a sensor."""
    _, scenario = _load(args)
    try:
        scenario = remove_sensor(scenario, args.id)
    except KeyError:
        print(f"Unknown sensor id: {args.id}", file=sys.stderr)
        return 1
    payload = {
        "sensors": [s.id for s in scenario.sensors],
        "stats": compute_stats(scenario).model_dump(mode="json"),
    }
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


def _cmd_stats(args: argparse.Namespace) -> int:
    _, scenario = _load(args)
    print(json.dumps(compute_stats(scenario).model_dump(mode="json"), ensure_ascii=False, indent=2))
    return 0


def _cmd_bbox(args: argparse.Namespace) -> int:
    settings, scenario = _load(args)
    if args.padding is not None:
        overpass = settings.ingestion.overpass.model_copy(update={"bbox_padding_deg": float(args.padding)})
        ingestion = settings.ingestion.model_copy(update={"overpass": overpass})
        settings = settings.model_copy(update={"ingestion": ingestion})
    print(waterway_bbox(scenario, settings).as_overpass())
    return 0


def _cmd_waterways(args: argparse.Namespace) -> int:
    settings, scenario = _load(args)
    features = _waterways(args, settings, scenario)
    polygons = sum(1 for f in features if f.is_polygon)
    print(f"features={len(features)} lines={len(features) - polygons} polygons={polygons}")
    for f in features:
        kind = "polygon" if f.is_polygon else "line"
        print(f"  {f.id:<24} {kind:<8} vertices={len(f.path):<5} {f.name or ''}")
    return 0


def _cmd_dashboard(args: argparse.Namespace) -> int:
    settings, scenario = _load(args)
    zoom = int(args.zoom) if args.zoom is not None else settings.map.default_zoom
    features = _waterways(args, settings, scenario)
    result = build_dashboard(scenario, zoom=zoom, waterways=features, settings=settings)

    if args.json:
        print(json.dumps(result.model_dump(mode="json"), ensure_ascii=False, indent=2))
        return 0

    s = result.stats
    print(f"Generated at: {result.generated_at.isoformat()}")
    print(
        f"Sensors active={s.active_sensors} cases={s.reported_cases} "
        f"clusters={s.contaminated_clusters} risk_area_km2={s.total_risk_zone_area_km2}"
    )
    print(f"Case groups (zoom={zoom}): {len(result.groups)}")
    print(f"Contaminated water segments: {len(result.contaminated_water)}")
    print(f"At-risk water segments: {len(result.at_risk_water)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the OutbreakMap CLI."""
    parser = argparse.ArgumentParser(prog="outbreakmap")
    parser.add_argument("--scenario", type=str, default=None, help="Scenario JSON (default: packaged Pune scenario)")
    sub = parser.add_subparsers(dest="command", required=True)

    agg = sub.add_parser("aggregate", help="Group case reports for a zoom level.")
    agg.add_argument("--zoom", type=int, required=True)
    agg.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    agg.add_argument(
        "--add-case",
        nargs=3,
        action="append",
        default=[],
        metavar=("LAT", "LON", "TYPE"),
        help="Repeatable. Add a case before grouping (TYPE: Confirmed or Self-Reported).",
    )
    agg.set_defaults(func=_cmd_aggregate)

    st = sub.add_parser("stats", help="Sidebar statistics for the scenario.")
    st.set_defaults(func=_cmd_stats)

    sr = sub.add_parser("add-sensor", help="Preview a new sensor and its starting readings.")
    sr.add_argument("--lat", type=float, required=True)
    sr.add_argument("--lon", type=float, required=True)
    sr.add_argument("--installed", type=str, required=True, help="Installation date (YYYY-MM-DD)")
    sr.add_argument("--csv", type=str, default=None, help="CSV with header: date,waterQuality,bacteriaCount")
    sr.set_defaults(func=_cmd_add_sensor)

    rs = sub.add_parser("remove-sensor", help="Preview the stats after removing a sensor.")
    rs.add_argument("--id", type=str, required=True, help="Sensor id, e.g. sensor-2")
    rs.set_defaults(func=_cmd_remove_sensor)

    bb = sub.add_parser("bbox", help="Print the Overpass bbox covering clusters and risk zones.")
    bb.add_argument("--padding", type=float, default=None, help="Padding in degrees (default from config)")
    bb.set_defaults(func=_cmd_bbox)

    ww = sub.add_parser("waterways", help="Fetch (or read) waterway features around the scenario.")
    ww.add_argument("--waterways-file", type=str, default=None, help="Saved Overpass JSON response")
    ww.set_defaults(func=_cmd_waterways)

    db = sub.add_parser("dashboard", help="Build every map overlay for a zoom level.")
    db.add_argument("--zoom", type=int, default=None)
    db.add_argument("--waterways-file", type=str, default=None, help="Saved Overpass JSON response")
    db.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    db.set_defaults(func=_cmd_dashboard)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m outbreakmap.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
