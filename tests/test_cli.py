import json

from outbreakmap.cli import main


def test_cli_stats(capsys):
    assert main(["stats"]) == 0

    out = json.loads(capsys.readouterr().out)
    assert out["reported_cases"] == 9


def test_cli_aggregate_json_with_added_case(capsys):
    assert main(["aggregate", "--zoom", "17", "--json", "--add-case", "18.53", "73.87", "Self-Reported"]) == 0

    groups = json.loads(capsys.readouterr().out)
    assert len(groups) == 10
    assert groups[-1]["id"] == "case-10"


def test_cli_add_sensor_uses_flat_line_without_csv(capsys):
    assert main(["add-sensor", "--lat", "18.5", "--lon", "73.8", "--installed", "2999-01-01"]) == 0

    out = json.loads(capsys.readouterr().out)
    assert out["sensor"]["id"] == "sensor-4"
    assert [r["date"] for r in out["sensor"]["readings"]] == ["01-01-2999"]
    assert out["stats"]["active_sensors"] == 3


def test_cli_dashboard_from_saved_overpass_response(tmp_path, capsys):
    payload = {
        "elements": [
            {
                "type": "way",
                "id": 7,
                "tags": {"waterway": "river"},
                "geometry": [{"lat": 18.523, "lon": round(73.84 + 0.005 * i, 3)} for i in range(9)],
            }
        ]
    }
    path = tmp_path / "overpass.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    assert main(["dashboard", "--zoom", "13", "--waterways-file", str(path), "--json"]) == 0

    result = json.loads(capsys.readouterr().out)
    assert [s["id"] for s in result["contaminated_water"]] == ["way/7:0"]


def test_cli_remove_sensor_updates_stats(capsys):
    assert main(["remove-sensor", "--id", "sensor-1"]) == 0

    out = json.loads(capsys.readouterr().out)
    assert out["sensors"] == ["sensor-2", "sensor-3"]
    assert out["stats"]["active_sensors"] == 1


def test_cli_remove_sensor_unknown_id(capsys):
    assert main(["remove-sensor", "--id", "sensor-9"]) == 1

    assert "sensor-9" in capsys.readouterr().err
