from __future__ import annotations

import pytest

from outbreakmap.config.overrides import apply_settings_overrides
from outbreakmap.config.settings import get_settings


def test_apply_settings_overrides_returns_same_object_when_none():
    settings = get_settings()

    out = apply_settings_overrides(settings, None)

    # Fast path: no rebuild.
    assert out is settings


def test_apply_settings_overrides_can_override_proximity_knobs():
    settings = get_settings()

    out = apply_settings_overrides(settings, {"proximity": {"risk_buffer_m": 250, "method": "arc_length"}})

    assert out.proximity.risk_buffer_m == 250
    assert out.proximity.method == "arc_length"
    # Shared settings are cached; they must not leak across requests.
    assert settings.proximity.risk_buffer_m != 250


def test_apply_settings_overrides_allows_bbox_padding_only_under_ingestion():
    settings = get_settings()

    out = apply_settings_overrides(settings, {"ingestion": {"overpass": {"bbox_padding_deg": 0.05}}})
    assert out.ingestion.overpass.bbox_padding_deg == 0.05

    with pytest.raises(ValueError, match=r"ingestion\.overpass\.base_url"):
        apply_settings_overrides(settings, {"ingestion": {"overpass": {"base_url": "http://evil"}}})


def test_apply_settings_overrides_rejects_disallowed_keys_with_clear_path():
    settings = get_settings()

    with pytest.raises(ValueError, match=r"scenario\.path"):
        apply_settings_overrides(settings, {"scenario": {"path": "/etc/passwd"}})


def test_apply_settings_overrides_rejects_wrong_value_shapes_for_restricted_subtrees():
    settings = get_settings()

    with pytest.raises(ValueError, match=r"settings_overrides key 'ingestion' must be a mapping"):
        apply_settings_overrides(settings, {"ingestion": 1})


def test_apply_settings_overrides_revalidates_values():
    settings = get_settings()

    with pytest.raises(ValueError):
        apply_settings_overrides(settings, {"proximity": {"method": "nearest"}})


def test_apply_settings_overrides_names_the_first_leaf_of_a_disallowed_subtree():
    settings = get_settings()

    with pytest.raises(ValueError, match=r"'cache\.dir'"):
        apply_settings_overrides(settings, {"cache": {"dir": "/tmp/elsewhere", "enabled": False}})

    with pytest.raises(ValueError, match=r"'app'$"):
        apply_settings_overrides(settings, {"app": 1})
