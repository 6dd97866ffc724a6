"""
Per-request settings overrides.

`POST /api/dashboard` accepts `settings_overrides` so a single map view can try other
proximity knobs (wider risk buffer, legacy arc-length method, more bbox padding) without
touching server config. Only whitelisted keys pass; the result is re-validated by Pydantic.

Secrets, upstream URLs and file paths are never overridable: a request must not be able to
point the server at other hosts or files.
"""

from __future__ import annotations

from typing import Any, Mapping

from outbreakmap.config.settings import Settings

# True: anything below this key. Mapping: only the listed children.
OVERRIDABLE: Mapping[str, Any] = {
    "proximity": True,
    "map": True,
    "ingestion": {"overpass": {"bbox_padding_deg": True}},
}


def _leaf_path(dotted: str, value: Any) -> str:
    while isinstance(value, Mapping) and value:
        key, value = next(iter(value.items()))
        dotted = f"{dotted}.{key}"
    return dotted


def _whitelisted(overrides: Mapping[str, Any], allowed: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in overrides.items():
        dotted = f"{prefix}{key}"
        rule = allowed.get(key)
        if rule is None:
            raise ValueError(f"settings_overrides contains a disallowed key: '{_leaf_path(dotted, value)}'")
        if rule is True:
            out[key] = value
        elif isinstance(value, Mapping):
            out[key] = _whitelisted(value, rule, f"{dotted}.")
        else:
            raise ValueError(f"settings_overrides key '{dotted}' must be a mapping")
    return out


def _merged(base: dict[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in patch.items():
        current = result.get(key)
        result[key] = _merged(current, value) if isinstance(value, Mapping) and isinstance(current, dict) else value
    return result


def apply_settings_overrides(settings: Settings, overrides: Mapping[str, Any] | None) -> Settings:
    """Return `settings` with the whitelisted `overrides` applied (a new object).

    Raises:
        ValueError: Disallowed key, wrong shape, or a value that fails validation.
    """
    if not overrides:
        return settings
    patch = _whitelisted(overrides, OVERRIDABLE)
    return Settings.model_validate(_merged(settings.model_dump(mode="python"), patch))
