"""
Arc-length highlight windows (legacy proximity method).

Earlier dashboard builds highlighted waterways differently from `segments_near_zones`:
every vertex that sits inside a cluster opens a window of at least 500 m (or the cluster
radius, whichever is larger) on each side, measured along the line. Overlapping windows are
merged, vertices covered by a window are masked, and masked runs become segments.

Selected with `proximity.method: arc_length`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from outbreakmap.core.geo import Circle, GeoPoint, haversine_m
from outbreakmap.spatial.segments import Segment, WaterFeature, polygon_touches_zones, segment_id

DEFAULT_MIN_EXTENSION_M = 500.0


@dataclass(frozen=True)
class HighlightWindow:
    """An interval along a polyline, in meters from its first vertex."""

    start_m: float
    end_m: float


def cumulative_arc_length_m(path: Sequence[GeoPoint]) -> list[float]:
    """Running distance from the first vertex to each vertex (first entry is 0)."""
    out: list[float] = []
    total = 0.0
    for i, p in enumerate(path):
        if i > 0:
            total += haversine_m(path[i - 1], p)
        out.append(total)
    return out


def highlight_windows(
    path: Sequence[GeoPoint],
    zones: Sequence[Circle],
    *,
    arc_lengths: Sequence[float] | None = None,
    min_extension_m: float = DEFAULT_MIN_EXTENSION_M,
) -> list[HighlightWindow]:
    """One window per (vertex, zone) pair where the vertex lies inside the zone."""
    s = list(arc_lengths) if arc_lengths is not None else cumulative_arc_length_m(path)
    windows: list[HighlightWindow] = []
    for i, vertex in enumerate(path):
        for zone in zones:
            if haversine_m(vertex, zone.center) > zone.radius_m:
                continue
            ext = max(float(min_extension_m), float(zone.radius_m))
            windows.append(HighlightWindow(start_m=s[i] - ext, end_m=s[i] + ext))
    return windows


def merge_windows(windows: Sequence[HighlightWindow]) -> list[HighlightWindow]:
    """Union overlapping or touching windows; result is sorted by start."""
    merged: list[HighlightWindow] = []
    for w in sorted(windows, key=lambda w: (w.start_m, w.end_m)):
        if merged and w.start_m <= merged[-1].end_m:
            last = merged[-1]
            if w.end_m > last.end_m:
                merged[-1] = HighlightWindow(start_m=last.start_m, end_m=w.end_m)
            continue
        merged.append(w)
    return merged


def mask_from_windows(arc_lengths: Sequence[float], merged: Sequence[HighlightWindow]) -> list[bool]:
    """Mark every vertex whose arc length falls inside a merged window."""
    mask: list[bool] = []
    j = 0
    for s in arc_lengths:
        # Both sequences are sorted, so the window cursor only moves forward.
        while j < len(merged) and merged[j].end_m < s:
            j += 1
        mask.append(j < len(merged) and merged[j].start_m <= s <= merged[j].end_m)
    return mask


def extract_masked_runs(feature_id: str, path: Sequence[GeoPoint], mask: Sequence[bool]) -> list[Segment]:
    """Turn contiguous masked runs of two or more vertices into segments."""
    out: list[Segment] = []
    run: list[GeoPoint] = []
    for vertex, on in zip(path, mask):
        if on:
            run.append(vertex)
            continue
        if len(run) >= 2:
            out.append(Segment(id=segment_id(feature_id, len(out)), path=tuple(run)))
        run = []
    if len(run) >= 2:
        out.append(Segment(id=segment_id(feature_id, len(out)), path=tuple(run)))
    return out


def highlighted_segments(
    features: Sequence[WaterFeature],
    zones: Sequence[Circle],
    *,
    min_extension_m: float = DEFAULT_MIN_EXTENSION_M,
) -> list[Segment]:
    """Arc-length counterpart of `segments_near_zones` (polygons use the same vertex rule)."""
    if not zones:
        return []
    out: list[Segment] = []
    for feature in features:
        if len(feature.path) < 2:
            continue
        if feature.is_polygon:
            if polygon_touches_zones(feature.path, zones):
                out.append(Segment(id=segment_id(feature.id, 0), path=tuple(feature.path)))
            continue
        s = cumulative_arc_length_m(feature.path)
        windows = highlight_windows(feature.path, zones, arc_lengths=s, min_extension_m=min_extension_m)
        if not windows:
            continue
        mask = mask_from_windows(s, merge_windows(windows))
        out.extend(extract_masked_runs(feature.id, feature.path, mask))
    return out
