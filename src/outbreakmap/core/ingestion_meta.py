"""
Data freshness reporting for one dashboard (or weather) request.

Ingestion clients call `record_ingestion_source()` with how a source was served; when the
API wraps the work in `capture_ingestion_meta()`, the records end up under
`meta["freshness"]`. Outside a capture, recording is a no-op.

Modes: live, cache, stale (expired copy served after an upstream error), none (failed),
placeholder (weather without an API key).
"""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, Literal

SourceMode = Literal["live", "cache", "stale", "none", "placeholder"]


@dataclass
class IngestionMeta:
    sources: dict[str, dict[str, Any]] = field(default_factory=dict)

    def record(self, name: str, mode: SourceMode, **details: Any) -> None:
        entry: dict[str, Any] = {"mode": mode}
        entry.update({k: v for k, v in details.items() if v is not None})
        self.sources[name] = entry


_current: contextvars.ContextVar[IngestionMeta | None] = contextvars.ContextVar(
    "outbreakmap_ingestion_meta", default=None
)


def record_ingestion_source(name: str, mode: SourceMode, **details: Any) -> None:
    meta = _current.get()
    if meta is not None and name:
        meta.record(name, mode, **details)


@contextmanager
def capture_ingestion_meta() -> Iterator[IngestionMeta]:
    meta = IngestionMeta()
    token = _current.set(meta)
    try:
        yield meta
    finally:
        _current.reset(token)
