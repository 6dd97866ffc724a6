"""
On-disk JSON cache for upstream responses.

Layout: `<cache.dir>/<namespace>/<sha256(namespace:key)>.json`, each file an envelope of
`created_at_unix`, `ttl_seconds` and `value`. Keys are hashed because bbox keys carry
commas and dots.

Expired envelopes stay on disk: `get_or_set(..., stale_if_error=True)` serves them when the
upstream fails. Namespaces in use are `overpass` (waterway geometry, a week) and `weather`
(ten minutes).
"""

from __future__ import annotations

import contextvars
import json
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from hashlib import sha256
from pathlib import Path
from typing import Any, Callable, Iterator


@dataclass(frozen=True)
class CacheEntry:
    created_at_unix: int
    ttl_seconds: int
    value: Any

    def is_expired(self, now: int, ttl_seconds: int | None = None) -> bool:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        return now - self.created_at_unix > ttl


@dataclass
class CacheStats:
    """Cache traffic for one request, reported under `meta["cache"]`."""

    hits: int = 0
    misses: int = 0
    expired: int = 0
    sets: int = 0
    stale_fallbacks: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


_stats: contextvars.ContextVar[CacheStats | None] = contextvars.ContextVar("outbreakmap_cache_stats", default=None)


def _bump(*fields: str) -> None:
    stats = _stats.get()
    if stats is None:
        return
    for name in fields:
        setattr(stats, name, getattr(stats, name) + 1)


@contextmanager
def record_cache_stats() -> Iterator[CacheStats]:
    """Count cache traffic inside the block (per thread / task via contextvars)."""
    stats = CacheStats()
    token = _stats.set(stats)
    try:
        yield stats
    finally:
        _stats.reset(token)


class FileCache:
    def __init__(self, base_dir: Path, enabled: bool = True, default_ttl_seconds: int = 86400):
        self._base_dir = Path(base_dir)
        self._enabled = enabled
        self._default_ttl_seconds = default_ttl_seconds

    def _key_path(self, namespace: str, key: str) -> Path:
        digest = sha256(f"{namespace}:{key}".encode("utf-8")).hexdigest()
        return self._base_dir / namespace / f"{digest}.json"

    def _read_entry(self, namespace: str, key: str) -> CacheEntry | None:
        if not self._enabled:
            return None
        path = self._key_path(namespace, key)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return CacheEntry(int(raw["created_at_unix"]), int(raw["ttl_seconds"]), raw["value"])
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError):
            # Corrupt or half-written envelope counts as a miss.
            return None

    def get_entry_meta(self, namespace: str, key: str) -> dict[str, int] | None:
        """`created_at_unix` and `ttl_seconds` of the stored envelope, if any."""
        entry = self._read_entry(namespace, key)
        if entry is None:
            return None
        return {"created_at_unix": entry.created_at_unix, "ttl_seconds": entry.ttl_seconds}

    def get(self, namespace: str, key: str, ttl_seconds: int | None = None) -> Any | None:
        """Fresh value or None (`ttl_seconds` overrides the stored TTL)."""
        if not self._enabled:
            return None
        entry = self._read_entry(namespace, key)
        if entry is None:
            _bump("misses")
            return None
        if entry.is_expired(int(time.time()), ttl_seconds):
            _bump("misses", "expired")
            return None
        _bump("hits")
        return entry.value

    def get_stale(self, namespace: str, key: str) -> Any | None:
        entry = self._read_entry(namespace, key)
        return None if entry is None else entry.value

    def set(self, namespace: str, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Store a JSON-serializable value (temp file, then atomic replace)."""
        if not self._enabled:
            return
        path = self._key_path(namespace, key)
        path.parent.mkdir(parents=True, exist_ok=True)
        envelope = {
            "created_at_unix": int(time.time()),
            "ttl_seconds": int(self._default_ttl_seconds if ttl_seconds is None else ttl_seconds),
            "value": value,
        }
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(envelope, ensure_ascii=False), encoding="utf-8")
        tmp.replace(path)
        _bump("sets")

    def get_or_set(
        self,
        namespace: str,
        key: str,
        builder: Callable[[], Any],
        ttl_seconds: int | None = None,
        *,
        stale_if_error: bool = False,
        stale_predicate: Callable[[Exception], bool] | None = None,
    ) -> Any:
        """Cached value, or `builder()` stored under `key`.

        With `stale_if_error`, an exception from `builder()` is answered with the expired
        value still on disk, provided `stale_predicate(exc)` agrees (no predicate: always).
        Without a stale copy the exception propagates.
        """
        cached = self.get(namespace, key, ttl_seconds=ttl_seconds)
        if cached is not None:
            return cached
        try:
            value = builder()
        except Exception as exc:
            if stale_if_error and (stale_predicate is None or stale_predicate(exc)):
                stale = self.get_stale(namespace, key)
                if stale is not None:
                    _bump("stale_fallbacks")
                    return stale
            raise
        self.set(namespace, key, value, ttl_seconds=ttl_seconds)
        return value
