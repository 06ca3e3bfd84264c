"""Thread-safe TTL cache for aggregated dashboard responses."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from threading import Lock
from typing import Any, Generic, TypeVar

from app.observability.metrics import metrics

logger = logging.getLogger(__name__)

_DEFAULT_TTL_SECONDS = 300.0

_V = TypeVar("_V")


@dataclass(frozen=True)
class _CacheEntry(Generic[_V]):
    stored_at: float
    expires_at: float
    value: _V


@dataclass(frozen=True)
class CacheHit(Generic[_V]):
    value: _V
    age_seconds: float


class TTLCache(Generic[_V]):
    """Keyed cache whose entries expire ``ttl_seconds`` after being written."""

    def __init__(
        self,
        *,
        ttl_seconds: float = _DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        name: str = "default",
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._name = name
        self._entries: dict[str, _CacheEntry[_V]] = {}
        self._hits = 0
        self._misses = 0
        self._lock = Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def stats(self) -> dict[str, int]:
        with self._lock:
            return {"hits": self._hits, "misses": self._misses}

    def get(self, key: str) -> CacheHit[_V] | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                hit = None
            elif entry.expires_at <= now:
                self._entries.pop(key, None)
                self._misses += 1
                hit = None
            else:
                self._hits += 1
                hit = CacheHit(value=entry.value, age_seconds=now - entry.stored_at)
        if hit is None:
            metrics.increment("cache.miss", tags={"cache": self._name})
            logger.debug("premises.cache.miss", extra={"key": key})
            return None
        metrics.increment("cache.hit", tags={"cache": self._name})
        logger.info("premises.cache.hit", extra={"key": key, "age_seconds": round(hit.age_seconds)})
        return hit

    def set(self, key: str, value: _V) -> None:
        now = self._clock()
        with self._lock:
            self._entries[key] = _CacheEntry(stored_at=now, expires_at=now + self._ttl, value=value)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
        logger.info("premises.cache.cleared", extra={"cache": self._name, "removed": removed})
        return removed

    def status(self) -> dict[str, Any]:
        """Snapshot of live entries with their age and remaining lifetime."""
        now = self._clock()
        with self._lock:
            items = [
                {
                    "key": key,
                    "age": round(now - entry.stored_at, 3),
                    "remaining": round(max(0.0, entry.expires_at - now), 3),
                    "expired": entry.expires_at <= now,
                }
                for key, entry in self._entries.items()
            ]
        return {
            "size": len(items),
            "items": items,
            "timestamp": datetime.now(UTC).isoformat(),
        }
