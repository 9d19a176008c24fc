"""TTL cache: per-entry expiry, LRU bound, optional background sweep.

Memoises resolved emission factors so repeated lookups for a region do not
hit external providers. Expired entries are misses and are dropped when read;
sweep() (run periodically by start_sweeper()) removes the ones nobody reads.

Usage:
    cache = TTLCache(default_ttl=86_400)
    cache.set("US/CA", factor)
    cache.get("US/CA")      # factor until it expires, then None

Thread-safety: every operation holds one lock and never awaits, so the cache
is safe from threads and from overlapping asyncio tasks alike.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from ecotrace.observability import emit
from ecotrace.observability.events import CacheSwept, now_iso
from ecotrace.observability.logging import get_logger

logger = get_logger(__name__)

V = TypeVar("V")


@dataclass
class _Entry(Generic[V]):
    value: V
    expires_at: float


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    evictions: int = 0
    size: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "deletes": self.deletes,
            "evictions": self.evictions,
            "size": self.size,
            "hit_rate": round(self.hit_rate, 4),
        }


class TTLCache(Generic[V]):
    """Key/value store where every entry carries its own expiry."""

    def __init__(
        self,
        default_ttl: float = 86_400.0,
        max_size: int = 1000,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if default_ttl <= 0:
            raise ValueError(f"default_ttl must be positive, got {default_ttl}")
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self._default_ttl = default_ttl
        self._max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[str, _Entry[V]] = OrderedDict()
        self._lock = threading.Lock()
        self._stats = CacheStats()
        self._timer: threading.Timer | None = None
        self._sweep_interval = 0.0
        self._sweep_generation = 0
        self._closed = False

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def get(self, key: str) -> V | None:
        """Value for ``key``, or None when absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats.misses += 1
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                self._stats.misses += 1
                return None
            self._entries.move_to_end(key)
            self._stats.hits += 1
            return entry.value

    def set(self, key: str, value: V, ttl: float | None = None) -> None:
        ttl = self._default_ttl if ttl is None else ttl
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        with self._lock:
            self._entries[key] = _Entry(value=value, expires_at=self._clock() + ttl)
            self._entries.move_to_end(key)
            self._stats.sets += 1
            while len(self._entries) > self._max_size:
                self._entries.popitem(last=False)
                self._stats.evictions += 1

    def delete(self, key: str) -> bool:
        with self._lock:
            if self._entries.pop(key, None) is None:
                return False
            self._stats.deletes += 1
            return True

    def has(self, key: str) -> bool:
        """True if ``key`` holds an unexpired value. Does not touch stats or LRU order."""
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and self._clock() < entry.expires_at

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._stats = CacheStats()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._stats.hits,
                misses=self._stats.misses,
                sets=self._stats.sets,
                deletes=self._stats.deletes,
                evictions=self._stats.evictions,
                size=len(self._entries),
            )

    def sweep(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if now >= e.expires_at]
            for key in expired:
                del self._entries[key]
            size = len(self._entries)
        if expired:
            emit(CacheSwept(removed=len(expired), size=size, timestamp=now_iso()))
        return len(expired)

    # -- background sweeper ---------------------------------------------------

    def start_sweeper(self, interval: float) -> None:
        """Run sweep() every ``interval`` seconds on a daemon timer thread.

        Calling it again replaces the running sweeper instead of adding one.
        """
        if interval <= 0:
            raise ValueError(f"sweep interval must be positive, got {interval}")
        if self._timer is not None:
            self._timer.cancel()
        self._sweep_interval = interval
        self._closed = False
        self._sweep_generation += 1
        self._schedule_sweep(self._sweep_generation)

    def _schedule_sweep(self, generation: int) -> None:
        # A timer from a replaced sweeper may still be mid-sweep; it must not reschedule
        if self._closed or generation != self._sweep_generation:
            return
        self._timer = threading.Timer(self._sweep_interval, self._periodic_sweep, args=(generation,))
        self._timer.daemon = True
        self._timer.start()

    def _periodic_sweep(self, generation: int) -> None:
        try:
            self.sweep()
        except Exception:
            logger.error("cache.sweep_failed", exc_info=True)
        self._schedule_sweep(generation)

    def close(self) -> None:
        """Stop the background sweeper. Entries are kept."""
        self._closed = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
