"""Time-boxed memoization of trust score lookups.

Cache strategy:
- TTL: entries are valid while ``now - cached_at < ttl_seconds`` (default 300s)
- Invalidation: the trust engine invalidates a peer after every update; a
  store read that an invalidation overtook is returned but not cached
- Capacity: at ``max_size`` entries, inserting a new peer evicts one
  arbitrary existing entry. This is deliberately *not* LRU; callers must not
  assume recency-based eviction.

A ``ScoreCache`` is an ordinary object owned by whoever hosts the engine;
there is no module-level instance. All state is guarded by a lock so one
cache can be shared between worker threads.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..core.clock import SystemClock
from ..core.metrics import MetricType, safe_emit
from ..core.ports import Clock, MetricsSink
from .models import TrustScore

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached score and when it was stored."""
    score: TrustScore
    cached_at: datetime
    ttl_seconds: float

    def age_seconds(self, now: datetime) -> float:
        return (now - self.cached_at).total_seconds()

    def is_valid(self, now: datetime) -> bool:
        return self.age_seconds(now) < self.ttl_seconds


@dataclass
class CacheStats:
    """Point-in-time cache statistics, TTLs re-checked at call time."""
    total: int
    valid: int
    expired: int
    max_size: int
    fill_percentage: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "valid": self.valid,
            "expired": self.expired,
            "max_size": self.max_size,
            "fill_percentage": self.fill_percentage,
        }


@dataclass
class _PendingLoad:
    """Fallback loads in flight for one peer.

    ``generation`` moves on every invalidation, so a load that started
    before it can tell its result is stale.
    """
    loaders: int = 0
    generation: int = 0


class ScoreCache:
    """Process-local trust score cache.

    Example:
        cache = ScoreCache(clock=SystemClock())
        score = cache.get_or_compute("peer-a", lambda: repository.get("peer-a"))
    """

    def __init__(
        self,
        clock: Clock | None = None,
        ttl_seconds: float | None = None,
        max_size: int | None = None,
        metrics: MetricsSink | None = None,
    ) -> None:
        if ttl_seconds is None or max_size is None:
            from ..core.config import get_config

            config = get_config()
            ttl_seconds = config.score_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
            max_size = config.score_cache_max_size if max_size is None else max_size
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_size <= 0:
            raise ValueError("max_size must be positive")

        self._clock = clock or SystemClock()
        self._ttl_seconds = float(ttl_seconds)
        self._max_size = max_size
        self._metrics = metrics
        self._entries: dict[str, CacheEntry] = {}
        self._pending: dict[str, _PendingLoad] = {}
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    @property
    def max_size(self) -> int:
        return self._max_size

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, peer_id: object) -> bool:
        with self._lock:
            return peer_id in self._entries

    def peek(self, peer_id: str) -> CacheEntry | None:
        """Return the raw entry (valid or not) without touching it."""
        with self._lock:
            return self._entries.get(peer_id)

    def get_or_compute(
        self,
        peer_id: str,
        fallback: Callable[[], TrustScore | None],
    ) -> TrustScore:
        """Return a valid cached score, or compute, cache and return one.

        If ``fallback`` yields nothing the neutral default is cached and
        returned. It is never persisted. A computed score is not cached when
        ``peer_id`` was invalidated while ``fallback`` ran, since it may
        predate the update that caused the invalidation.
        """
        now = self._clock.now()
        with self._lock:
            entry = self._entries.get(peer_id)
            if entry is not None and entry.is_valid(now):
                hit = entry.score
            else:
                if entry is not None:
                    del self._entries[peer_id]
                hit = None
                pending = self._pending.setdefault(peer_id, _PendingLoad())
                pending.loaders += 1
                generation = pending.generation

        if hit is not None:
            safe_emit(self._metrics, MetricType.CACHE_HIT, 1.0, peer_id)
            return hit

        safe_emit(self._metrics, MetricType.CACHE_MISS, 1.0, peer_id)
        score = None
        try:
            score = fallback()
            if score is None:
                score = TrustScore.neutral(peer_id, self._clock.now())
                logger.debug(f"No stored score for {peer_id}; caching neutral default")
        finally:
            with self._lock:
                pending = self._pending[peer_id]
                pending.loaders -= 1
                if pending.loaders == 0:
                    del self._pending[peer_id]
                if score is not None:
                    if pending.generation == generation:
                        self._store(peer_id, score)
                    else:
                        logger.debug(f"Score for {peer_id} changed during load; not caching it")
        return score

    def put(self, peer_id: str, score: TrustScore) -> None:
        """Insert or replace ``peer_id``'s entry with a fresh timestamp."""
        with self._lock:
            self._store(peer_id, score)

    def _store(self, peer_id: str, score: TrustScore) -> None:
        if peer_id not in self._entries and len(self._entries) >= self._max_size:
            victim = next(iter(self._entries))
            del self._entries[victim]
            logger.debug(f"Score cache full ({self._max_size}); evicted {victim}")
        self._entries[peer_id] = CacheEntry(
            score=score, cached_at=self._clock.now(), ttl_seconds=self._ttl_seconds
        )

    def invalidate(self, peer_id: str) -> None:
        with self._lock:
            self._entries.pop(peer_id, None)
            pending = self._pending.get(peer_id)
            if pending is not None:
                pending.generation += 1

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            for pending in self._pending.values():
                pending.generation += 1

    def stats(self) -> CacheStats:
        now = self._clock.now()
        with self._lock:
            total = len(self._entries)
            valid = sum(1 for entry in self._entries.values() if entry.is_valid(now))
        return CacheStats(
            total=total,
            valid=valid,
            expired=total - valid,
            max_size=self._max_size,
            fill_percentage=(total / self._max_size) * 100.0,
        )
