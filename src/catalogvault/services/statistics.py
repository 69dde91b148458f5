"""Cache and upstream call counters."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any


@dataclass
class CacheStatistics:
    """Counters kept by the cache store and the TMDB client."""

    hits: int = 0
    misses: int = 0
    writes: int = 0
    suppressed_writes: int = 0
    api_calls: int = 0
    api_errors: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_cache_hit(self) -> None:
        with self._lock:
            self.hits += 1

    def record_cache_miss(self) -> None:
        with self._lock:
            self.misses += 1

    def record_write(self) -> None:
        with self._lock:
            self.writes += 1

    def record_suppressed_write(self) -> None:
        with self._lock:
            self.suppressed_writes += 1

    def record_api_call(self, *, success: bool = True) -> None:
        with self._lock:
            self.api_calls += 1
            if not success:
                self.api_errors += 1

    @property
    def hit_ratio(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def reset(self) -> None:
        with self._lock:
            self.hits = self.misses = self.writes = 0
            self.suppressed_writes = self.api_calls = self.api_errors = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "cache_hits": self.hits,
            "cache_misses": self.misses,
            "cache_hit_ratio": round(self.hit_ratio, 4),
            "cache_writes": self.writes,
            "suppressed_writes": self.suppressed_writes,
            "api_calls": self.api_calls,
            "api_errors": self.api_errors,
        }
