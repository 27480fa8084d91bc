"""
Candle cache statistics tracking.

Counts lookups served from memory, from disk and missed, plus write-backs,
so a long run can report how effective the cache was.
"""

from threading import RLock
from typing import Any

from loguru import logger


class CacheStatistics:
    """Thread-safe counters for the two-level candle cache."""

    def __init__(self) -> None:
        """Initialize cache statistics tracker."""
        self._stats_lock = RLock()
        self._memory_hits = 0
        self._disk_hits = 0
        self._misses = 0
        self._writes = 0
        self._write_failures = 0

    def record_memory_hit(self) -> None:
        with self._stats_lock:
            self._memory_hits += 1

    def record_disk_hit(self) -> None:
        with self._stats_lock:
            self._disk_hits += 1

    def record_miss(self) -> None:
        with self._stats_lock:
            self._misses += 1

    def record_write(self, succeeded: bool = True) -> None:
        """Record a write-back attempt."""
        with self._stats_lock:
            if succeeded:
                self._writes += 1
            else:
                self._write_failures += 1

    def get_hit_rate(self) -> float:
        """Calculate cache hit rate (either level) as percentage."""
        with self._stats_lock:
            hits = self._memory_hits + self._disk_hits
            total_requests = hits + self._misses
            if total_requests == 0:
                return 0.0
            return (hits / total_requests) * 100

    def get_stats(self) -> dict[str, Any]:
        """Get current statistics."""
        with self._stats_lock:
            return {
                "memory_hits": self._memory_hits,
                "disk_hits": self._disk_hits,
                "misses": self._misses,
                "writes": self._writes,
                "write_failures": self._write_failures,
                "hit_rate_percent": round(self.get_hit_rate(), 1),
            }

    def reset_stats(self) -> None:
        """Reset all statistics counters."""
        with self._stats_lock:
            cleared = self._memory_hits + self._disk_hits + self._misses
            self._memory_hits = 0
            self._disk_hits = 0
            self._misses = 0
            self._writes = 0
            self._write_failures = 0

            logger.debug(f"Cache statistics reset: {cleared} lookups cleared")
