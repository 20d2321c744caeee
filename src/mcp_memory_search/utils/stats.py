"""Per-engine search statistics.

Latency is kept as a running mean (no per-sample storage). Updates are
best-effort: :meth:`SearchStatistics.record` never raises into the search
call that triggered it.
"""

import logging
import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class SearchStatistics:
    total_queries: int = 0
    average_latency_ms: float = 0.0
    cache_hits: int = 0
    errors: int = 0
    # pattern kind / rerank model / query type → count
    counters: Counter = field(default_factory=Counter)
    start_time: float = field(default_factory=time.time)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, label: str | None, elapsed_ms: float) -> None:
        """Count one completed query and fold its latency into the running mean."""
        try:
            with self._lock:
                self.total_queries += 1
                self.average_latency_ms += (elapsed_ms - self.average_latency_ms) / self.total_queries
                if label:
                    self.counters[label] += 1
        except Exception as e:
            logger.warning(f"Statistics update failed (non-fatal): {e}")

    def record_cache_hit(self) -> None:
        try:
            with self._lock:
                self.cache_hits += 1
        except Exception as e:
            logger.warning(f"Statistics update failed (non-fatal): {e}")

    def record_error(self) -> None:
        try:
            with self._lock:
                self.errors += 1
        except Exception as e:
            logger.warning(f"Statistics update failed (non-fatal): {e}")

    def reset(self) -> None:
        with self._lock:
            self.total_queries = 0
            self.average_latency_ms = 0.0
            self.cache_hits = 0
            self.errors = 0
            self.counters = Counter()
            self.start_time = time.time()

    def snapshot(self) -> dict[str, Any]:
        uptime = time.time() - self.start_time
        with self._lock:
            return {
                "total_queries": self.total_queries,
                "average_latency_ms": self.average_latency_ms,
                "cache_hits": self.cache_hits,
                "errors": self.errors,
                "counters": dict(self.counters),
                "uptime_seconds": uptime,
                "queries_per_minute": self.total_queries / (uptime / 60) if uptime > 0 else 0.0,
            }
