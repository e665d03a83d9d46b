"""In-process counters and timings for a crop session.

Usage:
    from framecrop.image_engine.metrics import metrics
    metrics.inc("loader.requests")
    with metrics.timed("extractor.extract"):
        ...
    metrics.counter("loader.requests")
    metrics.timing_summary()["extractor.extract"]["mean"]
"""

from __future__ import annotations

import time
from collections import defaultdict
from collections.abc import Iterator
from contextlib import contextmanager
from threading import RLock
from typing import Any

# Counters emitted by framecrop itself.
COUNTER_KEYS = ("loader.requests", "loader.stale_results", "engine.loads", "extractor.encode_errors")


class Metrics:
    """Thread-safe: the decode worker records timings while the engine counts."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._counters: dict[str, int] = defaultdict(int)
        self._timings: dict[str, list[float]] = defaultdict(list)

    def inc(self, key: str, amount: int = 1) -> None:
        with self._lock:
            self._counters[key] += int(amount)

    def counter(self, key: str) -> int:
        with self._lock:
            return self._counters.get(key, 0)

    def record(self, key: str, seconds: float) -> None:
        with self._lock:
            self._timings[key].append(float(seconds))

    @contextmanager
    def timed(self, key: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record(key, time.perf_counter() - start)

    def timing_summary(self) -> dict[str, dict[str, float]]:
        """Per timing key: count, total, mean and max in seconds."""
        with self._lock:
            out: dict[str, dict[str, float]] = {}
            for key, values in self._timings.items():
                if not values:
                    continue
                total = sum(values)
                out[key] = {
                    "count": float(len(values)),
                    "total": total,
                    "mean": total / len(values),
                    "max": max(values),
                }
            return out

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "timings": {k: list(v) for k, v in self._timings.items()},
            }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._timings.clear()


metrics = Metrics()
