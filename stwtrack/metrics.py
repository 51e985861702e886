"""
Run Metrics Module.

Collects counters and timings for a single pipeline run:
- Timing of the pipeline stages
- Current lookup counters (exact hits, fallback hits, misses, cache hits)
- Slice counters (processed, dropped)
- Gauges for slices per hour and memoized lookups released after a run

Usage:
    from stwtrack.metrics import metrics, timed

    @timed("pipeline_run")
    def run():
        ...

    with metrics.timer("aggregate"):
        hourly = aggregate_hourly(slices)

    metrics.increment("current_misses")
    metrics.log_summary()
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from functools import wraps
from threading import Lock
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class TimingStats:
    """Statistics for a timed operation."""
    name: str
    count: int = 0
    total_ms: float = 0.0
    min_ms: float = float('inf')
    max_ms: float = 0.0

    @property
    def avg_ms(self) -> float:
        return self.total_ms / self.count if self.count > 0 else 0.0

    def record(self, duration_ms: float):
        """Record a timing measurement."""
        self.count += 1
        self.total_ms += duration_ms
        self.min_ms = min(self.min_ms, duration_ms)
        self.max_ms = max(self.max_ms, duration_ms)

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "avg_ms": round(self.avg_ms, 3),
            "min_ms": round(self.min_ms, 3) if self.min_ms != float('inf') else 0,
            "max_ms": round(self.max_ms, 3),
            "total_ms": round(self.total_ms, 3),
        }


class PerformanceMetrics:
    """
    Metrics collector for batch runs.

    Thread-safe so that per-slice lookups may be mapped over a pool
    without losing counts.
    """

    def __init__(self):
        self._timings: Dict[str, TimingStats] = {}
        self._counters: Dict[str, int] = {}
        self._gauges: Dict[str, float] = {}
        self._lock = Lock()
        self._start_time = datetime.now()

    @contextmanager
    def timer(self, name: str):
        """
        Context manager for timing a block of code.

        Usage:
            with metrics.timer("operation_name"):
                do_something()
        """
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            with self._lock:
                if name not in self._timings:
                    self._timings[name] = TimingStats(name=name)
                self._timings[name].record(elapsed_ms)

    def increment(self, name: str, amount: int = 1):
        """Increment a counter."""
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + amount

    def set_gauge(self, name: str, value: float):
        """Set a gauge value."""
        with self._lock:
            self._gauges[name] = value

    def get_counter(self, name: str) -> int:
        """Get counter value."""
        with self._lock:
            return self._counters.get(name, 0)

    def get_gauge(self, name: str) -> float:
        """Get gauge value."""
        with self._lock:
            return self._gauges.get(name, 0.0)

    def get_timing(self, name: str) -> Optional[TimingStats]:
        """Get timing statistics for an operation."""
        with self._lock:
            return self._timings.get(name)

    def get_summary(self) -> dict:
        """Get complete metrics summary."""
        with self._lock:
            elapsed = (datetime.now() - self._start_time).total_seconds()
            return {
                "elapsed_seconds": round(elapsed, 1),
                "timings": {
                    name: stats.to_dict()
                    for name, stats in self._timings.items()
                },
                "counters": self._counters.copy(),
                "gauges": {k: round(v, 4) for k, v in self._gauges.items()},
            }

    def log_summary(self, level: int = logging.INFO):
        """Log the current summary on one line."""
        summary = self.get_summary()

        timing_str = ", ".join(
            f"{name}: {stats['total_ms']:.1f}ms ({stats['count']} calls)"
            for name, stats in summary["timings"].items()
        )
        counter_str = ", ".join(
            f"{name}={value}"
            for name, value in sorted(summary["counters"].items())
        )
        gauge_str = ", ".join(
            f"{name}={value:g}"
            for name, value in sorted(summary["gauges"].items())
        )

        logger.log(
            level,
            f"Run metrics - "
            f"Elapsed: {summary['elapsed_seconds']:.1f}s | "
            f"Timings: [{timing_str or 'none'}] | "
            f"Counters: [{counter_str or 'none'}] | "
            f"Gauges: [{gauge_str or 'none'}]"
        )

    def reset(self):
        """Reset all metrics."""
        with self._lock:
            self._timings.clear()
            self._counters.clear()
            self._gauges.clear()
            self._start_time = datetime.now()


# Global metrics instance
metrics = PerformanceMetrics()


def timed(name: str):
    """
    Decorator to time a function.

    Usage:
        @timed("my_function")
        def my_function():
            ...
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            with metrics.timer(name):
                return func(*args, **kwargs)
        return wrapper
    return decorator
