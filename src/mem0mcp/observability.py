"""In-process latency metrics for tool calls and HTTP routes."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from threading import Lock
from time import perf_counter

logger = logging.getLogger(__name__)


@dataclass
class OperationStats:
    """Running totals for one named operation."""

    calls: int = 0
    failures: int = 0
    total_ms: float = 0.0
    slowest_ms: float = 0.0
    last_ms: float = 0.0

    def add(self, duration_ms: float, ok: bool) -> None:
        self.calls += 1
        if not ok:
            self.failures += 1
        self.total_ms += duration_ms
        self.last_ms = duration_ms
        self.slowest_ms = max(self.slowest_ms, duration_ms)

    def as_dict(self) -> dict[str, float | int]:
        return {
            "calls": self.calls,
            "failures": self.failures,
            "total_ms": round(self.total_ms, 3),
            "avg_ms": round(self.total_ms / self.calls, 3) if self.calls else 0.0,
            "slowest_ms": round(self.slowest_ms, 3),
            "last_ms": round(self.last_ms, 3),
        }


_lock = Lock()
_stats: dict[str, OperationStats] = {}


def record_latency(*, operation: str, duration_ms: float, ok: bool = True) -> None:
    """Record one latency sample for *operation*."""
    duration = max(float(duration_ms), 0.0)
    with _lock:
        _stats.setdefault(operation, OperationStats()).add(duration, ok)
    logger.debug("latency operation=%s duration_ms=%.3f ok=%s", operation, duration, ok)


@contextmanager
def track_latency(operation: str) -> Iterator[None]:
    """Time the enclosed block; an escaping exception counts as a failure."""
    start = perf_counter()
    ok = False
    try:
        yield
        ok = True
    finally:
        record_latency(
            operation=operation,
            duration_ms=(perf_counter() - start) * 1000,
            ok=ok,
        )


def latency_metrics_snapshot() -> dict[str, dict[str, float | int]]:
    """Return current aggregates keyed by operation name."""
    with _lock:
        return {name: stats.as_dict() for name, stats in sorted(_stats.items())}


def reset_latency_metrics() -> None:
    """Clear all aggregates (test helper)."""
    with _lock:
        _stats.clear()
