"""Unit tests for in-process latency observability helpers."""

from __future__ import annotations

import pytest

from mem0mcp.observability import latency_metrics_snapshot
from mem0mcp.observability import record_latency
from mem0mcp.observability import reset_latency_metrics
from mem0mcp.observability import track_latency


class TestObservabilityLatency:
    def setup_method(self):
        reset_latency_metrics()

    def teardown_method(self):
        reset_latency_metrics()

    def test_records_latency_aggregates(self):
        record_latency(operation="mcp.save_memory", duration_ms=10.0, ok=True)
        record_latency(operation="mcp.save_memory", duration_ms=30.0, ok=False)

        metrics = latency_metrics_snapshot()["mcp.save_memory"]
        assert metrics["calls"] == 2
        assert metrics["failures"] == 1
        assert metrics["total_ms"] == 40.0
        assert metrics["avg_ms"] == 20.0
        assert metrics["slowest_ms"] == 30.0
        assert metrics["last_ms"] == 30.0

    def test_negative_durations_clamp_to_zero(self):
        record_latency(operation="http.save", duration_ms=-5.0)
        assert latency_metrics_snapshot()["http.save"]["total_ms"] == 0.0

    def test_track_latency_success(self):
        with track_latency("http.search"):
            pass

        metrics = latency_metrics_snapshot()["http.search"]
        assert metrics["calls"] == 1
        assert metrics["failures"] == 0

    def test_track_latency_counts_exception_as_failure(self):
        with pytest.raises(RuntimeError):
            with track_latency("http.delete"):
                raise RuntimeError("boom")

        assert latency_metrics_snapshot()["http.delete"]["failures"] == 1

    def test_reset_clears_all_metrics(self):
        record_latency(operation="mcp.search_memories", duration_ms=12.0, ok=True)
        assert "mcp.search_memories" in latency_metrics_snapshot()
        reset_latency_metrics()
        assert latency_metrics_snapshot() == {}
