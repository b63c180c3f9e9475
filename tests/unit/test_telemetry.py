"""Unit tests for the in-memory telemetry helpers"""

from __future__ import annotations

from tasktint.observability.telemetry import (
    LATENCY_WINDOW,
    counter,
    get_counter,
    get_latency_stats,
    time_block,
)


def test_counter_accumulates():
    counter("cache.colors.hit")
    counter("cache.colors.hit", 2)
    assert get_counter("cache.colors.hit") == 3
    assert get_counter("cache.colors.miss") == 0


def test_latency_samples_are_bounded():
    for _ in range(LATENCY_WINDOW + 500):
        with time_block("scheduler.default.pass"):
            pass

    stats = get_latency_stats("scheduler.default.pass")
    assert stats["count"] == LATENCY_WINDOW
    assert 0.0 <= stats["min"] <= stats["p95"] <= stats["max"]


def test_latency_recorded_when_block_raises():
    try:
        with time_block("cache.colors.fetch"):
            raise RuntimeError("read failed")
    except RuntimeError:
        pass

    assert get_latency_stats("cache.colors.fetch")["count"] == 1


def test_unknown_metric_has_empty_stats():
    assert get_latency_stats("scheduler.nowhere.pass")["count"] == 0
