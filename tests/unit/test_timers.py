"""Unit tests for TimerRegistry"""

from __future__ import annotations

import asyncio

from tasktint.coloring.timers import TimerRegistry


def test_call_later_runs_callback():
    registry = TimerRegistry()
    calls: list[str] = []

    async def scenario():
        handle = registry.call_later("view", 0.001, lambda: calls.append("fired"))
        await asyncio.wait([handle.task])
        return handle

    handle = asyncio.run(scenario())
    assert calls == ["fired"]
    assert handle.done()
    assert registry.pending("view") == []


def test_cancel_context_only_cancels_that_context():
    registry = TimerRegistry()
    calls: list[str] = []

    async def scenario():
        registry.call_later("a", 0.01, lambda: calls.append("a1"))
        registry.call_later("a", 0.01, lambda: calls.append("a2"))
        registry.call_later("b", 0.01, lambda: calls.append("b"))
        cancelled = registry.cancel_context("a")
        await asyncio.sleep(0.05)
        return cancelled

    cancelled = asyncio.run(scenario())
    assert cancelled == 2
    assert calls == ["b"]


def test_failing_callback_is_contained():
    registry = TimerRegistry()

    def explode():
        raise RuntimeError("boom")

    async def scenario():
        handle = registry.call_later("view", 0, explode)
        await asyncio.wait([handle.task])
        return handle

    handle = asyncio.run(scenario())
    assert handle.task.exception() is None
