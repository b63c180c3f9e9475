"""
Shared fixtures for tasktint tests

Provides fake clocks, stores, render targets and occurrence providers so the
coloring core can be driven without a host view.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Any

import pytest

from tasktint.coloring.errors import RenderTargetGone
from tasktint.observability.telemetry import reset_counters
from tasktint.storage import keys
from tasktint.storage.memory import MemoryStore


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTarget:
    """Render target that records what was painted on it."""

    def __init__(self, hint: str | None = None, *, gone: bool = False) -> None:
        self.hint = hint
        self.gone = gone
        self.applied: list[Any] = []
        self.cleared = 0

    def apply(self, bundle: Any) -> None:
        if self.gone:
            raise RenderTargetGone("detached")
        self.applied.append(bundle)

    def clear(self) -> None:
        if self.gone:
            raise RenderTargetGone("detached")
        self.cleared += 1

    def identity_hint(self) -> str | None:
        return self.hint

    @property
    def last(self) -> Any:
        return self.applied[-1] if self.applied else None


class ListProvider:
    """Occurrence provider returning a mutable list; counts enumerations."""

    def __init__(self, occurrences: Sequence[Any] = ()) -> None:
        self.items = list(occurrences)
        self.calls = 0

    def occurrences(self) -> list[Any]:
        self.calls += 1
        return list(self.items)


class _RecordingPartition:
    def __init__(self, owner: RecordingStore, inner: Any) -> None:
        self._owner = owner
        self._inner = inner

    async def get(self, names: Sequence[str]) -> dict[str, Any]:
        self._owner.reads += 1
        if self._owner.fail_with is not None:
            raise self._owner.fail_with
        # Data is read before blocking so a gated fetch holds pre-gate values
        result = await self._inner.get(names)
        if self._owner.gate is not None:
            await self._owner.gate.wait()
        return result

    async def set(self, key: str, value: Any) -> None:
        await self._inner.set(key, value)


class RecordingStore:
    """MemoryStore wrapper that counts reads and can block or fail them."""

    def __init__(self, inner: MemoryStore | None = None) -> None:
        self.inner = inner if inner is not None else MemoryStore()
        self.reads = 0
        self.gate: asyncio.Event | None = None
        self.fail_with: Exception | None = None
        self.local = _RecordingPartition(self, self.inner.local)
        self.sync = _RecordingPartition(self, self.inner.sync)

    def on_change(self, listener: Any) -> Any:
        return self.inner.on_change(listener)


def seed_store(
    store: MemoryStore,
    *,
    identity_groups: dict[str, str] | None = None,
    occurrence_colors: dict[str, str] | None = None,
    pattern_colors: dict[str, str] | None = None,
    group_colors: dict[str, str] | None = None,
    group_text_colors: dict[str, str] | None = None,
    settings: dict[str, Any] | None = None,
    event_mapping: dict[str, Any] | None = None,
) -> MemoryStore:
    local: dict[str, Any] = {}
    synced: dict[str, Any] = {}
    if identity_groups is not None:
        local[keys.IDENTITY_GROUPS] = identity_groups
    if event_mapping is not None:
        local[keys.CALENDAR_EVENT_MAPPING] = event_mapping
    if occurrence_colors is not None:
        synced[keys.OCCURRENCE_COLORS] = occurrence_colors
    if pattern_colors is not None:
        synced[keys.PATTERN_COLORS] = pattern_colors
    if group_colors is not None:
        synced[keys.GROUP_COLORS] = group_colors
    if group_text_colors is not None:
        synced[keys.GROUP_TEXT_COLORS] = group_text_colors
    if settings is not None:
        synced[keys.SETTINGS] = settings
    store.local.seed(local)
    store.sync.seed(synced)
    return store


@pytest.fixture(autouse=True)
def _reset_telemetry():
    reset_counters()
    yield
    reset_counters()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_store():
    """Factory: make_store(**maps) -> seeded MemoryStore."""

    def _make(**maps: Any) -> MemoryStore:
        return seed_store(MemoryStore(), **maps)

    return _make


@pytest.fixture
def recording_store():
    """Factory: recording_store(**maps) -> RecordingStore over a seeded MemoryStore."""

    def _make(**maps: Any) -> RecordingStore:
        return RecordingStore(seed_store(MemoryStore(), **maps))

    return _make


@pytest.fixture
def make_target():
    return FakeTarget


@pytest.fixture
def make_provider():
    return ListProvider
