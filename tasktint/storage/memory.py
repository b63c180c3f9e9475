"""In-memory two-partition store with change notifications.

Stands in for the browser storage areas in tests and embedded hosts. Values
are deep-copied on the way in and out so callers never share state with the
store.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Sequence
from typing import Any

from tasktint.coloring.interfaces import ChangeListener, StorageChange, maybe_await
from tasktint.observability.logging import get_logger
from tasktint.storage import keys

logger = get_logger(__name__)


class MemoryPartition:
    def __init__(self, store: MemoryStore, area: str) -> None:
        self._store = store
        self.area = area
        self._data: dict[str, Any] = {}

    async def get(self, keys: Sequence[str]) -> dict[str, Any]:
        return {key: copy.deepcopy(self._data[key]) for key in keys if key in self._data}

    async def set(self, key: str, value: Any) -> None:
        old_value = self._data.get(key)
        self._data[key] = copy.deepcopy(value)
        await self._store.notify({key: StorageChange(old_value, copy.deepcopy(value))}, self.area)

    async def remove(self, key: str) -> None:
        if key not in self._data:
            return
        old_value = self._data.pop(key)
        await self._store.notify({key: StorageChange(old_value, None)}, self.area)

    def seed(self, values: dict[str, Any]) -> None:
        """Load values without firing change notifications."""
        self._data.update(copy.deepcopy(values))


class MemoryStore:
    def __init__(self) -> None:
        self._partitions = {area: MemoryPartition(self, area) for area in keys.PARTITIONS}
        self._listeners: list[ChangeListener] = []

    @property
    def local(self) -> MemoryPartition:
        return self._partitions[keys.LOCAL]

    @property
    def sync(self) -> MemoryPartition:
        return self._partitions[keys.SYNC]

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def notify(self, changes: dict[str, StorageChange], area: str) -> None:
        for listener in list(self._listeners):
            try:
                await maybe_await(listener(changes, area))
            except Exception:  # noqa: BLE001
                logger.exception("Storage change listener %r failed", listener)
