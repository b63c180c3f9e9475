"""
Write side of the persisted color maps.

Every operation is a read-modify-write of one whole map (the persistence layer
only stores top-level keys), so writes are serialized through a single
``asyncio.Lock``: two concurrent updates to the same map can never lose one
another's entry. Readers go through ``CacheManager`` and learn about writes
from the store's change notifications.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from tasktint.coloring.colors import normalize_opacity
from tasktint.coloring.interfaces import PersistenceLayer, StoragePartition
from tasktint.coloring.models import CompletedMode
from tasktint.observability.logging import get_logger
from tasktint.observability.telemetry import counter
from tasktint.storage import keys

logger = get_logger(__name__)

_COMPLETED_FIELDS = {
    "enabled": "enabled",
    "mode": "mode",
    "bg_color": "bgColor",
    "text_color": "textColor",
    "bg_opacity": "bgOpacity",
    "text_opacity": "textOpacity",
}


def _require(value: str | None, name: str) -> str:
    if not value or not str(value).strip():
        raise ValueError(f"{name} must be a non-empty string")
    return str(value)


class ColorRepository:
    def __init__(self, store: PersistenceLayer) -> None:
        self._store = store
        self._lock = asyncio.Lock()

    # --- single-occurrence overrides (sync) ---

    async def set_occurrence_color(self, identity: str, color: str) -> dict[str, str]:
        identity, color = _require(identity, "identity"), _require(color, "color")
        return await self._put(self._store.sync, keys.OCCURRENCE_COLORS, identity, color)

    async def clear_occurrence_color(self, identity: str) -> dict[str, str]:
        return await self._drop(self._store.sync, keys.OCCURRENCE_COLORS, _require(identity, "identity"))

    # --- pattern overrides, keyed by fingerprint (sync) ---

    async def set_pattern_color(self, fingerprint_key: str, color: str) -> dict[str, str]:
        fingerprint_key = _require(fingerprint_key, "fingerprint_key")
        return await self._put(
            self._store.sync, keys.PATTERN_COLORS, fingerprint_key, _require(color, "color")
        )

    async def clear_pattern_color(self, fingerprint_key: str) -> dict[str, str]:
        return await self._drop(
            self._store.sync, keys.PATTERN_COLORS, _require(fingerprint_key, "fingerprint_key")
        )

    # --- group defaults (sync) ---

    async def set_group_color(self, group_id: str, color: str) -> dict[str, str]:
        group_id, color = _require(group_id, "group_id"), _require(color, "color")
        return await self._put(self._store.sync, keys.GROUP_COLORS, group_id, color)

    async def clear_group_color(self, group_id: str) -> dict[str, str]:
        return await self._drop(self._store.sync, keys.GROUP_COLORS, _require(group_id, "group_id"))

    async def set_group_text_color(self, group_id: str, color: str) -> dict[str, str]:
        group_id, color = _require(group_id, "group_id"), _require(color, "color")
        return await self._put(self._store.sync, keys.GROUP_TEXT_COLORS, group_id, color)

    async def clear_group_text_color(self, group_id: str) -> dict[str, str]:
        return await self._drop(
            self._store.sync, keys.GROUP_TEXT_COLORS, _require(group_id, "group_id")
        )

    # --- identity -> group (local) ---

    async def set_identity_group(self, identity: str, group_id: str) -> dict[str, str]:
        identity, group_id = _require(identity, "identity"), _require(group_id, "group_id")
        return await self._put(self._store.local, keys.IDENTITY_GROUPS, identity, group_id)

    async def set_calendar_event_mapping(
        self, event_id: str, task_id: str, *, task_fragment: str | None = None
    ) -> dict[str, Any]:
        event_id, task_id = _require(event_id, "event_id"), _require(task_id, "task_id")
        entry = {
            "taskApiId": task_id,
            "taskFragment": task_fragment or task_id,
            "lastVerified": datetime.now(UTC).isoformat(),
        }
        return await self._put(self._store.local, keys.CALENDAR_EVENT_MAPPING, event_id, entry)

    # --- settings (sync) ---

    async def set_coloring_enabled(
        self, *, quick_pick: bool | None = None, list_coloring: bool | None = None
    ) -> dict[str, Any]:
        def mutate(settings: dict[str, Any]) -> None:
            if quick_pick is not None:
                settings.setdefault("taskColoring", {})["enabled"] = quick_pick
            if list_coloring is not None:
                settings.setdefault("taskListColoring", {})["enabled"] = list_coloring

        return await self._update_settings(mutate)

    async def set_completed_styling(self, group_id: str, **fields: Any) -> dict[str, Any]:
        """
        Merge completed-occurrence styling for one group.

        Accepts ``enabled``, ``mode``, ``bg_color``, ``text_color``,
        ``bg_opacity`` and ``text_opacity``. Opacities given as percentages
        (above 1) are stored as fractions.

        Raises:
            ValueError: unknown field or unknown mode
        """
        group_id = _require(group_id, "group_id")
        unknown = set(fields) - set(_COMPLETED_FIELDS)
        if unknown:
            raise ValueError(f"unknown completed styling field(s): {sorted(unknown)}")
        if fields.get("mode") is not None:
            fields["mode"] = CompletedMode(fields["mode"]).value
        for name in ("bg_opacity", "text_opacity"):
            if fields.get(name) is not None:
                fields[name] = normalize_opacity(fields[name])

        def mutate(settings: dict[str, Any]) -> None:
            list_coloring = settings.setdefault("taskListColoring", {})
            styling = dict(list_coloring.get("completedStyling") or {})
            entry = dict(styling.get(group_id) or {})
            for name, value in fields.items():
                entry[_COMPLETED_FIELDS[name]] = value
            styling[group_id] = entry
            list_coloring["completedStyling"] = styling

        return await self._update_settings(mutate)

    async def clear_completed_styling(self, group_id: str) -> dict[str, Any]:
        group_id = _require(group_id, "group_id")

        def mutate(settings: dict[str, Any]) -> None:
            list_coloring = settings.setdefault("taskListColoring", {})
            styling = dict(list_coloring.get("completedStyling") or {})
            styling.pop(group_id, None)
            list_coloring["completedStyling"] = styling

        return await self._update_settings(mutate)

    # --- helpers ---

    async def _put(self, partition: StoragePartition, key: str, entry: str, value: Any) -> dict[str, Any]:
        def mutate(current: dict[str, Any]) -> None:
            current[entry] = value

        return await self._update(partition, key, mutate)

    async def _drop(self, partition: StoragePartition, key: str, entry: str) -> dict[str, Any]:
        def mutate(current: dict[str, Any]) -> None:
            current.pop(entry, None)

        return await self._update(partition, key, mutate)

    async def _update_settings(self, mutate: Callable[[dict[str, Any]], None]) -> dict[str, Any]:
        def mutate_settings(settings: dict[str, Any]) -> None:
            for section in ("taskColoring", "taskListColoring"):
                if not isinstance(settings.get(section), Mapping):
                    settings.pop(section, None)
                else:
                    settings[section] = dict(settings[section])
            mutate(settings)

        return await self._update(self._store.sync, keys.SETTINGS, mutate_settings)

    async def _update(
        self,
        partition: StoragePartition,
        key: str,
        mutate: Callable[[dict[str, Any]], None],
    ) -> dict[str, Any]:
        """
        Serialized read-modify-write of one persisted map.

        Side Effects:
            - Writes ``key`` to the partition (fires change notifications)
            - Increments telemetry counter (repository.write)
        """
        async with self._lock:
            data = await partition.get([key])
            raw = data.get(key)
            current = dict(raw) if isinstance(raw, Mapping) else {}
            mutate(current)
            await partition.set(key, current)
        counter("repository.write")
        logger.debug("Updated %s (%d entries)", key, len(current))
        return current
