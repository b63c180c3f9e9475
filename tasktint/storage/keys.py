"""Persisted key layout shared by the cache, the repository and change handling.

Two partitions mirror the extension's storage areas: ``local`` holds large,
device-scoped mappings; ``sync`` holds small user settings that roam.
"""

from __future__ import annotations

from typing import Final

LOCAL: Final[str] = "local"
SYNC: Final[str] = "sync"
PARTITIONS: Final[tuple[str, str]] = (LOCAL, SYNC)

# local partition
IDENTITY_GROUPS: Final[str] = "cf.taskToListMap"
CALENDAR_EVENT_MAPPING: Final[str] = "cf.calendarEventMapping"

# sync partition
OCCURRENCE_COLORS: Final[str] = "cf.taskColors"
PATTERN_COLORS: Final[str] = "cf.recurringTaskColors"
GROUP_COLORS: Final[str] = "cf.taskListColors"
GROUP_TEXT_COLORS: Final[str] = "cf.taskListTextColors"
SETTINGS: Final[str] = "settings"

LOCAL_SNAPSHOT_KEYS: Final[tuple[str, ...]] = (IDENTITY_GROUPS,)
SYNC_SNAPSHOT_KEYS: Final[tuple[str, ...]] = (
    OCCURRENCE_COLORS,
    PATTERN_COLORS,
    GROUP_COLORS,
    GROUP_TEXT_COLORS,
    SETTINGS,
)

# Changes that make the color snapshot stale, per partition
SNAPSHOT_CHANGE_KEYS: Final[dict[str, frozenset[str]]] = {
    LOCAL: frozenset(LOCAL_SNAPSHOT_KEYS),
    SYNC: frozenset(SYNC_SNAPSHOT_KEYS),
}

# Changes that make the identity resolver's mapping stale
IDENTITY_CHANGE_KEYS: Final[dict[str, frozenset[str]]] = {
    LOCAL: frozenset({CALENDAR_EVENT_MAPPING}),
    SYNC: frozenset(),
}
