"""
Fingerprint extraction and the session-scoped Fingerprint Index.

The backing task API only knows the primary occurrence of a recurring series.
Every other occurrence the calendar renders has no authoritative identity, but
it carries the same title and time label as the primary one. The fingerprint
``title|time`` is therefore the only recovery signal: when the primary
occurrence resolves to a group, the index remembers ``fingerprint -> group``
so the siblings can find the same group later.

Known limitation: two distinct series sharing title and time collide. The
index keeps last-write-wins semantics and only records the reassignment.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tasktint.observability.logging import get_logger
from tasktint.observability.telemetry import counter

if TYPE_CHECKING:
    from tasktint.coloring.models import Occurrence

logger = get_logger(__name__)

# "task: Standup, Not completed, December 7, 2025, 9am"
_TITLE_PATTERN = re.compile(r"task:\s*([^,]+)", re.IGNORECASE)
_TIME_PATTERN = re.compile(r"(\d+(?::\d+)?(?:am|pm))\s*$", re.IGNORECASE)

FINGERPRINT_SEPARATOR = "|"


@dataclass(frozen=True)
class Fingerprint:
    """Derived pattern key for an occurrence. ``key`` is None unless title and time exist."""

    title: str | None
    time: str | None
    key: str | None


def normalize_time_label(time_label: str | None) -> str | None:
    if not time_label:
        return None
    normalized = time_label.strip().lower()
    return normalized or None


def make_fingerprint_key(title: str | None, time_label: str | None) -> str | None:
    clean_title = title.strip() if title else ""
    clean_time = normalize_time_label(time_label)
    if not clean_title or not clean_time:
        return None
    return f"{clean_title}{FINGERPRINT_SEPARATOR}{clean_time}"


def extract_fingerprint(occurrence: Occurrence | None) -> Fingerprint | None:
    """Compute the fingerprint of an occurrence (None only when there is no occurrence)."""
    if occurrence is None:
        return None

    title = occurrence.title.strip() if occurrence.title else None
    time_label = normalize_time_label(occurrence.time_label)
    return Fingerprint(
        title=title or None,
        time=time_label,
        key=make_fingerprint_key(title, time_label),
    )


def parse_chip_label(label: str | None) -> tuple[str | None, str | None]:
    """
    Split an accessible chip label into (title, time).

    The title is the text after ``task:`` up to the first comma; the time is a
    trailing ``2pm`` / ``10:30am`` token, lower-cased. All-day entries have no
    trailing time and yield ``time=None``.
    """
    if not label:
        return None, None

    title_match = _TITLE_PATTERN.search(label)
    title = title_match.group(1).strip() if title_match else None

    time_match = _TIME_PATTERN.search(label)
    time_label = time_match.group(1).lower() if time_match else None

    return title or None, time_label


class FingerprintIndex:
    """In-memory ``fingerprint key -> group id`` table, never persisted."""

    def __init__(self) -> None:
        self._groups: dict[str, str] = {}

    def record_association(self, key: str | None, group_id: str | None) -> None:
        """Upsert ``key -> group_id`` (last write wins). Empty key or group is ignored."""
        if not key or not group_id:
            return

        previous = self._groups.get(key)
        if previous == group_id:
            return

        self._groups[key] = group_id
        if previous is None:
            counter("fingerprint.learned")
            logger.debug("Learned fingerprint %s -> %s", key, group_id)
        else:
            counter("fingerprint.reassigned")
            logger.info(
                "Fingerprint %s reassigned from group %s to %s (shared title and time)",
                key,
                previous,
                group_id,
            )

    def resolve(self, key: str | None) -> str | None:
        if not key:
            return None
        return self._groups.get(key)

    def __len__(self) -> int:
        return len(self._groups)

    def __contains__(self, key: object) -> bool:
        return key in self._groups
