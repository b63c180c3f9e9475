"""
Identity resolution for render targets.

The host view tags task elements in one of three ways:
    tasks.<id> / tasks_<id>   legacy view, the id follows the prefix
    ttb_<base64>              current view, base64 of "<calendar event id> <owner>"
    <id>                      bare task id attribute

Calendar event ids are mapped to task ids through the ``cf.calendarEventMapping``
map in the local partition, cached for ``IDENTITY_MAPPING_TTL_SECONDS``. On a
miss an optional async ``fallback`` (e.g. a calendar API lookup) is consulted
and its answer is remembered until the mapping is next reloaded.
"""

from __future__ import annotations

import base64
import binascii
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from cachetools import TTLCache

from tasktint.coloring.errors import TransientFetchError
from tasktint.coloring.interfaces import PersistenceLayer, RenderTarget, maybe_await
from tasktint.config import IDENTITY_MAPPING_TTL_SECONDS
from tasktint.observability.logging import get_logger
from tasktint.observability.telemetry import counter
from tasktint.storage import keys

logger = get_logger(__name__)

LEGACY_PREFIXES: tuple[str, ...] = ("tasks.", "tasks_")
EVENT_PREFIX = "ttb_"

EventFallback = Callable[[str], Awaitable[str | None]]


def decode_event_hint(hint: str | None) -> str | None:
    """Calendar event id carried by a ``ttb_`` hint, or None if it does not decode."""
    if not hint or not hint.startswith(EVENT_PREFIX):
        return None
    payload = hint[len(EVENT_PREFIX) :]
    try:
        decoded = base64.b64decode(payload + "=" * (-len(payload) % 4)).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        logger.debug("Undecodable event hint %s", hint[:40])
        return None
    event_id = decoded.split(" ")[0]
    return event_id or None


class MappingIdentityResolver:
    """Resolves ``RenderTarget.identity_hint()`` to an authoritative task identity."""

    def __init__(
        self,
        store: PersistenceLayer,
        *,
        fallback: EventFallback | None = None,
        ttl_seconds: float = IDENTITY_MAPPING_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._fallback = fallback
        # One entry: the event mapping, reloaded once it expires
        self._mappings: TTLCache[str, dict[str, Any]] = TTLCache(
            maxsize=1, ttl=ttl_seconds, timer=clock
        )
        self._last_mapping: dict[str, Any] = {}

    async def resolve(self, target: RenderTarget) -> str | None:
        hint = await maybe_await(target.identity_hint())
        return await self.resolve_hint(hint)

    async def resolve_hint(self, hint: str | None) -> str | None:
        if not hint:
            return None

        for prefix in LEGACY_PREFIXES:
            if hint.startswith(prefix):
                return hint[len(prefix) :] or None

        if hint.startswith(EVENT_PREFIX):
            event_id = decode_event_hint(hint)
            if event_id is None:
                counter("identity.undecodable")
                return None
            return await self.resolve_event(event_id)

        return hint

    async def resolve_event(self, event_id: str) -> str | None:
        mapping = await self._load_mapping()
        identity = _task_fragment(mapping.get(event_id))
        if identity:
            counter("identity.mapping_hit")
            return identity

        counter("identity.mapping_miss")
        if self._fallback is None:
            return None

        try:
            identity = await self._fallback(event_id)
        except Exception as e:  # noqa: BLE001
            counter("identity.fallback_error")
            logger.warning("Event lookup failed for %s: %s", event_id, e)
            return None

        if identity:
            mapping[event_id] = {"taskApiId": identity, "taskFragment": identity}
            logger.debug("Resolved event %s via fallback", event_id)
        return identity or None

    def invalidate(self) -> None:
        self._mappings.clear()

    async def _load_mapping(self) -> dict[str, Any]:
        mapping = self._mappings.get(keys.CALENDAR_EVENT_MAPPING)
        if mapping is not None:
            return mapping

        try:
            data = await self._store.local.get([keys.CALENDAR_EVENT_MAPPING])
        except TransientFetchError as e:
            logger.warning("Calendar event mapping read failed, using last loaded copy: %s", e)
            return self._last_mapping

        raw = (data or {}).get(keys.CALENDAR_EVENT_MAPPING)
        mapping = dict(raw) if isinstance(raw, Mapping) else {}
        self._mappings[keys.CALENDAR_EVENT_MAPPING] = mapping
        self._last_mapping = mapping
        return mapping


def _task_fragment(entry: Any) -> str | None:
    if isinstance(entry, str):
        return entry or None
    if isinstance(entry, Mapping):
        value = entry.get("taskFragment") or entry.get("taskApiId")
        return value if isinstance(value, str) and value else None
    return None
