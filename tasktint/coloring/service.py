"""
ColoringService: wires the coloring core together for one render context.

    store ──> CacheManager ──> ColorResolver (+ FingerprintIndex)
                  ^                   │
    StorageChangeHandler        RenderScheduler ──> RenderTarget.apply/clear
                                      ^
                              OccurrenceProvider, IdentityResolver

Hosts call ``start()`` once, ``request_repaint()`` whenever the view changes,
and ``teardown()`` when the view goes away.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from tasktint.coloring.cache import CacheManager
from tasktint.coloring.changes import StorageChangeHandler
from tasktint.coloring.fingerprint import FingerprintIndex
from tasktint.coloring.identity import MappingIdentityResolver
from tasktint.coloring.interfaces import IdentityResolver, OccurrenceProvider, PersistenceLayer
from tasktint.coloring.models import ColorBundle, Occurrence, ResolveOptions
from tasktint.coloring.resolver import ColorResolver
from tasktint.coloring.scheduler import RenderScheduler
from tasktint.coloring.timers import TimerRegistry
from tasktint.observability.logging import get_logger
from tasktint.observability.telemetry import log_event
from tasktint.storage.repository import ColorRepository

logger = get_logger(__name__)


class StaticOccurrenceProvider:
    """Occurrence provider backed by a list the host replaces as its view changes."""

    def __init__(self, occurrences: Iterable[Occurrence] = ()) -> None:
        self._occurrences = list(occurrences)

    def occurrences(self) -> list[Occurrence]:
        return list(self._occurrences)

    def update(self, occurrences: Iterable[Occurrence]) -> None:
        self._occurrences = list(occurrences)


class ColoringService:
    def __init__(
        self,
        store: PersistenceLayer,
        provider: OccurrenceProvider | None = None,
        *,
        identity_resolver: IdentityResolver | None = None,
        context: str = "default",
        timers: TimerRegistry | None = None,
        cache: CacheManager | None = None,
        index: FingerprintIndex | None = None,
        **scheduler_options: Any,
    ) -> None:
        self.store = store
        self.provider = provider if provider is not None else StaticOccurrenceProvider()
        self.cache = cache if cache is not None else CacheManager(store)
        self.index = index if index is not None else FingerprintIndex()
        self.resolver = ColorResolver(self.cache, self.index)
        self.identity_resolver = (
            identity_resolver if identity_resolver is not None else MappingIdentityResolver(store)
        )
        self.scheduler = RenderScheduler(
            self.provider,
            self.resolver,
            self.identity_resolver,
            context=context,
            timers=timers,
            **scheduler_options,
        )
        invalidate: Callable[[], None] | None = getattr(self.identity_resolver, "invalidate", None)
        self.changes = StorageChangeHandler(
            self.cache,
            self.scheduler,
            self.identity_resolver if callable(invalidate) else None,
        )
        self.repository = ColorRepository(store)
        self._started = False

    @property
    def context(self) -> str:
        return self.scheduler.context

    def start(self) -> None:
        """
        Subscribe to storage changes and request the first pass.

        Side Effects:
            - Registers a change listener on the store
            - Schedules a repaint (requires a running event loop)
        """
        if self._started:
            return
        self.changes.attach(self.store)
        self._started = True
        log_event("coloring.started", context=self.context)
        self.scheduler.request_repaint(bypass_throttle=True)

    def request_repaint(self, bypass_throttle: bool = False) -> None:
        self.scheduler.request_repaint(bypass_throttle)

    async def resolve_color(
        self, occurrence: Occurrence, options: ResolveOptions | None = None
    ) -> ColorBundle | None:
        return await self.resolver.resolve(occurrence, options)

    async def paint_identity_now(
        self,
        identity: str,
        override_color: str | None = None,
        override_text_color: str | None = None,
    ) -> int:
        """Paint one task's rendered occurrences immediately, e.g. right after a color pick."""
        options = ResolveOptions(
            override_color=override_color, override_text_color=override_text_color
        )
        return await self.scheduler.paint_identity(identity, options)

    def teardown(self) -> None:
        self.changes.detach()
        self.scheduler.teardown()
        self._started = False
        log_event("coloring.torn_down", context=self.context)

    def stats(self) -> dict[str, Any]:
        return {
            "cache": self.cache.stats(),
            "scheduler": self.scheduler.stats(),
            "fingerprints": len(self.index),
        }
