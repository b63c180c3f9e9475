"""
Storage change notifications -> cache invalidation -> repaint.

Any change to a key the color snapshot is built from invalidates the cache
and requests a throttled repaint. Calendar event mapping changes also drop the
identity resolver's cached mapping. Unrelated keys are ignored.

During a bulk reset the handler can be ``paused()``: caches are still
invalidated, but no repaint is requested until the block exits, when a single
repaint is issued if anything relevant changed meanwhile.
"""

from __future__ import annotations

import contextlib
from collections.abc import Callable, Iterator, Mapping
from typing import Any, Protocol

from tasktint.coloring.cache import CacheManager
from tasktint.coloring.interfaces import PersistenceLayer, StorageChange
from tasktint.observability.logging import get_logger
from tasktint.observability.telemetry import counter
from tasktint.storage import keys

logger = get_logger(__name__)


class _Repainter(Protocol):
    def request_repaint(self, bypass_throttle: bool = False) -> None: ...


class _Invalidatable(Protocol):
    def invalidate(self) -> None: ...


class StorageChangeHandler:
    def __init__(
        self,
        cache: CacheManager,
        scheduler: _Repainter,
        identity_resolver: _Invalidatable | None = None,
    ) -> None:
        self.cache = cache
        self.scheduler = scheduler
        self.identity_resolver = identity_resolver
        self._paused = 0
        self._missed_repaint = False
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def is_paused(self) -> bool:
        return self._paused > 0

    def __call__(self, changes: Mapping[str, StorageChange | Any], area: str) -> bool:
        """
        Handle one change notification from the persistence layer.

        Returns True if the notification touched a relevant key.

        Side Effects:
            - Invalidates the color cache and/or identity mapping
            - Requests a repaint unless paused
        """
        changed = set(changes)
        snapshot_keys = changed & keys.SNAPSHOT_CHANGE_KEYS.get(area, frozenset())
        identity_keys = changed & keys.IDENTITY_CHANGE_KEYS.get(area, frozenset())
        if not snapshot_keys and not identity_keys:
            return False

        counter("changes.relevant")
        logger.debug("Storage change in %s: %s", area, sorted(snapshot_keys | identity_keys))

        if identity_keys and self.identity_resolver is not None:
            self.identity_resolver.invalidate()
        self.cache.invalidate()

        if self.is_paused:
            self._missed_repaint = True
            return True

        self.scheduler.request_repaint(bypass_throttle=False)
        return True

    def attach(self, store: PersistenceLayer) -> Callable[[], None]:
        """Subscribe to ``store`` change notifications; returns the unsubscribe callable."""
        self.detach()
        self._unsubscribe = store.on_change(self)
        return self.detach

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    @contextlib.contextmanager
    def paused(self) -> Iterator[None]:
        """Suppress repaints for the duration of a bulk reset."""
        self._paused += 1
        try:
            yield
        finally:
            self._paused -= 1
            if self._paused == 0 and self._missed_repaint:
                self._missed_repaint = False
                self.scheduler.request_repaint(bypass_throttle=False)
