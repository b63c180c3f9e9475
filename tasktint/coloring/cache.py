"""
Staleness-bounded, point-in-time read of the persisted color maps.

``CacheManager.acquire()`` serves the current ``CacheSnapshot`` while it is
younger than the TTL; otherwise it performs one bulk fetch that reads both
storage partitions concurrently and installs a fresh snapshot.

Coherence rules:
    - ``invalidate()`` bumps a generation counter. A fetch only installs its
      snapshot if the generation it started under is still current, so data
      read before an invalidate is never treated as fresh afterwards.
    - Concurrent ``acquire()`` calls of the same generation share one
      in-flight fetch.
    - A failed fetch yields an empty, ``degraded`` snapshot. It is logged and
      never raised: rendering must not block on a transient read error.

Usage:
    cache = CacheManager(store)
    snapshot = await cache.acquire()
    cache.invalidate()
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import Any

from tasktint.coloring.errors import TransientFetchError
from tasktint.coloring.interfaces import PersistenceLayer
from tasktint.coloring.models import CacheSnapshot
from tasktint.config import CACHE_ERROR_TTL_SECONDS, CACHE_TTL_SECONDS
from tasktint.observability.logging import get_logger
from tasktint.observability.telemetry import counter, get_latency_stats, time_block
from tasktint.storage import keys

logger = get_logger(__name__)


class CacheManager:
    """Owns the current ``CacheSnapshot``; the only reader of the color maps."""

    def __init__(
        self,
        store: PersistenceLayer,
        *,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        error_ttl_seconds: float = CACHE_ERROR_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        name: str = "colors",
    ) -> None:
        self._store = store
        self.ttl_seconds = ttl_seconds
        self.error_ttl_seconds = error_ttl_seconds
        self._clock = clock
        self.name = name

        self._snapshot: CacheSnapshot | None = None
        self._generation = 0
        self._inflight: asyncio.Task[CacheSnapshot] | None = None
        self._inflight_generation = -1
        self._hits = 0
        self._misses = 0
        self._fetches = 0
        self._failures = 0

    @property
    def generation(self) -> int:
        return self._generation

    async def acquire(self) -> CacheSnapshot:
        """Return a snapshot no older than the TTL, fetching if needed. Never raises."""
        snapshot = self._snapshot
        if snapshot is not None and self._is_fresh(snapshot):
            self._hits += 1
            counter(f"cache.{self.name}.hit")
            return snapshot

        self._misses += 1
        counter(f"cache.{self.name}.miss")

        inflight = self._inflight
        if inflight is not None and self._inflight_generation == self._generation:
            logger.debug("Joining in-flight fetch (generation %d)", self._generation)
            return await asyncio.shield(inflight)

        generation = self._generation
        task = asyncio.create_task(
            self._fetch_and_install(generation), name=f"tasktint-cache-{self.name}-{generation}"
        )
        self._inflight = task
        self._inflight_generation = generation
        return await asyncio.shield(task)

    def invalidate(self) -> None:
        """
        Mark the snapshot stale unconditionally.

        Side Effects:
            - Drops the installed snapshot
            - Bumps the generation so any in-flight fetch cannot install its result
            - Increments telemetry counter (cache.{name}.invalidate)
        """
        self._generation += 1
        self._snapshot = None
        counter(f"cache.{self.name}.invalidate")
        logger.debug("Cache invalidated (generation %d)", self._generation)

    def peek(self) -> CacheSnapshot | None:
        """Installed snapshot, fresh or not, without fetching."""
        return self._snapshot

    def stats(self) -> dict[str, Any]:
        snapshot = self._snapshot
        return {
            "generation": self._generation,
            "hits": self._hits,
            "misses": self._misses,
            "fetches": self._fetches,
            "failures": self._failures,
            "fetch_in_flight": self._inflight is not None and not self._inflight.done(),
            "snapshot_age_seconds": (
                round(self._clock() - snapshot.fetched_at, 3) if snapshot else None
            ),
            "degraded": snapshot.degraded if snapshot else None,
            "fetch_latency": get_latency_stats(f"cache.{self.name}.fetch"),
        }

    def _is_fresh(self, snapshot: CacheSnapshot) -> bool:
        ttl = self.error_ttl_seconds if snapshot.degraded else self.ttl_seconds
        return self._clock() - snapshot.fetched_at < ttl

    async def _fetch_and_install(self, generation: int) -> CacheSnapshot:
        try:
            snapshot = await self._fetch()
        finally:
            if self._inflight is asyncio.current_task():
                self._inflight = None

        if generation == self._generation:
            self._snapshot = snapshot
        else:
            counter(f"cache.{self.name}.stale_fetch_discarded")
            logger.debug(
                "Discarding fetch from generation %d (current %d)", generation, self._generation
            )
        return snapshot

    async def _fetch(self) -> CacheSnapshot:
        self._fetches += 1
        try:
            with time_block(f"cache.{self.name}.fetch"):
                local_data, sync_data = await asyncio.gather(
                    self._store.local.get(list(keys.LOCAL_SNAPSHOT_KEYS)),
                    self._store.sync.get(list(keys.SYNC_SNAPSHOT_KEYS)),
                )
            return CacheSnapshot.from_storage(local_data or {}, sync_data or {}, self._clock())
        except TransientFetchError as e:
            self._failures += 1
            counter(f"cache.{self.name}.fetch_error")
            logger.warning("Color storage read failed, using empty snapshot: %s", e)
        except Exception as e:  # noqa: BLE001
            self._failures += 1
            counter(f"cache.{self.name}.fetch_error")
            logger.error("Unexpected color storage error, using empty snapshot: %s", e, exc_info=True)
        return CacheSnapshot.empty(self._clock(), degraded=True)
