"""
Render Scheduler: repeated, non-overlapping repaint passes.

A pass enumerates the occurrences the host view currently renders, resolves
each one's identity and color, and applies or clears styling on its render
target.

Scheduling rules:
    - Passes never overlap. A request that arrives during a pass flags exactly
      one follow-up pass, run after the current one finishes.
    - A request less than ``min_interval`` after the previous pass completed is
      coalesced into a single trailing pass, unless ``bypass_throttle`` is set.
    - A pass that enumerates zero occurrences while list coloring is active
      schedules a bypassing retry after ``retry_delay`` (the host view may not
      have finished building), at most ``max_retries`` times in a row.
    - Trailing passes and retries are keyed to this scheduler's render context;
      ``teardown()`` cancels them and suppresses any late paint.
    - While both coloring features are switched off, a pass only clears the
      styling of every rendered, non-excluded occurrence.

Nothing raised inside a pass propagates out of ``request_repaint``.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any

from tasktint.coloring.errors import RenderTargetGone
from tasktint.coloring.interfaces import IdentityResolver, OccurrenceProvider, maybe_await
from tasktint.coloring.models import ColorBundle, Occurrence, ResolveOptions
from tasktint.coloring.resolver import ColorResolver
from tasktint.coloring.timers import ScheduledCall, TimerRegistry
from tasktint.config import (
    REPAINT_MAX_RETRIES,
    REPAINT_MIN_INTERVAL_SECONDS,
    REPAINT_RETRY_DELAY_SECONDS,
)
from tasktint.observability.logging import get_logger
from tasktint.observability.telemetry import counter, get_latency_stats, time_block

logger = get_logger(__name__)


@dataclass
class PassResult:
    """Tally of one repaint pass."""

    enumerated: int = 0
    painted: int = 0
    cleared: int = 0
    excluded: int = 0
    duplicates: int = 0
    gone: int = 0
    disabled: bool = False
    list_coloring_active: bool = False


class RenderScheduler:
    def __init__(
        self,
        provider: OccurrenceProvider,
        resolver: ColorResolver,
        identity_resolver: IdentityResolver | None = None,
        *,
        context: str = "default",
        timers: TimerRegistry | None = None,
        min_interval: float = REPAINT_MIN_INTERVAL_SECONDS,
        max_retries: int = REPAINT_MAX_RETRIES,
        retry_delay: float = REPAINT_RETRY_DELAY_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.provider = provider
        self.resolver = resolver
        self.identity_resolver = identity_resolver
        self.context = context
        self.min_interval = min_interval
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._timers = timers if timers is not None else TimerRegistry()
        self._clock = clock

        self._pass_task: asyncio.Task[None] | None = None
        self._trailing: ScheduledCall | None = None
        self._follow_up = False
        self._follow_up_bypass = False
        self._last_completed: float | None = None
        self._retry_count = 0
        self._closed = False

        self.passes_run = 0
        self.requests_coalesced = 0
        self.retries_scheduled = 0
        self.last_result: PassResult | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pass_running(self) -> bool:
        return self._pass_task is not None and not self._pass_task.done()

    def request_repaint(self, bypass_throttle: bool = False) -> None:
        """Ask for a repaint pass. Must be called from the event loop thread."""
        if self._closed:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("Repaint requested without a running event loop; ignored")
            return

        if self.pass_running:
            self._follow_up = True
            self._follow_up_bypass = self._follow_up_bypass or bypass_throttle
            counter("scheduler.follow_up_flagged")
            return

        if not bypass_throttle:
            delay = self._throttle_delay()
            if delay > 0:
                self.requests_coalesced += 1
                if self._trailing is None or self._trailing.done():
                    self._trailing = self._timers.call_later(
                        self.context, delay, self._fire_trailing, name="trailing"
                    )
                return

        self._start_pass()

    def teardown(self) -> None:
        """
        Stop scheduling for this render context.

        Side Effects:
            - Cancels trailing passes and retries scheduled for the context
            - Cancels the running pass; no further paint is applied
        """
        if self._closed:
            return
        self._closed = True
        self._follow_up = False
        self._trailing = None
        cancelled = self._timers.cancel_context(self.context)
        if self._pass_task is not None and not self._pass_task.done():
            self._pass_task.cancel()
            cancelled += 1
        logger.info("Render context %s torn down (%d pending task(s) cancelled)", self.context, cancelled)

    async def wait_idle(self, timeout: float | None = None) -> None:
        """Wait until no pass is running and nothing is scheduled for this context."""

        async def _drain() -> None:
            while True:
                tasks: list[asyncio.Task[Any]] = self._timers.pending(self.context)
                if self._pass_task is not None and not self._pass_task.done():
                    tasks.append(self._pass_task)
                if not tasks:
                    return
                await asyncio.wait(tasks)

        await asyncio.wait_for(_drain(), timeout)

    async def paint_identity(self, identity: str, options: ResolveOptions | None = None) -> int:
        """
        Repaint every rendered occurrence of ``identity`` right away, bypassing
        the scheduler (used after a color is picked for one task).

        Returns the number of occurrences painted.
        """
        if self._closed or not identity:
            return 0

        painted = 0
        for occurrence in list(await maybe_await(self.provider.occurrences())):
            if occurrence.excluded:
                continue
            resolved = occurrence.identity or await self._resolve_identity(occurrence)
            if resolved != identity:
                continue
            bundle = await self.resolver.resolve(occurrence.with_identity(resolved), options)
            if self._closed:
                break
            if bundle is not None and await self._paint(occurrence, bundle):
                painted += 1

        counter("scheduler.paint_identity")
        return painted

    def stats(self) -> dict[str, Any]:
        return {
            "context": self.context,
            "closed": self._closed,
            "pass_running": self.pass_running,
            "passes_run": self.passes_run,
            "requests_coalesced": self.requests_coalesced,
            "retries_scheduled": self.retries_scheduled,
            "retry_count": self._retry_count,
            "pending_timers": len(self._timers.pending(self.context)),
            "last_result": asdict(self.last_result) if self.last_result else None,
            "pass_latency": get_latency_stats(f"scheduler.{self.context}.pass"),
        }

    def _throttle_delay(self) -> float:
        if self._last_completed is None:
            return 0.0
        return self._last_completed + self.min_interval - self._clock()

    def _fire_trailing(self) -> None:
        self._trailing = None
        self.request_repaint(bypass_throttle=True)

    def _start_pass(self) -> None:
        if self._trailing is not None:
            self._trailing.cancel()
            self._trailing = None
        self._pass_task = asyncio.get_running_loop().create_task(
            self._run_pass(), name=f"tasktint-{self.context}-pass"
        )

    async def _run_pass(self) -> None:
        result: PassResult | None = None
        try:
            with time_block(f"scheduler.{self.context}.pass"):
                result = await self._paint_pass()
        except Exception:  # noqa: BLE001
            counter("scheduler.pass_error")
            logger.exception("Repaint pass failed in context %s", self.context)
        finally:
            self._last_completed = self._clock()
            self._pass_task = None

        self.passes_run += 1
        self.last_result = result
        if self._closed:
            return

        if result is not None:
            self._schedule_retry_if_empty(result)

        if self._follow_up:
            bypass = self._follow_up_bypass
            self._follow_up = False
            self._follow_up_bypass = False
            self.request_repaint(bypass_throttle=bypass)

    def _schedule_retry_if_empty(self, result: PassResult) -> None:
        if result.enumerated > 0:
            self._retry_count = 0
            return
        if not result.list_coloring_active or self._retry_count >= self.max_retries:
            return

        self._retry_count += 1
        self.retries_scheduled += 1
        counter("scheduler.empty_retry")
        logger.debug(
            "No occurrences rendered yet; retry %d/%d in %.2fs",
            self._retry_count,
            self.max_retries,
            self.retry_delay,
        )
        self._timers.call_later(
            self.context,
            self.retry_delay,
            lambda: self.request_repaint(bypass_throttle=True),
            name="retry",
        )

    async def _paint_pass(self) -> PassResult:
        result = PassResult()
        snapshot = await self.resolver.cache.acquire()
        occurrences = list(await maybe_await(self.provider.occurrences()))
        result.enumerated = len(occurrences)

        if not snapshot.style.coloring_enabled:
            result.disabled = True
            await self._clear_all(occurrences, result)
            return result
        result.list_coloring_active = snapshot.style.list_coloring_enabled

        # The host view nests duplicate elements for the same occurrence
        painted_identities: set[str] = set()

        for occurrence in occurrences:
            if self._closed:
                break
            if occurrence.excluded:
                result.excluded += 1
                continue

            identity = occurrence.identity or await self._resolve_identity(occurrence)
            if identity and identity in painted_identities:
                result.duplicates += 1
                continue

            bundle = await self.resolver.resolve(occurrence.with_identity(identity))
            if self._closed:
                break

            if not await self._paint(occurrence, bundle):
                result.gone += 1
            elif bundle is None:
                result.cleared += 1
            else:
                result.painted += 1
                if identity:
                    painted_identities.add(identity)

        counter("scheduler.pass")
        logger.debug("Pass in context %s: %s", self.context, result)
        return result

    async def _clear_all(self, occurrences: list[Occurrence], result: PassResult) -> None:
        """Strip styling from every rendered occurrence once coloring is switched off."""
        for occurrence in occurrences:
            if self._closed:
                break
            if occurrence.excluded:
                result.excluded += 1
            elif await self._paint(occurrence, None):
                result.cleared += 1
            else:
                result.gone += 1
        counter("scheduler.cleared_disabled")

    async def _resolve_identity(self, occurrence: Occurrence) -> str | None:
        if self.identity_resolver is None or occurrence.target is None:
            return None
        try:
            return await maybe_await(self.identity_resolver.resolve(occurrence.target))
        except RenderTargetGone:
            return None
        except Exception as e:  # noqa: BLE001
            counter("scheduler.identity_error")
            logger.warning("Identity resolution failed for %r: %s", occurrence.target, e)
            return None

    async def _paint(self, occurrence: Occurrence, bundle: ColorBundle | None) -> bool:
        target = occurrence.target
        if target is None:
            return False
        try:
            if bundle is None:
                await maybe_await(target.clear())
            else:
                await maybe_await(target.apply(bundle))
        except RenderTargetGone:
            logger.debug("Render target for %r disappeared mid-pass", occurrence.title)
            return False
        except Exception as e:  # noqa: BLE001
            counter("scheduler.paint_error")
            logger.warning("Painting %r failed: %s", occurrence.title, e)
            return False
        return True
