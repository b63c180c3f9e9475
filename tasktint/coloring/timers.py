"""Cancelable delayed calls keyed by render context.

Trailing repaints and empty-result retries are scheduled here instead of on
bare event-loop timers, so tearing down a render context cancels everything
it scheduled and no late paint reaches a dead view.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from tasktint.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ScheduledCall:
    """Handle for one delayed call."""

    context: str
    task: asyncio.Task[None]

    def cancel(self) -> bool:
        return self.task.cancel()

    def done(self) -> bool:
        return self.task.done()


class TimerRegistry:
    def __init__(self) -> None:
        self._pending: dict[str, set[asyncio.Task[None]]] = {}

    def call_later(
        self, context: str, delay: float, callback: Callable[[], Any], *, name: str = "call"
    ) -> ScheduledCall:
        """Run ``callback()`` after ``delay`` seconds unless ``context`` is cancelled first.

        Requires a running event loop.
        """
        task = asyncio.get_running_loop().create_task(
            self._run_later(max(0.0, delay), callback), name=f"tasktint-{context}-{name}"
        )
        self._pending.setdefault(context, set()).add(task)
        task.add_done_callback(lambda done: self._discard(context, done))
        return ScheduledCall(context=context, task=task)

    def cancel_context(self, context: str) -> int:
        """Cancel every pending call for ``context``. Returns how many were cancelled."""
        tasks = self._pending.pop(context, set())
        cancelled = sum(1 for task in tasks if task.cancel())
        if cancelled:
            logger.debug("Cancelled %d scheduled call(s) for context %s", cancelled, context)
        return cancelled

    def pending(self, context: str) -> list[asyncio.Task[None]]:
        return [task for task in self._pending.get(context, ()) if not task.done()]

    def _discard(self, context: str, task: asyncio.Task[None]) -> None:
        tasks = self._pending.get(context)
        if tasks is None:
            return
        tasks.discard(task)
        if not tasks:
            self._pending.pop(context, None)

    @staticmethod
    async def _run_later(delay: float, callback: Callable[[], Any]) -> None:
        await asyncio.sleep(delay)
        try:
            callback()
        except Exception:  # noqa: BLE001
            logger.exception("Scheduled callback %r failed", callback)
