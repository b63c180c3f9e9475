"""Exceptions raised at the edges of the coloring core.

None of these escape ``RenderScheduler.request_repaint``: the core recovers
locally and the only visible failure mode is "no color applied".
"""

from __future__ import annotations


class TaskTintError(Exception):
    """Base class for tasktint errors."""


class TransientFetchError(TaskTintError):
    """A persistence read failed; callers degrade to an empty snapshot."""


class RenderTargetGone(TaskTintError):
    """The host view removed the render target while a pass was running."""
