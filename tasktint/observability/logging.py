from __future__ import annotations

import logging
import os
from typing import Final

_HANDLER_ATTACHED: bool = False
_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_PACKAGE_LOGGER: Final[str] = "tasktint"


def _resolve_level(override: str | None = None) -> int:
    level_name = (override or os.getenv("TASKTINT_LOG_LEVEL", "INFO")).upper()
    return getattr(logging, level_name, logging.INFO)


def configure_logging(level: str | None = None) -> None:
    """Attach the package stream handler once and apply the level.

    The handler lives on the ``tasktint`` logger rather than the root logger
    so a host application keeps control of its own logging tree.
    """
    global _HANDLER_ATTACHED

    package_logger = logging.getLogger(_PACKAGE_LOGGER)
    package_logger.setLevel(_resolve_level(level))

    if not _HANDLER_ATTACHED:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        package_logger.addHandler(handler)
        _HANDLER_ATTACHED = True


def get_logger(name: str) -> logging.Logger:
    """Return a module logger under the configured ``tasktint`` handler."""
    configure_logging()
    if name != _PACKAGE_LOGGER and not name.startswith(f"{_PACKAGE_LOGGER}."):
        name = f"{_PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
