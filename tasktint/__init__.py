"""tasktint - color every rendered occurrence of a recurring task"""

from __future__ import annotations

__version__ = "1.0.0"


# Lazy imports keep `import tasktint` free of the coloring and storage stacks
def __getattr__(name: str):
    if name == "ColoringService":
        from tasktint.coloring.service import ColoringService

        return ColoringService

    if name in ("ColorBundle", "Occurrence", "ResolveOptions"):
        from tasktint.coloring import models

        return getattr(models, name)

    if name in ("MemoryStore", "SQLiteStore"):
        from tasktint.storage import memory, sqlite_store

        return memory.MemoryStore if name == "MemoryStore" else sqlite_store.SQLiteStore

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "ColorBundle",
    "ColoringService",
    "MemoryStore",
    "Occurrence",
    "ResolveOptions",
    "SQLiteStore",
]
