"""
Capability interfaces the coloring core depends on.

Host-view adapters (DOM bridges, test fakes, remote clients) implement these
protocols; the core never touches host elements directly. Methods documented
as "sync or async" may return either a value or an awaitable.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

if TYPE_CHECKING:
    from tasktint.coloring.models import ColorBundle, Occurrence

T = TypeVar("T")


@runtime_checkable
class RenderTarget(Protocol):
    """Host element for one occurrence. Raise ``RenderTargetGone`` once detached."""

    def apply(self, bundle: ColorBundle) -> Any: ...

    def clear(self) -> Any: ...

    def identity_hint(self) -> str | None: ...


class OccurrenceProvider(Protocol):
    def occurrences(self) -> Iterable[Occurrence] | Awaitable[Iterable[Occurrence]]:
        """Currently rendered occurrences (sync or async)."""
        ...


class IdentityResolver(Protocol):
    def resolve(self, target: Any) -> str | None | Awaitable[str | None]:
        """Authoritative identity for a render target, if known (sync or async)."""
        ...


@dataclass(frozen=True)
class StorageChange:
    old_value: Any = None
    new_value: Any = None


ChangeListener = Callable[[Mapping[str, StorageChange], str], Any]


class StoragePartition(Protocol):
    async def get(self, keys: Sequence[str]) -> dict[str, Any]: ...

    async def set(self, key: str, value: Any) -> None: ...


class PersistenceLayer(Protocol):
    """Key-value store with a device-scoped ``local`` and a roaming ``sync`` partition."""

    @property
    def local(self) -> StoragePartition: ...

    @property
    def sync(self) -> StoragePartition: ...

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener; returns an unsubscribe callable."""
        ...


async def maybe_await(value: T | Awaitable[T]) -> T:
    """Await ``value`` if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value
