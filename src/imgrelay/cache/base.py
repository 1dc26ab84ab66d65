"""PersistenceStore protocol shared by the memory and SQLite backends."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from imgrelay.cache.stats import CacheEntry


@runtime_checkable
class PersistenceStore(Protocol):
    """Durable key → CacheEntry mapping.

    Only the CacheCoordinator writes. Every method is awaitable and safe to
    call from concurrent requests on one event loop; an entry is replaced
    as a whole, never partially.
    """

    async def get(self, key: str) -> CacheEntry | None: ...

    async def put(self, key: str, entry: CacheEntry) -> None: ...

    async def touch(self, key: str, when: float) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def clear(self) -> None: ...

    async def size(self) -> int: ...

    async def keys(self) -> list[str]: ...

    async def close(self) -> None: ...
