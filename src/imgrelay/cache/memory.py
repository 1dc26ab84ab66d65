"""In-memory store, ordered by insertion."""

from __future__ import annotations

import asyncio
from collections import OrderedDict

from imgrelay.cache.stats import CacheEntry


class MemoryStore:
    """Process-local store with optional entry-count eviction (oldest first)."""

    def __init__(self, max_entries: int | None = None) -> None:
        self._store: OrderedDict[str, CacheEntry] = OrderedDict()
        self._max_entries = max_entries
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> CacheEntry | None:
        async with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if entry.is_expired:
                del self._store[key]
                return None
            return entry

    async def put(self, key: str, entry: CacheEntry) -> None:
        async with self._lock:
            # Re-insert so a replaced key moves to the newest position
            self._store.pop(key, None)
            self._store[key] = entry
            if self._max_entries is not None:
                while len(self._store) > self._max_entries:
                    self._store.popitem(last=False)

    async def touch(self, key: str, when: float) -> None:
        async with self._lock:
            entry = self._store.get(key)
            if entry is not None:
                self._store[key] = entry.model_copy(update={"last_accessed": when})

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._store.pop(key, None) is not None

    async def clear(self) -> None:
        async with self._lock:
            self._store.clear()

    async def size(self) -> int:
        async with self._lock:
            self._purge_expired()
            return len(self._store)

    async def keys(self) -> list[str]:
        async with self._lock:
            self._purge_expired()
            return list(self._store.keys())

    async def close(self) -> None:
        return None

    def __len__(self) -> int:
        return len(self._store)

    def _purge_expired(self) -> None:
        for key in [k for k, entry in self._store.items() if entry.is_expired]:
            del self._store[key]
