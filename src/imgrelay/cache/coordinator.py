"""Get-or-populate over a store, an origin and an optional relay."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from imgrelay.cache.inflight import InFlightRegistry
from imgrelay.cache.keys import derive_key
from imgrelay.cache.stats import CacheEntry, CacheStats
from imgrelay.types import ImageKind
from imgrelay.utils.image import image_filename

if TYPE_CHECKING:
    from imgrelay.cache.base import PersistenceStore
    from imgrelay.origin.fetcher import OriginFetcher
    from imgrelay.relay.telegram import TelegramRelay

logger = logging.getLogger(__name__)


class CacheCoordinator:
    """Sole writer of a PersistenceStore.

    Per key: ABSENT → POPULATING → PRESENT, back to ABSENT on failure.
    Without a relay, entries hold the image bytes inline; with one, the
    bytes are uploaded and only the relay reference is kept.
    """

    def __init__(
        self,
        store: PersistenceStore,
        fetcher: OriginFetcher,
        relay: TelegramRelay | None = None,
        ttl_seconds: float | None = None,
        name: str = "image",
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._relay = relay
        self._ttl_seconds = ttl_seconds
        self._name = name
        self._inflight = InFlightRegistry()

    @property
    def name(self) -> str:
        return self._name

    @property
    def store(self) -> PersistenceStore:
        return self._store

    @property
    def relay(self) -> TelegramRelay | None:
        return self._relay

    @property
    def in_flight(self) -> int:
        return len(self._inflight)

    async def get(
        self,
        image_id: str,
        url: str,
        kind: ImageKind | str = ImageKind.POSTER,
    ) -> CacheEntry:
        """Return the entry for ``(image_id, url)``, populating it on a miss."""
        key = derive_key(image_id, url)
        entry = await self._hit(key)
        if entry is not None:
            return entry

        kind = ImageKind(kind)
        return await self._inflight.run(key, lambda: self._populate(key, image_id, url, kind))

    async def lookup(self, image_id: str, url: str) -> CacheEntry | None:
        """Return the entry if present; never populates."""
        return await self._hit(derive_key(image_id, url))

    async def delete(self, image_id: str, url: str) -> bool:
        """Remove the entry whatever its state; the next get repopulates."""
        key = derive_key(image_id, url)
        detached = self._inflight.forget(key)
        existed = await self._store.delete(key)
        logger.info(
            "[%s] Deleted %s (existed=%s, in_flight=%s)", self._name, key[:12], existed, detached
        )
        return existed

    async def clear(self) -> None:
        detached = self._inflight.forget_all()
        await self._store.clear()
        logger.info("[%s] Cache cleared (%d populations detached)", self._name, detached)

    async def stats(self) -> CacheStats:
        keys = await self._store.keys()
        return CacheStats(size=len(keys), keys=keys)

    async def close(self) -> None:
        await self._store.close()

    async def _hit(self, key: str) -> CacheEntry | None:
        entry = await self._store.get(key)
        if entry is None:
            return None
        now = time.time()
        await self._store.touch(key, now)
        return entry.model_copy(update={"last_accessed": now})

    async def _populate(self, key: str, image_id: str, url: str, kind: ImageKind) -> CacheEntry:
        # A population that finished just before this one was registered
        existing = await self._store.get(key)
        if existing is not None:
            return existing

        logger.info("[%s] Miss for %s, fetching %s", self._name, key[:12], url)
        image = await self._fetcher.fetch(url)

        entry = CacheEntry(
            key=key,
            image_id=str(image_id),
            origin_url=url,
            kind=kind,
            content_type=image.content_type,
            size_bytes=image.size_bytes,
            ttl_seconds=self._ttl_seconds,
        )
        if self._relay is not None:
            filename = image_filename(str(image_id), kind.value, image.content_type)
            reference = await self._relay.upload(image.data, image.content_type, filename)
            entry = entry.model_copy(update={"relay": reference})
        else:
            entry = entry.model_copy(update={"data": image.data})

        if self._inflight.owns(key):
            await self._store.put(key, entry)
            logger.info("[%s] Stored %s (%d bytes)", self._name, key[:12], entry.size_bytes)
        else:
            # Deleted or cleared while populating
            logger.info("[%s] Discarding detached population for %s", self._name, key[:12])
        return entry
