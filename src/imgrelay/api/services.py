"""Process-wide service container, built once at startup."""

from __future__ import annotations

import logging

import httpx

from imgrelay.cache.base import PersistenceStore
from imgrelay.cache.coordinator import CacheCoordinator
from imgrelay.cache.disk import SqliteStore
from imgrelay.cache.memory import MemoryStore
from imgrelay.concurrency.rate_limiter import RateLimiter
from imgrelay.config.schema import Settings
from imgrelay.origin.fetcher import OriginFetcher
from imgrelay.relay.telegram import TelegramRelay
from imgrelay.types import StoreBackend

logger = logging.getLogger(__name__)


class Services:
    """Holds the two caches and their collaborators for the route handlers.

    ``image_cache`` keeps bytes inline; ``telegram_cache`` keeps relay
    references. Both share one origin fetcher.
    """

    def __init__(
        self,
        settings: Settings,
        image_cache: CacheCoordinator,
        telegram_cache: CacheCoordinator,
        fetcher: OriginFetcher,
        relay: TelegramRelay,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self.image_cache = image_cache
        self.telegram_cache = telegram_cache
        self.fetcher = fetcher
        self.relay = relay
        self._client = client

    @property
    def bot_configured(self) -> bool:
        return self.settings.bot_configured

    async def close(self) -> None:
        await self.image_cache.close()
        await self.telegram_cache.close()
        await self.fetcher.close()
        await self.relay.close()
        if self._client is not None:
            await self._client.aclose()


def build_store(settings: Settings, name: str) -> PersistenceStore:
    if settings.store == StoreBackend.MEMORY:
        return MemoryStore(max_entries=settings.memory_max_entries)
    return SqliteStore(db_path=settings.db_path_dir / f"{name}.db")


def build_services(settings: Settings) -> Services:
    """Wire the production object graph from settings."""
    client = httpx.AsyncClient(
        follow_redirects=True,
        limits=httpx.Limits(max_keepalive_connections=20, max_connections=100),
    )
    fetcher = OriginFetcher(
        client=client,
        timeout=settings.origin_timeout,
        max_bytes=settings.max_image_bytes,
    )
    relay = TelegramRelay(
        bot_token=settings.telegram_bot_token,
        chat_id=settings.telegram_chat_id,
        client=client,
        timeout=settings.relay_timeout,
        upload_method=settings.upload_method,
        rate_limiter=RateLimiter(rpm_limit=settings.relay_rpm),
        retry_attempts=settings.relay_retries,
    )
    image_cache = CacheCoordinator(
        store=build_store(settings, "image_cache"),
        fetcher=fetcher,
        ttl_seconds=settings.ttl_seconds,
        name="image",
    )
    telegram_cache = CacheCoordinator(
        store=build_store(settings, "telegram_cache"),
        fetcher=fetcher,
        relay=relay,
        ttl_seconds=settings.ttl_seconds,
        name="telegram",
    )
    logger.info(
        "Services ready (store=%s, bot_configured=%s)",
        settings.store.value,
        settings.bot_configured,
    )
    return Services(
        settings=settings,
        image_cache=image_cache,
        telegram_cache=telegram_cache,
        fetcher=fetcher,
        relay=relay,
        client=client,
    )
