"""Cache subsystem: content-addressed keys, pluggable stores and coalesced population."""

from imgrelay.cache.base import PersistenceStore
from imgrelay.cache.coordinator import CacheCoordinator
from imgrelay.cache.disk import SqliteStore
from imgrelay.cache.inflight import InFlightRegistry
from imgrelay.cache.keys import derive_key, normalize_url
from imgrelay.cache.memory import MemoryStore
from imgrelay.cache.stats import CacheEntry, CacheStats

__all__ = [
    "CacheCoordinator",
    "CacheEntry",
    "CacheStats",
    "InFlightRegistry",
    "MemoryStore",
    "PersistenceStore",
    "SqliteStore",
    "derive_key",
    "normalize_url",
]
