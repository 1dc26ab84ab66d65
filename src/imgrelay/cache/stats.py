"""Cache entry and statistics models."""

from __future__ import annotations

import time
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from imgrelay.types import ImageKind, RelayReference, StorageKind


class CacheEntry(BaseModel):
    """A cached image: either inline bytes or a relay pointer."""

    key: str
    image_id: str
    origin_url: str
    kind: ImageKind = ImageKind.POSTER
    content_type: str = "image/jpeg"
    data: bytes | None = None
    relay: RelayReference | None = None
    size_bytes: int = 0
    created_at: float = Field(default_factory=time.time)
    last_accessed: float = Field(default_factory=time.time)
    ttl_seconds: float | None = None  # None = never expires

    @property
    def storage(self) -> StorageKind:
        return StorageKind.RELAY if self.relay is not None else StorageKind.INLINE

    @property
    def is_expired(self) -> bool:
        if self.ttl_seconds is None:
            return False
        return time.time() > self.created_at + self.ttl_seconds


class CacheStats(BaseModel):
    """Point-in-time snapshot of a cache. Never stored."""

    size: int = 0
    keys: list[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_payload(self) -> dict:
        """JSON body for the stats routes."""
        return {
            "size": self.size,
            "keys": list(self.keys),
            "timestamp": format_timestamp(self.timestamp),
        }


def format_timestamp(when: datetime | None = None) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    when = when or datetime.now(UTC)
    return when.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
