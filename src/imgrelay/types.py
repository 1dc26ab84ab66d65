"""Shared Pydantic models for imgrelay."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel

# ── Enums ──


class ImageKind(StrEnum):
    POSTER = "poster"
    BACKDROP = "backdrop"
    SCENE = "scene"


class StorageKind(StrEnum):
    INLINE = "inline"
    RELAY = "relay"


class UploadMethod(StrEnum):
    PHOTO = "photo"
    DOCUMENT = "document"


class StoreBackend(StrEnum):
    MEMORY = "memory"
    SQLITE = "sqlite"


# ── Transfer models ──


class FetchedImage(BaseModel):
    """Raw image bytes plus the content type they were served with."""

    data: bytes
    content_type: str = "image/jpeg"

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class RelayReference(BaseModel):
    """Durable pointer to a blob held by the messaging relay."""

    file_id: str
    file_unique_id: str = ""
    file_path: str | None = None
    message_id: int | None = None
    file_size: int | None = None
