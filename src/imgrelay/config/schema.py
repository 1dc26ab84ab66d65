"""Pydantic model for resolved service settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

import imgrelay.config.defaults as defaults
from imgrelay.types import StoreBackend, UploadMethod


class Settings(BaseModel):
    telegram_bot_token: str = defaults.DEFAULT_TELEGRAM_BOT_TOKEN
    telegram_chat_id: str = defaults.DEFAULT_TELEGRAM_CHAT_ID
    upload_method: UploadMethod = UploadMethod.PHOTO
    relay_rpm: int = Field(default=defaults.DEFAULT_RELAY_RPM, ge=0)
    relay_retries: int = Field(default=defaults.DEFAULT_RELAY_RETRIES, ge=1)
    relay_timeout: float = Field(default=defaults.DEFAULT_RELAY_TIMEOUT, gt=0)

    origin_timeout: float = Field(default=defaults.DEFAULT_ORIGIN_TIMEOUT, gt=0)
    max_image_mb: float = Field(default=defaults.DEFAULT_MAX_IMAGE_MB, gt=0)

    store: StoreBackend = StoreBackend.SQLITE
    db_dir: str = defaults.DEFAULT_DB_DIR
    memory_max_entries: int | None = Field(default=defaults.DEFAULT_MEMORY_MAX_ENTRIES, ge=1)
    ttl_seconds: float | None = defaults.DEFAULT_TTL_SECONDS

    host: str = defaults.DEFAULT_HOST
    port: int = defaults.DEFAULT_PORT
    log_level: str = defaults.DEFAULT_LOG_LEVEL

    @field_validator("telegram_bot_token", "telegram_chat_id", mode="before")
    @classmethod
    def _coerce_credential(cls, value: Any) -> str:
        # YAML reads chat ids like -1001234 as ints
        return "" if value is None else str(value).strip()

    @property
    def bot_configured(self) -> bool:
        """Both relay credentials present. Informational only."""
        return bool(self.telegram_bot_token and self.telegram_chat_id)

    @property
    def max_image_bytes(self) -> int:
        return int(self.max_image_mb * 1024 * 1024)

    @property
    def db_path_dir(self) -> Path:
        return Path(self.db_dir).expanduser()

    def redacted(self) -> dict[str, Any]:
        """Settings as a dict with the bot token masked."""
        data = self.model_dump(mode="json")
        if data["telegram_bot_token"]:
            data["telegram_bot_token"] = "***"
        return data
