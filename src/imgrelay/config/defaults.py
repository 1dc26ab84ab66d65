"""Package-level default configuration values."""

from __future__ import annotations

from typing import Any

# Telegram relay
DEFAULT_TELEGRAM_BOT_TOKEN = ""
DEFAULT_TELEGRAM_CHAT_ID = ""
DEFAULT_UPLOAD_METHOD = "photo"
DEFAULT_RELAY_RPM = 20  # Telegram allows ~20 messages/min into one group
DEFAULT_RELAY_RETRIES = 1  # single attempt
DEFAULT_RELAY_TIMEOUT = 60.0

# Origin
DEFAULT_ORIGIN_TIMEOUT = 30.0
DEFAULT_MAX_IMAGE_MB = 10.0

# Store
DEFAULT_STORE = "sqlite"
DEFAULT_DB_DIR = "~/.imgrelay"
DEFAULT_MEMORY_MAX_ENTRIES = None  # unbounded
DEFAULT_TTL_SECONDS = None  # never expire

# Server
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000

# Log level
DEFAULT_LOG_LEVEL = "WARNING"


def get_defaults() -> dict[str, Any]:
    """Return all defaults as a flat dictionary for merging."""
    return {
        "telegram_bot_token": DEFAULT_TELEGRAM_BOT_TOKEN,
        "telegram_chat_id": DEFAULT_TELEGRAM_CHAT_ID,
        "upload_method": DEFAULT_UPLOAD_METHOD,
        "relay_rpm": DEFAULT_RELAY_RPM,
        "relay_retries": DEFAULT_RELAY_RETRIES,
        "relay_timeout": DEFAULT_RELAY_TIMEOUT,
        "origin_timeout": DEFAULT_ORIGIN_TIMEOUT,
        "max_image_mb": DEFAULT_MAX_IMAGE_MB,
        "store": DEFAULT_STORE,
        "db_dir": DEFAULT_DB_DIR,
        "memory_max_entries": DEFAULT_MEMORY_MAX_ENTRIES,
        "ttl_seconds": DEFAULT_TTL_SECONDS,
        "host": DEFAULT_HOST,
        "port": DEFAULT_PORT,
        "log_level": DEFAULT_LOG_LEVEL,
    }
