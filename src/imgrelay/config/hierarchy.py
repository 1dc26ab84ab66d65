"""Configuration hierarchy. Merges sources in priority order.

Precedence (later overrides earlier):
  1. Package defaults
  2. Global config   (~/.imgrelay/config.yaml)
  3. Project config  (./imgrelay.yaml)
  4. Environment variables (TELEGRAM_*, IMGRELAY_*)
  5. Runtime arguments
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from imgrelay.config.defaults import get_defaults
from imgrelay.config.loader import load_yaml
from imgrelay.config.schema import Settings

logger = logging.getLogger(__name__)

_GLOBAL_CONFIG_PATH = Path.home() / ".imgrelay" / "config.yaml"
_PROJECT_CONFIG_NAME = "imgrelay.yaml"

# Map of environment variables to config keys
_ENV_MAP: dict[str, str] = {
    "TELEGRAM_BOT_TOKEN": "telegram_bot_token",
    "TELEGRAM_CHAT_ID": "telegram_chat_id",
    "IMGRELAY_UPLOAD_METHOD": "upload_method",
    "IMGRELAY_RELAY_RPM": "relay_rpm",
    "IMGRELAY_RELAY_RETRIES": "relay_retries",
    "IMGRELAY_RELAY_TIMEOUT": "relay_timeout",
    "IMGRELAY_ORIGIN_TIMEOUT": "origin_timeout",
    "IMGRELAY_MAX_IMAGE_MB": "max_image_mb",
    "IMGRELAY_STORE": "store",
    "IMGRELAY_DB_DIR": "db_dir",
    "IMGRELAY_MEMORY_MAX_ENTRIES": "memory_max_entries",
    "IMGRELAY_TTL_SECONDS": "ttl_seconds",
    "IMGRELAY_HOST": "host",
    "IMGRELAY_PORT": "port",
    "IMGRELAY_LOG_LEVEL": "log_level",
}

# Keys where an empty, "none" or "never" value means unset
_NULLABLE_KEYS = {"ttl_seconds", "memory_max_entries"}

# Keys that should be parsed as specific types
_TYPE_MAP: dict[str, type] = {
    "relay_rpm": int,
    "relay_retries": int,
    "relay_timeout": float,
    "origin_timeout": float,
    "max_image_mb": float,
    "ttl_seconds": float,
    "memory_max_entries": int,
    "port": int,
}


def load_config_hierarchy(**runtime_overrides: Any) -> dict[str, Any]:
    """Load and merge configuration from all sources.

    Returns a merged dict with the final resolved values.
    """
    config = get_defaults()

    # Layer 2: Global config
    global_cfg = _load_yaml_config(_GLOBAL_CONFIG_PATH)
    if global_cfg:
        config.update(global_cfg)

    # Layer 3: Project config (search from cwd upward)
    project_path = _find_project_config()
    if project_path:
        project_cfg = _load_yaml_config(project_path)
        if project_cfg:
            config.update(project_cfg)

    # Layer 4: Environment variables
    config.update(_load_env_vars())

    # Layer 5: Runtime arguments (highest priority)
    for key, value in runtime_overrides.items():
        if value is not None:
            config[key] = value

    return config


def _load_yaml_config(path: Path) -> dict[str, Any] | None:
    """Load a YAML config file if present. A broken file is skipped with a warning."""
    if not path.is_file():
        return None
    try:
        return load_yaml(path)
    except ValueError as e:
        logger.warning("Skipping config %s: %s", path, e)
        return None


def _find_project_config() -> Path | None:
    """Search for imgrelay.yaml from cwd upward."""
    cwd = Path.cwd()
    for parent in [cwd, *cwd.parents]:
        candidate = parent / _PROJECT_CONFIG_NAME
        if candidate.exists():
            return candidate
    return None


def _load_env_vars() -> dict[str, Any]:
    """Read TELEGRAM_* and IMGRELAY_* environment variables."""
    result: dict[str, Any] = {}
    for env_key, config_key in _ENV_MAP.items():
        value = os.environ.get(env_key)
        if value is None:
            continue
        result[config_key] = _coerce_env_value(config_key, value)
    return result


def _coerce_env_value(key: str, value: str) -> Any:
    """Coerce an environment variable string to the appropriate type."""
    target_type = _TYPE_MAP.get(key)
    if target_type:
        if key in _NULLABLE_KEYS and value.strip().lower() in {"", "none", "never"}:
            return None
        try:
            return target_type(value)
        except (ValueError, TypeError):
            logger.warning(
                "Cannot convert env var for '%s' to %s: %s", key, target_type.__name__, value
            )
            return value

    return value


def load_settings(**runtime_overrides: Any) -> Settings:
    """Resolve the hierarchy and validate it into Settings."""
    return Settings(**load_config_hierarchy(**runtime_overrides))
