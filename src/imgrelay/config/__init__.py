"""Configuration from defaults, YAML files, the environment and runtime overrides."""

from imgrelay.config.hierarchy import load_config_hierarchy, load_settings
from imgrelay.config.schema import Settings

__all__ = ["Settings", "load_config_hierarchy", "load_settings"]
