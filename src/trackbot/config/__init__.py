"""Configuration: YAML + env overlay."""

from trackbot.config.loader import _deep_update, load_config, load_config_with_env
from trackbot.config.schema import Config, ProjectSettings, TrackerSettings, build_tracker_settings, cfg

__all__ = [
    "Config",
    "ProjectSettings",
    "TrackerSettings",
    "_deep_update",
    "build_tracker_settings",
    "cfg",
    "load_config",
    "load_config_with_env",
]
