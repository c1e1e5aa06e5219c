"""
Configuration for flowcraft.

- Global settings from environment variables
- Configuration exceptions
"""

from flowcraft.config.exceptions import ConfigError, InvalidSettingError
from flowcraft.config.settings import FlowcraftSettings, settings

__all__ = [
    "FlowcraftSettings",
    "settings",
    "ConfigError",
    "InvalidSettingError",
]
