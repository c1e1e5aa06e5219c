"""Configuration exceptions."""


class ConfigError(Exception):
    """Base exception for configuration errors."""

    pass


class InvalidSettingError(ConfigError):
    """A setting holds a value the runtime cannot use."""

    pass
