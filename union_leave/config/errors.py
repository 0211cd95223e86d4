"""Configuration error classes."""

from __future__ import annotations


class ConfigError(Exception):
    """Base exception for configuration errors."""

    pass


class MissingKeyError(ConfigError):
    """Raised when a key has no stored value and no schema default."""

    pass


class ValidationError(ConfigError):
    """Raised when a config value fails type conversion or range checks."""

    pass


class UnknownKeyError(ConfigError):
    """Raised when a key is not registered in the schema."""

    pass
