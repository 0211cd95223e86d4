"""
Schema-validated configuration for the import pipeline.

Usage:
    from union_leave.config import ConfigLoader

    config = ConfigLoader.get_instance()
    floor = config.get_int("matching.floor.common")
"""

from __future__ import annotations

from .errors import (
    ConfigError,
    MissingKeyError,
    UnknownKeyError,
    ValidationError,
)
from .loader import ConfigLoader
from .schema import CONFIG_SCHEMA, get_all_required_keys, get_schema_key, validate_key
from .types import ConfigKey, ConfigType

__all__ = [
    "ConfigLoader",
    "ConfigError",
    "MissingKeyError",
    "ValidationError",
    "UnknownKeyError",
    "CONFIG_SCHEMA",
    "ConfigKey",
    "ConfigType",
    "get_schema_key",
    "get_all_required_keys",
    "validate_key",
]
