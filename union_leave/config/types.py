"""Configuration type definitions.

A ConfigKey describes one tunable value: its type, the default used when
neither the environment nor the config collection provides it, and the
range it must fall in.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ConfigType(Enum):
    """Supported configuration value types."""

    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    STRING = "string"


@dataclass(frozen=True)
class ConfigKey:
    """
    Definition of a configuration key with validation rules.

    Attributes:
        key: Dot-notation key (e.g., "matching.floor.common")
        config_type: Expected value type
        default: Value used when no override exists (None means required)
        description: Human-readable description
        min_value: Minimum allowed value (numeric types)
        max_value: Maximum allowed value (numeric types)
    """

    key: str
    config_type: ConfigType
    default: Any = None
    description: str = ""
    min_value: float | None = None
    max_value: float | None = None

    @property
    def required(self) -> bool:
        """A key without a default must be supplied by env or database."""
        return self.default is None

    def validate(self, value: Any) -> str | None:
        """
        Validate a converted value against this key's rules.

        Returns:
            None if valid, error message string if invalid
        """
        if self.config_type in (ConfigType.INT, ConfigType.FLOAT):
            if self.min_value is not None and value < self.min_value:
                return f"Value {value} below minimum {self.min_value}"
            if self.max_value is not None and value > self.max_value:
                return f"Value {value} above maximum {self.max_value}"
        return None
