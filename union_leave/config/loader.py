"""
ConfigLoader - schema-validated configuration for the import pipeline.

Resolution order for every key:
    1. Environment variable CONFIG_<KEY> (dots become underscores)
    2. PocketBase "config" collection (cached for cache_ttl_seconds)
    3. The schema default

Keys without a schema default raise MissingKeyError when unresolved.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, cast

from pocketbase import PocketBase

from ..settings import get_settings
from .errors import (
    ConfigError,
    MissingKeyError,
    UnknownKeyError,
    ValidationError,
)
from .schema import CONFIG_SCHEMA, get_all_required_keys
from .types import ConfigType

logger = logging.getLogger(__name__)


class ConfigLoader:
    """
    Configuration loader with a process-wide default instance.

    Usage:
        loader = ConfigLoader.get_instance()
        floor = loader.get_int("matching.floor.common")
        strict = loader.get_bool("duplicates.strict_mode")

        # Test substitution
        with ConfigLoader.use(ConfigLoader(pb_client=mock_pb)):
            ...
    """

    _instance: ConfigLoader | None = None
    _initialized: bool = False

    def __init__(
        self,
        pb_client: PocketBase | Any | None = None,
        cache_ttl_seconds: int = 300,
    ):
        """
        Args:
            pb_client: PocketBase client. If None, one is created on first database lookup.
            cache_ttl_seconds: Cache TTL in seconds (default 5 minutes).
        """
        self._pb = pb_client
        self._cache_ttl = cache_ttl_seconds
        self._cache: dict[str, tuple[Any, float]] = {}

    def _create_pb_client(self) -> PocketBase:
        """Create and authenticate a PocketBase client from settings."""
        settings = get_settings()
        pb = PocketBase(settings.pocketbase_url)

        try:
            pb.collection("_superusers").auth_with_password(
                settings.pocketbase_admin_email, settings.pocketbase_admin_password
            )
        except Exception as e:
            # Unauthenticated lookups fall through to schema defaults
            logger.warning(f"Failed to authenticate with PocketBase: {e}")

        return pb

    @property
    def pb(self) -> PocketBase | Any:
        if self._pb is None:
            self._pb = self._create_pb_client()
        return self._pb

    @classmethod
    def initialize(cls, pb_client: PocketBase | Any | None = None, validate_on_init: bool = False) -> ConfigLoader:
        """
        Initialize the shared ConfigLoader.

        Args:
            pb_client: Optional client to use for database lookups
            validate_on_init: If True, checks that every required key resolves

        Returns:
            The initialized ConfigLoader instance
        """
        if cls._initialized and cls._instance is not None:
            logger.debug("ConfigLoader already initialized, returning existing instance")
            return cls._instance

        instance = cls(pb_client=pb_client)
        if validate_on_init:
            instance.validate_required_keys()

        cls._instance = instance
        cls._initialized = True
        logger.debug("ConfigLoader initialized")
        return instance

    @classmethod
    def get_instance(cls) -> ConfigLoader:
        """Get the shared instance, initializing lazily."""
        if not cls._initialized or cls._instance is None:
            return cls.initialize()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset singleton state. For testing only."""
        cls._instance = None
        cls._initialized = False

    @classmethod
    @contextmanager
    def use(cls, loader: ConfigLoader) -> Iterator[None]:
        """Temporarily replace the shared instance with a custom loader."""
        original = cls._instance
        original_initialized = cls._initialized
        cls._instance = loader
        cls._initialized = True
        try:
            yield
        finally:
            cls._instance = original
            cls._initialized = original_initialized

    def validate_required_keys(self) -> None:
        """
        Check that every key without a default resolves to a valid value.

        Raises:
            ConfigError: If any required keys are missing or invalid
        """
        problems: list[str] = []
        for key in get_all_required_keys():
            try:
                self.get(key)
            except (MissingKeyError, ValidationError) as e:
                problems.append(str(e))

        if problems:
            raise ConfigError("Configuration validation failed.\n" + "\n".join(problems))

    def _get_env_key(self, key: str) -> str:
        """matching.floor.common -> CONFIG_MATCHING_FLOOR_COMMON"""
        return "CONFIG_" + key.upper().replace(".", "_")

    def get(self, key: str) -> Any:
        """
        Get a typed configuration value.

        Raises:
            UnknownKeyError: If key is not in schema
            MissingKeyError: If a key without default is unresolved
            ValidationError: If value fails conversion or range checks
        """
        if key not in CONFIG_SCHEMA:
            raise UnknownKeyError(f"Unknown config key: '{key}'")

        schema = CONFIG_SCHEMA[key]

        env_key = self._get_env_key(key)
        env_value = os.environ.get(env_key)
        if env_value is not None:
            try:
                typed_value = self._convert_type(env_value, schema.config_type)
            except (ValueError, TypeError) as e:
                raise ValidationError(f"Environment variable {env_key} has invalid type: {e}") from e
            error = schema.validate(typed_value)
            if error:
                raise ValidationError(f"Environment variable {env_key}: {error}")
            return typed_value

        if key in self._cache:
            value, timestamp = self._cache[key]
            if time.time() - timestamp < self._cache_ttl:
                return value

        raw_value = self._query_database_raw(key)

        if raw_value is None:
            if schema.required:
                raise MissingKeyError(f"Required config key '{key}' not set in environment or config collection")
            typed_value = schema.default
        else:
            try:
                typed_value = self._convert_type(raw_value, schema.config_type)
            except (ValueError, TypeError) as e:
                raise ValidationError(f"Config key '{key}' has invalid type: {e}") from e

            error = schema.validate(typed_value)
            if error:
                raise ValidationError(f"Config key '{key}': {error}")

        self._cache[key] = (typed_value, time.time())
        return typed_value

    def get_int(self, key: str, default: int | None = None) -> int:
        """Get an integer config value."""
        try:
            return cast(int, self.get(key))
        except (MissingKeyError, UnknownKeyError):
            if default is not None:
                return default
            raise

    def get_bool(self, key: str, default: bool | None = None) -> bool:
        """Get a boolean config value."""
        try:
            return cast(bool, self.get(key))
        except (MissingKeyError, UnknownKeyError):
            if default is not None:
                return default
            raise

    def _query_database_raw(self, key: str) -> Any | None:
        """
        Query the PocketBase config collection.

        Records are addressed by category / subcategory / config_key, split from
        the dotted key ("matching.floor.common" -> matching / floor / common).

        Returns:
            The raw stored value, or None if not found or unreachable
        """
        parts = key.split(".")

        if len(parts) == 2:
            category, subcategory, config_key = parts[0], None, parts[1]
        else:
            category = parts[0]
            subcategory = "_".join(parts[1:-1])
            config_key = parts[-1]

        filter_str = f'category = "{category}" && config_key = "{config_key}"'
        if subcategory:
            filter_str += f' && subcategory = "{subcategory}"'
        else:
            filter_str += ' && (subcategory = null || subcategory = "")'

        try:
            record = self.pb.collection("config").get_first_list_item(filter_str)
            return record.value
        except Exception as e:
            logger.debug(f"Config key '{key}' not found in config collection: {e}")
            return None

    def _convert_type(self, value: Any, config_type: ConfigType) -> Any:
        """Convert a raw value to the specified type."""
        if config_type == ConfigType.INT:
            return int(value)
        if config_type == ConfigType.FLOAT:
            return float(value)
        if config_type == ConfigType.BOOL:
            if isinstance(value, bool):
                return value
            if isinstance(value, str):
                return value.lower() in ("true", "1", "yes", "on")
            return bool(value)
        return str(value)

