"""
ConnectionManager - shared PocketBase connection for the import.

Credentials come from Settings; tests call ConnectionManager.reset().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pocketbase import PocketBase

from ...settings import get_settings
from .pocketbase_wrapper import PocketBaseWrapper

logger = logging.getLogger(__name__)


@dataclass
class ConnectionConfig:
    """Configuration for PocketBase connections."""

    url: str = "http://127.0.0.1:8090"
    admin_email: str | None = None
    admin_password: str | None = None
    use_wrapper: bool = True

    @classmethod
    def from_settings(cls) -> ConnectionConfig:
        settings = get_settings()
        return cls(
            url=settings.pocketbase_url,
            admin_email=settings.pocketbase_admin_email,
            admin_password=settings.pocketbase_admin_password,
        )


class ConnectionManager:
    """
    Manages the PocketBase connection with a singleton.

    Usage:
        client = ConnectionManager.get_instance().get_client()
        ConnectionManager.reset()  # tests
    """

    _instance: ConnectionManager | None = None

    def __init__(self, config: ConnectionConfig | None = None):
        self._config = config or ConnectionConfig.from_settings()
        self._client: PocketBase | PocketBaseWrapper | None = None

    @classmethod
    def get_instance(cls, config: ConnectionConfig | None = None) -> ConnectionManager:
        """Get the singleton; config is only used on first call."""
        if cls._instance is None:
            cls._instance = cls(config)
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None

    def get_client(self) -> PocketBase | PocketBaseWrapper:
        if self._client is None:
            self._client = self._create_client()
        return self._client

    def _create_client(self) -> PocketBase | PocketBaseWrapper:
        pb = PocketBase(self._config.url)

        if self._config.admin_email and self._config.admin_password:
            self._authenticate(pb)
        else:
            logger.warning("Admin credentials not provided, skipping authentication")

        if self._config.use_wrapper:
            return PocketBaseWrapper(pb)
        return pb

    def _authenticate(self, pb: PocketBase) -> None:
        """Authenticate against the _superusers collection (PocketBase 0.23+)."""
        try:
            pb.collection("_superusers").auth_with_password(self._config.admin_email, self._config.admin_password)
            logger.debug("Authenticated via _superusers collection")
        except Exception as e:
            logger.error(f"Authentication failed: {e}")
            raise
