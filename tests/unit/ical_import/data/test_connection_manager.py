"""Tests for ConnectionManager"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from union_leave.ical_import.data.connection_manager import ConnectionConfig, ConnectionManager
from union_leave.ical_import.data.pocketbase_wrapper import PocketBaseWrapper
from union_leave.settings import get_settings


class TestConnectionManager:
    def test_singleton(self):
        assert ConnectionManager.get_instance() is ConnectionManager.get_instance()

    def test_authenticates_and_wraps(self, mock_all_external_services):
        mock_pb = mock_all_external_services["pocketbase"]
        config = ConnectionConfig(url="http://pb:8090", admin_email="admin@example.com", admin_password="secret")

        client = ConnectionManager(config).get_client()

        assert isinstance(client, PocketBaseWrapper)
        mock_pb.collection.assert_called_with("_superusers")
        mock_pb.collection.return_value.auth_with_password.assert_called_once_with("admin@example.com", "secret")

    def test_unwrapped_client_without_credentials(self, mock_all_external_services):
        mock_pb = mock_all_external_services["pocketbase"]

        client = ConnectionManager(ConnectionConfig(use_wrapper=False)).get_client()

        assert client is mock_pb
        mock_pb.collection.return_value.auth_with_password.assert_not_called()

    def test_authentication_failure_raises(self, mock_all_external_services):
        mock_pb = mock_all_external_services["pocketbase"]
        mock_pb.collection.return_value.auth_with_password.side_effect = RuntimeError("bad credentials")
        config = ConnectionConfig(admin_email="admin@example.com", admin_password="wrong")

        with pytest.raises(RuntimeError):
            ConnectionManager(config).get_client()

    def test_config_from_settings(self):
        env = {
            "POCKETBASE_URL": "http://pb:8090",
            "POCKETBASE_ADMIN_EMAIL": "admin@example.com",
            "POCKETBASE_ADMIN_PASSWORD": "secret",
        }
        with patch.dict("os.environ", env):
            get_settings.cache_clear()
            config = ConnectionConfig.from_settings()

        assert config.url == "http://pb:8090"
        assert config.admin_email == "admin@example.com"
