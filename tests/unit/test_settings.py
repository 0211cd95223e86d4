"""Tests for environment-backed settings"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from union_leave.settings import Settings, get_settings


class TestSettings:
    def test_defaults(self):
        with patch.dict("os.environ", {}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.pocketbase_url == "http://127.0.0.1:8090"
        assert settings.import_source == "ical"
        assert settings.default_division_id is None
        assert settings.log_level == "INFO"

    def test_environment_values(self):
        env = {"POCKETBASE_URL": "http://pb:8090", "DEFAULT_DIVISION_ID": "div1", "LOG_LEVEL": "debug"}
        with patch.dict("os.environ", env, clear=True):
            settings = Settings(_env_file=None)

        assert settings.pocketbase_url == "http://pb:8090"
        assert settings.default_division_id == "div1"
        assert settings.log_level == "DEBUG"

    def test_invalid_log_level(self):
        with patch.dict("os.environ", {"LOG_LEVEL": "chatty"}, clear=True):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    def test_insecure_password_warns(self, caplog):
        with patch.dict("os.environ", {"POCKETBASE_ADMIN_PASSWORD": "admin"}, clear=True):
            Settings(_env_file=None)

        assert "SECURITY WARNING" in caplog.text

    def test_get_settings_cached(self):
        assert get_settings() is get_settings()
