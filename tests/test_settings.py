"""Tests for settings parsing."""
import logging

from config import settings


class TestFloatSetting:
    """Numeric settings from the environment."""

    def test_parses_number(self, monkeypatch):
        monkeypatch.setattr(settings, "CREDENTIALS", {})
        monkeypatch.setenv("SERVICE_CONNECTION_REQUEST_TIMEOUT", "12.5")

        assert settings._float_setting("request_timeout", "SERVICE_CONNECTION_REQUEST_TIMEOUT", 30) == 12.5

    def test_invalid_value_falls_back_to_default(self, monkeypatch, caplog):
        monkeypatch.setattr(settings, "CREDENTIALS", {})
        monkeypatch.setenv("SERVICE_CONNECTION_REQUEST_TIMEOUT", "abc")
        caplog.set_level(logging.WARNING, logger="config.settings")

        value = settings._float_setting("request_timeout", "SERVICE_CONNECTION_REQUEST_TIMEOUT", 30)

        assert value == 30.0
        assert "Invalid value for SERVICE_CONNECTION_REQUEST_TIMEOUT" in caplog.text

    def test_invalid_credentials_value_falls_back(self, monkeypatch):
        monkeypatch.setattr(settings, "CREDENTIALS", {"az_cli_timeout": None})

        assert settings._float_setting("az_cli_timeout", "SERVICE_CONNECTION_AZ_CLI_TIMEOUT", 120) == 120.0

    def test_unset_uses_default(self, monkeypatch):
        monkeypatch.setattr(settings, "CREDENTIALS", {})
        monkeypatch.delenv("SERVICE_CONNECTION_AZ_CLI_TIMEOUT", raising=False)

        assert settings._float_setting("az_cli_timeout", "SERVICE_CONNECTION_AZ_CLI_TIMEOUT", 120) == 120.0
