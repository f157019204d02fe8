"""
Tests for environment-driven settings.
"""

import pytest

from terminal_mcp.config import (
    CALL_DEADLINE,
    MAX_ATTEMPTS,
    TERMINAL_API_URL,
    Settings,
)
from terminal_mcp.errors import ConfigurationError


class TestSettingsFromEnv:
    """Tests for Settings.from_env."""

    def test_defaults(self):
        settings = Settings.from_env({"TERMINAL_BEARER_TOKEN": "trm_abc"})

        assert settings.bearer_token == "trm_abc"
        assert settings.api_url == TERMINAL_API_URL
        assert settings.call_deadline == CALL_DEADLINE
        assert settings.max_attempts == MAX_ATTEMPTS
        assert settings.transport == "stdio"

    def test_overrides(self):
        settings = Settings.from_env({
            "TERMINAL_BEARER_TOKEN": "trm_abc",
            "TERMINAL_API_URL": "https://api.dev.terminal.shop/",
            "TERMINAL_REQUEST_TIMEOUT": "2.5",
            "TERMINAL_MAX_ATTEMPTS": "5",
            "PORT": "9000",
            "TRANSPORT": "SSE",
        })

        assert settings.api_url == "https://api.dev.terminal.shop"
        assert settings.request_timeout == 2.5
        assert settings.max_attempts == 5
        assert settings.port == 9000
        assert settings.transport == "sse"

    def test_missing_token_is_fatal(self):
        with pytest.raises(ConfigurationError, match="TERMINAL_BEARER_TOKEN"):
            Settings.from_env({})

    def test_blank_token_is_fatal(self):
        with pytest.raises(ConfigurationError):
            Settings.from_env({"TERMINAL_BEARER_TOKEN": "   "})

    @pytest.mark.parametrize("name,value", [
        ("TERMINAL_REQUEST_TIMEOUT", "soon"),
        ("TERMINAL_CALL_DEADLINE", "0"),
        ("TERMINAL_MAX_ATTEMPTS", "1.5"),
        ("PORT", "-1"),
    ])
    def test_invalid_numbers(self, name, value):
        with pytest.raises(ConfigurationError, match=name):
            Settings.from_env({"TERMINAL_BEARER_TOKEN": "trm_abc", name: value})

    def test_invalid_transport(self):
        with pytest.raises(ConfigurationError, match="TRANSPORT"):
            Settings.from_env({"TERMINAL_BEARER_TOKEN": "trm_abc", "TRANSPORT": "websocket"})


class TestSettingsSecrecy:
    """The bearer token must never appear in a printable form."""

    def test_repr_hides_token(self):
        settings = Settings(bearer_token="trm_super_secret")

        assert "trm_super_secret" not in repr(settings)
        assert "trm_super_secret" not in str(settings)
