# ============================================================
# SPDX-License-Identifier: GPL-3.0-or-later
# This program was generated as part of the AgentFoundry project.
# Copyright (C) 2025  John Brosnihan
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
# ============================================================
"""Tests for the configuration module."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from version_service.config import ConfigurationError, Settings, get_settings


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Clear the cached settings between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    """Tests for the Settings class."""

    def test_settings_default_values(self) -> None:
        """Test that settings boot with no environment at all."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.service_host == "127.0.0.1"
        assert settings.service_port == 18080
        assert settings.request_timeout_seconds == 1.0
        assert settings.shutdown_grace_seconds is None
        assert settings.build_commit is None
        assert settings.build_time is None
        assert settings.audit_log_path is None
        assert settings.log_level == "INFO"
        assert settings.log_format == "json"
        assert settings.audit_enabled is False

    def test_settings_custom_values(self) -> None:
        """Test that custom values override defaults."""
        settings = Settings(
            service_host="0.0.0.0",
            service_port=9000,
            request_timeout_seconds=2.5,
            shutdown_grace_seconds=10,
            build_commit="0123456789abcdef",
            build_time="2026-01-01T00:00:00+00:00",
            audit_log_path="/tmp/audit.log",
            log_level="DEBUG",
            log_format="console",
        )

        assert settings.service_host == "0.0.0.0"
        assert settings.service_port == 9000
        assert settings.request_timeout_seconds == 2.5
        assert settings.shutdown_grace_seconds == 10.0
        assert settings.build_commit == "0123456789abcdef"
        assert settings.audit_enabled is True
        assert settings.log_level == "DEBUG"
        assert settings.log_format == "console"

    def test_settings_reads_environment(self) -> None:
        """Test that settings are loaded from environment variables."""
        env = {
            "SERVICE_PORT": "8081",
            "REQUEST_TIMEOUT_SECONDS": "2",
            "LOG_LEVEL": "warning",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings(_env_file=None)

        assert settings.service_port == 8081
        assert settings.request_timeout_seconds == 2.0
        assert settings.log_level == "WARNING"

    def test_port_zero_is_allowed(self) -> None:
        """Test that port 0 (ephemeral) is accepted."""
        assert Settings(service_port=0).service_port == 0

    def test_port_out_of_range_raises_error(self) -> None:
        """Test that an invalid port is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            Settings(service_port=70000)

        assert "service_port" in str(exc_info.value)

    @pytest.mark.parametrize("timeout", [0, -1, 301])
    def test_invalid_request_timeout_raises_error(self, timeout: float) -> None:
        """Test that non-positive or huge budgets are rejected."""
        with pytest.raises(ValidationError):
            Settings(request_timeout_seconds=timeout)

    def test_non_positive_grace_period_raises_error(self) -> None:
        """Test that a grace period must be positive when set."""
        with pytest.raises(ValidationError):
            Settings(shutdown_grace_seconds=0)

    def test_invalid_log_format_raises_error(self) -> None:
        """Test that an unknown log format is rejected."""
        with pytest.raises(ValidationError):
            Settings(log_format="xml")

    def test_blank_strings_are_treated_as_unset(self) -> None:
        """Test that empty environment values do not enable features."""
        env = {"AUDIT_LOG_PATH": "", "BUILD_COMMIT": "  "}
        with patch.dict(os.environ, env, clear=True):
            settings = Settings(_env_file=None)

        assert settings.audit_log_path is None
        assert settings.build_commit is None
        assert settings.audit_enabled is False


class TestRedactedConfig:
    """Tests for the loggable configuration view."""

    def test_redacted_config_contains_all_settings(self) -> None:
        """Test that every setting is rendered as a string."""
        config = Settings(service_port=9000).get_redacted_config_dict()

        assert config["service_port"] == "9000"
        assert config["shutdown_grace_seconds"] == "(not set)"
        assert config["audit_log_path"] == "(not set)"
        assert all(isinstance(value, str) for value in config.values())


class TestGetSettings:
    """Tests for the get_settings function."""

    def test_get_settings_returns_cached_instance(self) -> None:
        """Test that get_settings returns the same instance."""
        with patch.dict(os.environ, {}, clear=True):
            first = get_settings()
            second = get_settings()

        assert first is second

    def test_get_settings_raises_configuration_error(self) -> None:
        """Test that invalid environment values raise ConfigurationError."""
        with patch.dict(os.environ, {"SERVICE_PORT": "not-a-port"}, clear=True):
            with pytest.raises(ConfigurationError) as exc_info:
                get_settings()

        assert "SERVICE_PORT" in str(exc_info.value)
