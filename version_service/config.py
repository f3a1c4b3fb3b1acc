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
"""Configuration module for the Version Service.

This module provides Pydantic-based settings validation for the environment
variables read by the Version Service. Every setting has a default, so the
service boots with no environment at all and listens on 127.0.0.1:18080.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Version Service configuration settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Service configuration
    service_host: str = Field(
        default="127.0.0.1",
        min_length=1,
        description="Host to bind the service to.",
    )
    service_port: int = Field(
        default=18080,
        ge=0,
        le=65535,
        description="Port to bind the service to. 0 selects an ephemeral port.",
    )

    # Request lifecycle
    request_timeout_seconds: float = Field(
        default=1.0,
        gt=0,
        le=300,
        description="Maximum time a request may take before it is answered with 408.",
    )
    shutdown_grace_seconds: float | None = Field(
        default=None,
        gt=0,
        description=(
            "Upper bound on how long in-flight requests may drain after a shutdown "
            "signal. Unset means wait until they finish."
        ),
    )

    # Build metadata
    build_commit: str | None = Field(
        default=None,
        description="VCS commit the build was made from (abbreviated to 7 characters).",
    )
    build_time: str | None = Field(
        default=None,
        description="Build timestamp. Defaults to the process start time.",
    )

    # Audit sink
    audit_log_path: str | None = Field(
        default=None,
        description="File that served version records are appended to. Unset disables it.",
    )

    # Logging configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level for the service.",
    )
    log_format: Literal["json", "console"] = Field(
        default="json",
        description="Log output format. Use 'json' for production, 'console' for development.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: object) -> object:
        """Accept log levels in any case."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("build_commit", "build_time", "audit_log_path", mode="before")
    @classmethod
    def blank_to_none(cls, v: object) -> object:
        """Treat empty strings from the environment as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def audit_enabled(self) -> bool:
        """Check if the audit sink should write to disk."""
        return self.audit_log_path is not None

    def get_redacted_config_dict(self) -> dict[str, str]:
        """Return a dictionary of configuration suitable for logging.

        Returns:
            A dictionary of string values.
        """
        return {
            "service_host": self.service_host,
            "service_port": str(self.service_port),
            "request_timeout_seconds": str(self.request_timeout_seconds),
            "shutdown_grace_seconds": (
                str(self.shutdown_grace_seconds)
                if self.shutdown_grace_seconds is not None
                else "(not set)"
            ),
            "build_commit": self.build_commit or "(not set)",
            "build_time": self.build_time or "(not set)",
            "audit_log_path": self.audit_log_path or "(not set)",
            "log_level": self.log_level,
            "log_format": self.log_format,
        }


class ConfigurationError(Exception):
    """Raised when configuration is missing or invalid."""

    pass


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    This function is cached to ensure settings are only loaded once.

    Returns:
        Settings: The validated settings instance.

    Raises:
        ConfigurationError: If an environment variable holds an invalid value.
    """
    try:
        return Settings()
    except ValidationError as e:
        error_messages = []
        for error in e.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            error_messages.append(f"{field.upper()}: {error['msg']}")
        raise ConfigurationError(
            "Invalid configuration: " + "; ".join(error_messages)
        ) from e
