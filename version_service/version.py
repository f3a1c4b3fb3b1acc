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
"""Single source of truth for service version and build metadata.

``__version__`` is the canonical package version used in package metadata
and reported by the ``/version`` endpoint.

:class:`BuildInfo` captures the rest of the build description (commit, build
time, interpreter) once at process start. It is handed to the version router
explicitly instead of living in a process-wide constant, so the handler stays
pure and can be tested with any metadata.

Follows Semantic Versioning (https://semver.org/):
- MAJOR: Breaking API changes
- MINOR: New features, backward compatible
- PATCH: Bug fixes, backward compatible
"""

import platform
import sys
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from version_service.config import Settings

__version__ = "0.1.0"

UNKNOWN_COMMIT = "unknown"
SHORT_COMMIT_LENGTH = 7


class BuildInfo(BaseModel):
    """Immutable description of the running build.

    Attributes:
        package_version: The package version (``__version__``).
        short_commit: Abbreviated VCS commit the build was made from.
        build_time: When the build was produced (or the process started).
        python_version: Interpreter version, e.g. ``3.12.4``.
        python_implementation: Interpreter implementation, e.g. ``CPython``.
        host_platform: Host platform identifier, e.g. ``linux``.
    """

    model_config = ConfigDict(frozen=True)

    package_version: str = Field(default=__version__, min_length=1)
    short_commit: str = Field(default=UNKNOWN_COMMIT, min_length=1)
    build_time: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="seconds"),
    )
    python_version: str = Field(default_factory=platform.python_version)
    python_implementation: str = Field(default_factory=platform.python_implementation)
    host_platform: str = Field(default=sys.platform)

    @classmethod
    def from_settings(cls, settings: Settings) -> "BuildInfo":
        """Build metadata from configured commit and build time.

        Args:
            settings: The service settings.

        Returns:
            A BuildInfo with unset values falling back to their defaults.
        """
        values: dict[str, str] = {}
        if settings.build_commit:
            values["short_commit"] = settings.build_commit[:SHORT_COMMIT_LENGTH]
        if settings.build_time:
            values["build_time"] = settings.build_time
        return cls(**values)

    @property
    def display(self) -> str:
        """Return the human readable version string served by ``/version``."""
        return (
            f"{self.package_version} ({self.short_commit} {self.build_time}), "
            f"build_env: {self.python_implementation} {self.python_version}, "
            f"{self.host_platform}"
        )
