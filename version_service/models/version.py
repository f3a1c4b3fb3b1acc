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
"""VersionInfo model definition."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator


class VersionInfo(BaseModel):
    """Body of a successful ``GET /version`` response.

    Constructed fresh for every request and discarded after serialization.

    Attributes:
        version: The build description of the running service.
        current_timestamp: Wall-clock time at handler invocation (UTC),
            serialized as RFC 3339.
    """

    model_config = ConfigDict(frozen=True)

    version: str = Field(..., min_length=1, description="Build description of the service")
    current_timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Time the request was handled (UTC)",
    )

    @field_validator("current_timestamp")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Ensure the timestamp is timezone-aware and in UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)
