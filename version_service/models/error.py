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
"""ErrorMessage model definition."""

from pydantic import BaseModel, Field


class ErrorMessage(BaseModel):
    """Body of every error response produced by the Version Service.

    Attributes:
        code: The HTTP status code of the response.
        reason: Canonical reason phrase for the code, None if it has none.
        message: Human-readable explanation of the failure.
    """

    code: int = Field(..., ge=100, le=599, description="HTTP status code")
    reason: str | None = Field(default=None, description="Canonical HTTP reason phrase")
    message: str = Field(..., description="Human-readable error message")
