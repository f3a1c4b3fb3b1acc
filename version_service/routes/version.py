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
"""Version route for the Version Service.

This module provides the GET /version endpoint reporting the build
description of the running service and the current time.
"""

from collections.abc import Callable
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter

from version_service.audit import AuditSink, NullAuditSink
from version_service.models import ErrorMessage, VersionInfo
from version_service.version import BuildInfo

logger = structlog.get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def create_version_router(
    build_info: BuildInfo,
    audit_sink: AuditSink | None = None,
    clock: Callable[[], datetime] = _utc_now,
) -> APIRouter:
    """Create the version router.

    Args:
        build_info: Build metadata reported by the endpoint.
        audit_sink: Sink that served versions are recorded to.
        clock: Source of the current time.

    Returns:
        A FastAPI APIRouter with the /version endpoint.
    """
    router = APIRouter(tags=["version"])
    sink = audit_sink if audit_sink is not None else NullAuditSink()

    @router.get(
        "/version",
        response_model=VersionInfo,
        responses={
            408: {"model": ErrorMessage, "description": "Request exceeded its time budget"},
            500: {"model": ErrorMessage, "description": "Unhandled internal error"},
        },
    )
    async def get_version() -> VersionInfo:
        """Report the service build description and the current time."""
        logger.info("Starting executing version handler")
        info = VersionInfo(version=build_info.display, current_timestamp=clock())
        await sink.record(info)
        logger.info("Finished executing version handler")
        return info

    return router
