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
"""FastAPI ASGI application factory for the Version Service.

This module provides the main FastAPI application with:
- Request ID middleware for correlation
- Request timeout guard converting overruns and crashes into JSON errors
- The /version endpoint
- Lifespan management for the audit sink
- Uvicorn entrypoint with signal-driven graceful shutdown
"""

import asyncio
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from version_service import __service__, __version__
from version_service.audit import AuditSink, create_audit_sink
from version_service.config import ConfigurationError, Settings, get_settings
from version_service.errors import http_exception_handler
from version_service.logging import RequestIDMiddleware, configure_logging, get_logger
from version_service.routes.version import create_version_router
from version_service.server import StartupError, VersionServer
from version_service.shutdown import ShutdownCoordinator, SignalHandlerError
from version_service.timeout import RequestTimeoutMiddleware
from version_service.version import BuildInfo


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan context manager for the FastAPI application.

    Starts the audit sink on startup and flushes it on shutdown, after the
    server has drained in-flight requests.

    Args:
        app: The FastAPI application instance.

    Yields:
        None
    """
    logger = get_logger(__name__)
    audit_sink: AuditSink = app.state.audit_sink
    await audit_sink.start()
    logger.info("Application lifespan started")
    yield
    logger.info("Application shutting down, closing audit sink...")
    await audit_sink.close()
    logger.info("Application shutdown complete")


def create_app(
    settings: Settings | None = None,
    build_info: BuildInfo | None = None,
    audit_sink: AuditSink | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings instance. If not provided,
                  will be loaded from environment variables.
        build_info: Build metadata to report. Derived from settings if omitted.
        audit_sink: Sink for served versions. Derived from settings if omitted.

    Returns:
        The configured FastAPI application.

    Raises:
        ConfigurationError: If the environment holds invalid configuration.
    """
    if settings is None:
        settings = get_settings()

    configure_logging(settings)
    logger = get_logger(__name__)

    if build_info is None:
        build_info = BuildInfo.from_settings(settings)
    if audit_sink is None:
        audit_sink = create_audit_sink(settings)

    logger.info(
        "Starting Version Service",
        version=build_info.display,
        request_timeout_seconds=settings.request_timeout_seconds,
        log_level=settings.log_level,
        log_format=settings.log_format,
        audit_enabled=settings.audit_enabled,
    )
    logger.debug("Configuration loaded", config=settings.get_redacted_config_dict())

    app = FastAPI(
        title="Version Service",
        description="Reports build metadata and the current time",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.build_info = build_info
    app.state.audit_sink = audit_sink

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    # Last added runs first: request IDs are assigned before the timeout guard
    app.add_middleware(
        RequestTimeoutMiddleware,
        timeout_seconds=settings.request_timeout_seconds,
    )
    app.add_middleware(RequestIDMiddleware)

    app.include_router(create_version_router(build_info, audit_sink))

    return app


async def serve(
    settings: Settings,
    coordinator: ShutdownCoordinator | None = None,
) -> None:
    """Build the application and serve it until a shutdown signal arrives.

    Args:
        settings: The service settings.
        coordinator: Shutdown coordinator. A new one is created if omitted.

    Raises:
        SignalHandlerError: If the signal handlers cannot be installed.
        StartupError: If the server cannot start.
    """
    app = create_app(settings)
    server = VersionServer(settings, app, coordinator=coordinator)
    await server.run()


def main() -> None:
    """Entrypoint for running the service.

    This function is called when running `version-service` from the command
    line or `python -m version_service.app`. It exits with status 0 after a
    graceful shutdown and 1 when the service cannot start.
    """
    try:
        settings = get_settings()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        raise SystemExit(1) from e

    try:
        asyncio.run(serve(settings))
    except (SignalHandlerError, StartupError) as e:
        print(f"{__service__} failed to start: {e}", file=sys.stderr)
        raise SystemExit(1) from e


if __name__ == "__main__":
    main()
