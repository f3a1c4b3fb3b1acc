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
"""HTTP server wiring for the Version Service.

:class:`VersionServer` runs the ASGI application under uvicorn and ties
uvicorn's graceful shutdown to the :class:`ShutdownCoordinator`. uvicorn's
own signal capture is disabled so the coordinator is the only owner of
SIGINT and SIGTERM. Once the Cancellation Signal is set the server stops
accepting connections and waits for in-flight requests to finish, bounded
by ``shutdown_grace_seconds`` when it is configured.
"""

import asyncio
import contextlib
import socket
from collections.abc import Generator
from typing import Any

import uvicorn

from version_service.config import Settings
from version_service.logging import get_logger
from version_service.shutdown import ShutdownCoordinator


class StartupError(Exception):
    """Raised when the server cannot bind its listener or start the application."""

    pass


class CoordinatedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the shutdown coordinator.

    ``startup_complete`` is set once the listener is bound and the
    application lifespan has started.
    """

    def __init__(self, config: uvicorn.Config) -> None:
        super().__init__(config)
        self.startup_complete = asyncio.Event()

    async def startup(self, sockets: list[socket.socket] | None = None) -> None:
        await super().startup(sockets=sockets)
        if self.started:
            self.startup_complete.set()

    @contextlib.contextmanager
    def capture_signals(self) -> Generator[None, None, None]:
        yield

    def install_signal_handlers(self) -> None:
        return None


class VersionServer:
    """Serve an ASGI application until the Cancellation Signal is set."""

    def __init__(
        self,
        settings: Settings,
        app: Any,
        coordinator: ShutdownCoordinator | None = None,
    ) -> None:
        """Initialize the server.

        Args:
            settings: Service settings with the bind address and grace period.
            app: The ASGI application to serve.
            coordinator: Shutdown coordinator. A new one is created if omitted.
        """
        self.settings = settings
        self.coordinator = coordinator if coordinator is not None else ShutdownCoordinator()
        config = uvicorn.Config(
            app,
            host=settings.service_host,
            port=settings.service_port,
            log_config=None,
            log_level=settings.log_level.lower(),
            lifespan="on",
            timeout_graceful_shutdown=settings.shutdown_grace_seconds,
        )
        self._server = CoordinatedServer(config)

    @property
    def started(self) -> bool:
        """Check if the listener is bound and the application started."""
        return self._server.started

    @property
    def bound_port(self) -> int | None:
        """Return the port the listener is bound to, None before startup."""
        for server in getattr(self._server, "servers", []):
            for sock in server.sockets:
                return sock.getsockname()[1]
        return None

    async def run(self, install_signal_handlers: bool = True) -> None:
        """Serve until shutdown completes.

        Args:
            install_signal_handlers: Register SIGINT/SIGTERM handlers on the
                running loop for the duration of the run.

        Raises:
            SignalHandlerError: If the signal handlers cannot be installed.
            StartupError: If the listener cannot be bound or the application
                fails to start.
        """
        logger = get_logger(__name__)
        if install_signal_handlers:
            self.coordinator.install_signal_handlers()

        watcher = asyncio.create_task(self._supervise(), name="shutdown-watcher")
        try:
            await self._server.serve()
        except SystemExit as e:
            # uvicorn exits the process when it cannot bind; it has logged the cause
            raise StartupError(
                f"Failed to start server on "
                f"{self.settings.service_host}:{self.settings.service_port}"
            ) from e
        finally:
            watcher.cancel()
            if install_signal_handlers:
                self.coordinator.remove_signal_handlers()

        if not self._server.started:
            raise StartupError("Application failed to start")
        logger.info("Server shutdown")

    async def _supervise(self) -> None:
        # uvicorn skips its shutdown sequence if asked to exit mid-startup
        await self._server.startup_complete.wait()
        logger = get_logger(__name__)
        logger.info(
            "Server listening for HTTP",
            host=self.settings.service_host,
            port=self.bound_port,
        )
        await self.coordinator.wait()
        logger.info("Stopping server, draining in-flight requests")
        self._server.should_exit = True
