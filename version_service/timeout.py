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
"""Request lifecycle guard.

:class:`RequestTimeoutMiddleware` bounds how long any request may take
before its response starts. When the budget runs out the handler is
abandoned and the client receives a 408 error body instead of waiting.
Any other exception escaping the application is turned into a 500 error
body, so no per-request failure reaches the server or the process.

The middleware wraps the whole ASGI application and therefore applies to
every route mounted on it.
"""

import asyncio
from http import HTTPStatus
from typing import Any

from version_service.errors import error_response, internal_error_message, timeout_message
from version_service.logging import get_logger


class RequestTimeoutMiddleware:
    """Pure ASGI middleware enforcing a per-request time budget.

    The downstream application runs as its own task and races a timer.
    The budget covers the time until the response starts (status line and
    headers); once a handler has committed its response the body is allowed
    to finish.

    Cancellation of a timed-out handler is best-effort: the task is
    cancelled but not awaited, so work running in a thread pool keeps
    running until it completes. Anything it sends afterwards is dropped.
    """

    def __init__(self, app: Any, timeout_seconds: float) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application to wrap.
            timeout_seconds: The request budget in seconds.

        Raises:
            ValueError: If timeout_seconds is not positive.
        """
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self.app = app
        self.timeout_seconds = timeout_seconds

    async def __call__(self, scope: dict[str, Any], receive: Any, send: Any) -> None:
        """Run the request under the time budget.

        Args:
            scope: The ASGI connection scope.
            receive: The receive callable.
            send: The send callable.
        """
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = asyncio.Event()
        abandoned = False

        async def guarded_send(message: dict[str, Any]) -> None:
            if abandoned:
                return
            if message["type"] == "http.response.start":
                response_started.set()
            await send(message)

        handler = asyncio.ensure_future(self.app(scope, receive, guarded_send))
        started = asyncio.ensure_future(response_started.wait())
        try:
            done, _ = await asyncio.wait(
                {handler, started},
                timeout=self.timeout_seconds,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            handler.cancel()
            raise
        finally:
            started.cancel()

        if not done:
            abandoned = True
            handler.cancel()
            handler.add_done_callback(_consume_abandoned_result)
            get_logger(__name__).warning(
                "Slow request timed out",
                method=scope.get("method"),
                path=scope.get("path"),
                timeout_seconds=self.timeout_seconds,
            )
            response = error_response(
                HTTPStatus.REQUEST_TIMEOUT, timeout_message(self.timeout_seconds)
            )
            await response(scope, receive, send)
            return

        try:
            await handler
        except asyncio.CancelledError:
            handler.cancel()
            raise
        except Exception as exc:
            if response_started.is_set():
                # Headers are already on the wire; let the server close the connection
                raise
            get_logger(__name__).error(
                "Unhandled error while processing request",
                method=scope.get("method"),
                path=scope.get("path"),
                error=str(exc),
                exc_info=True,
            )
            response = error_response(
                HTTPStatus.INTERNAL_SERVER_ERROR, internal_error_message(exc)
            )
            await response(scope, receive, send)


def _consume_abandoned_result(task: "asyncio.Future[Any]") -> None:
    """Retrieve the outcome of an abandoned handler so asyncio does not warn."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        get_logger(__name__).debug(
            "Abandoned request handler failed after timeout",
            error=str(exc),
        )
