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
"""Structlog configuration for the Version Service.

This module configures structlog with:
- Service name ('version-service') automatically added to all log entries
- Request ID correlation for tracing requests across log entries
- JSON or console output format based on configuration

It also provides the ASGI middleware that assigns the request ID.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any

import structlog

from version_service import __service__
from version_service.config import Settings

# Context variable for request-scoped logging
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

# Header name for request ID propagation
REQUEST_ID_HEADER = "X-Request-ID"


def add_service_context(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add service-level context to all log entries.

    Args:
        logger: The logger instance (unused).
        method_name: The logging method name (unused).
        event_dict: The event dictionary to modify.

    Returns:
        The modified event dictionary with service context.
    """
    event_dict["service"] = __service__
    return event_dict


def add_request_context(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add the current request ID to log entries when one is set."""
    request_id = request_id_ctx.get()
    if request_id is not None:
        event_dict["request_id"] = request_id
    return event_dict


def configure_logging(settings: Settings) -> None:
    """Configure structlog for the Version Service.

    This function sets up structlog with appropriate processors for
    JSON or console output, and configures the standard library logging
    (uvicorn included) to write to stdout at the same level.

    Args:
        settings: The service settings containing log configuration.
    """
    log_level = getattr(logging, settings.log_level, logging.INFO)

    # Common processors for all output formats
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_service_context,
        add_request_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.log_format == "json":
        processors: list[structlog.types.Processor] = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )
    logging.getLogger().setLevel(log_level)

    # uvicorn is started with log_config=None, so its loggers propagate here
    logging.getLogger("uvicorn").setLevel(log_level)
    logging.getLogger("uvicorn.access").setLevel(log_level)
    logging.getLogger("uvicorn.error").setLevel(log_level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Optional logger name. If not provided, uses the caller's module.

    Returns:
        A bound structlog logger instance.
    """
    return structlog.get_logger(name)


class RequestIDMiddleware:
    """Middleware that attaches a request ID to every HTTP request.

    The incoming X-Request-ID header is reused when present, otherwise a
    UUID4 is generated. The ID is stored in a context variable for
    structlog and echoed in the response headers.

    Implemented as a pure ASGI middleware so the context variable is still
    set while the timeout guard logs and renders its error responses.
    """

    def __init__(self, app: Any) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application to wrap.
        """
        self.app = app

    async def __call__(self, scope: dict[str, Any], receive: Any, send: Any) -> None:
        """Process the request and attach request ID.

        Args:
            scope: The ASGI connection scope.
            receive: The receive callable.
            send: The send callable.
        """
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = _incoming_request_id(scope) or str(uuid.uuid4())
        token = request_id_ctx.set(request_id)

        scope["state"] = scope.get("state", {})
        scope["state"]["request_id"] = request_id

        async def send_with_request_id(message: dict[str, Any]) -> None:
            """Wrapper to add request ID to response headers."""
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((REQUEST_ID_HEADER.lower().encode(), request_id.encode()))
                message["headers"] = headers
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            request_id_ctx.reset(token)


def _incoming_request_id(scope: dict[str, Any]) -> str | None:
    header_name = REQUEST_ID_HEADER.lower().encode()
    for name, value in scope.get("headers", []):
        if name.lower() == header_name:
            decoded = value.decode("latin-1").strip()
            return decoded or None
    return None
