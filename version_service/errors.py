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
"""Conversion of failures into structured JSON error responses.

Every error the Version Service returns has the :class:`ErrorMessage`
shape ``{code, reason, message}``, whether it comes from the request
timeout guard, an unhandled exception or FastAPI's own routing errors.
"""

from http import HTTPStatus

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from version_service.models import ErrorMessage


def canonical_reason(status_code: int) -> str | None:
    """Return the standard reason phrase for a status code.

    Args:
        status_code: An HTTP status code.

    Returns:
        The reason phrase, or None for codes without a registered phrase.
    """
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return None


def format_budget(seconds: float) -> str:
    """Render a duration the way it appears in timeout messages (``1s``, ``1.5s``)."""
    return f"{seconds:g}s"


def timeout_message(seconds: float) -> str:
    return f"Request took longer than {format_budget(seconds)}"


def internal_error_message(exc: BaseException) -> str:
    details = str(exc) or exc.__class__.__name__
    return f"Unhandled internal error: {details}"


def build_error_message(status_code: int, message: str) -> ErrorMessage:
    """Create the error body for a status code.

    Args:
        status_code: The HTTP status code of the response.
        message: Human-readable explanation.

    Returns:
        The populated ErrorMessage.
    """
    return ErrorMessage(
        code=int(status_code),
        reason=canonical_reason(status_code),
        message=message,
    )


def error_response(
    status_code: int,
    message: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Create a JSON error response.

    Args:
        status_code: The HTTP status code of the response.
        message: Human-readable explanation.
        headers: Optional extra response headers.

    Returns:
        A JSONResponse whose body is an ErrorMessage.
    """
    status_code = int(status_code)
    body = build_error_message(status_code, message)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json"),
        headers=headers,
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Render routing errors (404, 405, ...) in the ErrorMessage shape."""
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return error_response(exc.status_code, message, headers=exc.headers)
