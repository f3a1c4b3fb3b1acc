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
"""Tests for the request timeout guard."""

import asyncio
import time

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from structlog.testing import capture_logs

from version_service.timeout import RequestTimeoutMiddleware

BUDGET = 0.2


def make_client(app) -> AsyncClient:
    """Create a client for an app wrapped with the timeout guard."""
    guarded = RequestTimeoutMiddleware(app, timeout_seconds=BUDGET)
    return AsyncClient(transport=ASGITransport(app=guarded), base_url="http://test")


async def send_text(send, status: int, body: bytes, more_body: bool = False) -> None:
    """Send a complete plain-text response."""
    await send(
        {
            "type": "http.response.start",
            "status": status,
            "headers": [(b"content-type", b"text/plain"), (b"x-handler", b"yes")],
        }
    )
    await send({"type": "http.response.body", "body": body, "more_body": more_body})


class TestPassThrough:
    """Tests for handlers finishing within the budget."""

    @pytest.mark.asyncio
    async def test_fast_response_is_unchanged(self) -> None:
        """Test that a fast handler's response passes through untouched."""

        async def app(scope, receive, send):
            await send_text(send, 201, b"created")

        async with make_client(app) as client:
            response = await client.get("/")

        assert response.status_code == 201
        assert response.text == "created"
        assert response.headers["x-handler"] == "yes"

    @pytest.mark.asyncio
    async def test_budget_covers_response_start_only(self) -> None:
        """Test that a started response may stream past the budget."""

        async def app(scope, receive, send):
            await send_text(send, 200, b"first,", more_body=True)
            await asyncio.sleep(BUDGET * 2)
            await send({"type": "http.response.body", "body": b"second"})

        async with make_client(app) as client:
            response = await client.get("/")

        assert response.status_code == 200
        assert response.text == "first,second"

    @pytest.mark.asyncio
    async def test_non_http_scope_is_passed_through(self) -> None:
        """Test that lifespan and websocket scopes are not guarded."""
        seen = []

        async def app(scope, receive, send):
            seen.append(scope["type"])

        guarded = RequestTimeoutMiddleware(app, timeout_seconds=BUDGET)
        await guarded({"type": "lifespan"}, None, None)

        assert seen == ["lifespan"]

    @pytest.mark.parametrize("timeout", [0, -1])
    def test_non_positive_budget_raises_error(self, timeout: float) -> None:
        """Test that the budget must be positive."""
        with pytest.raises(ValueError):
            RequestTimeoutMiddleware(lambda scope, receive, send: None, timeout)


class TestTimeout:
    """Tests for handlers exceeding the budget."""

    @pytest.mark.asyncio
    async def test_slow_handler_returns_408(self) -> None:
        """Test that a slow handler is answered with a 408 error body."""

        async def app(scope, receive, send):
            await asyncio.sleep(5)
            await send_text(send, 200, b"too late")

        started = time.monotonic()
        async with make_client(app) as client:
            response = await client.get("/slow")
        elapsed = time.monotonic() - started

        assert response.status_code == 408
        assert response.json() == {
            "code": 408,
            "reason": "Request Timeout",
            "message": "Request took longer than 0.2s",
        }
        assert elapsed < 2.0

    @pytest.mark.asyncio
    async def test_timeout_logs_warning(self) -> None:
        """Test that a timeout emits a warning log entry."""

        async def app(scope, receive, send):
            await asyncio.sleep(5)

        with capture_logs() as logs:
            async with make_client(app) as client:
                await client.get("/slow")

        warnings = [entry for entry in logs if entry["log_level"] == "warning"]
        assert len(warnings) == 1
        assert warnings[0]["event"] == "Slow request timed out"
        assert warnings[0]["path"] == "/slow"
        assert warnings[0]["timeout_seconds"] == BUDGET

    @pytest.mark.asyncio
    async def test_abandoned_handler_is_cancelled(self) -> None:
        """Test that the timed-out handler is cancelled best-effort."""
        cancelled = asyncio.Event()

        async def app(scope, receive, send):
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        async with make_client(app) as client:
            response = await client.get("/")

        assert response.status_code == 408
        await asyncio.wait_for(cancelled.wait(), timeout=1.0)

    @pytest.mark.asyncio
    async def test_late_response_from_abandoned_handler_is_dropped(self) -> None:
        """Test that a handler ignoring cancellation cannot send a second response."""
        finished = asyncio.Event()

        async def app(scope, receive, send):
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                pass
            await send_text(send, 200, b"late")
            finished.set()

        async with make_client(app) as client:
            response = await client.get("/")
            await asyncio.wait_for(finished.wait(), timeout=1.0)

        assert response.status_code == 408
        assert response.json()["code"] == 408


class TestInternalErrors:
    """Tests for exceptions escaping the handler."""

    @pytest.mark.asyncio
    async def test_exception_returns_500(self) -> None:
        """Test that an unhandled exception becomes a 500 error body."""

        async def app(scope, receive, send):
            raise OSError("No space left on device")

        with capture_logs() as logs:
            async with make_client(app) as client:
                response = await client.get("/")

        assert response.status_code == 500
        assert response.json() == {
            "code": 500,
            "reason": "Internal Server Error",
            "message": "Unhandled internal error: No space left on device",
        }
        errors = [entry for entry in logs if entry["log_level"] == "error"]
        assert len(errors) == 1

    @pytest.mark.asyncio
    async def test_exception_after_response_start_is_reraised(self) -> None:
        """Test that no second response is attempted once headers were sent."""

        async def app(scope, receive, send):
            await send_text(send, 200, b"partial", more_body=True)
            raise RuntimeError("stream broke")

        with pytest.raises(RuntimeError, match="stream broke"):
            async with make_client(app) as client:
                await client.get("/")


class TestComposition:
    """Tests for guarding several routes at once."""

    @pytest.mark.asyncio
    async def test_guard_applies_to_every_route(self) -> None:
        """Test that one middleware instance guards all routes of an app."""
        app = FastAPI()

        @app.get("/fast")
        async def fast() -> dict[str, str]:
            return {"status": "ok"}

        @app.get("/slow")
        async def slow() -> dict[str, str]:
            await asyncio.sleep(5)
            return {"status": "late"}

        @app.get("/broken")
        async def broken() -> dict[str, str]:
            raise ValueError("bad state")

        app.add_middleware(RequestTimeoutMiddleware, timeout_seconds=BUDGET)

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            fast_response = await client.get("/fast")
            slow_response = await client.get("/slow")
            broken_response = await client.get("/broken")

        assert fast_response.status_code == 200
        assert slow_response.status_code == 408
        assert broken_response.status_code == 500
        assert broken_response.json()["message"] == "Unhandled internal error: bad state"
