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
"""Shutdown coordination for the Version Service.

:class:`ShutdownCoordinator` turns host termination signals (SIGINT and,
on POSIX hosts, SIGTERM) into a one-way Cancellation Signal. The server
waits on that signal to stop accepting connections and drain in-flight
requests; any other component may wait on it too.

The transition from RUNNING to SHUTTING_DOWN happens at most once. Later
signals, or explicit ``cancel`` calls, are absorbed without effect.
"""

import asyncio
import signal
import sys
import threading
from enum import Enum
from types import FrameType
from typing import Any

from version_service.logging import get_logger


class ShutdownState(str, Enum):
    """Lifecycle states of the coordinator."""

    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"


class SignalHandlerError(Exception):
    """Raised when shutdown signal handlers cannot be installed."""

    pass


def default_shutdown_signals() -> tuple[signal.Signals, ...]:
    """Return the signals that trigger a graceful shutdown on this host."""
    signals = [signal.SIGINT]
    if sys.platform != "win32":
        signals.append(signal.SIGTERM)
    elif hasattr(signal, "SIGBREAK"):
        signals.append(signal.SIGBREAK)
    return tuple(signals)


class ShutdownCoordinator:
    """Owns the Cancellation Signal and the shutdown signal handlers.

    ``cancel`` may be called from any thread or from a signal handler and
    is idempotent: only the first call changes state and logs. ``wait`` may
    be awaited by any number of tasks.

    Example:
        >>> coordinator = ShutdownCoordinator()
        >>> coordinator.install_signal_handlers()
        >>> await coordinator.wait()  # returns after SIGINT/SIGTERM
    """

    def __init__(self, signals: tuple[signal.Signals, ...] | None = None) -> None:
        """Initialize the coordinator.

        Args:
            signals: Signals to listen for. Defaults to the host's
                shutdown signals.
        """
        self._signals = signals if signals is not None else default_shutdown_signals()
        self._lock = threading.Lock()
        self._state = ShutdownState.RUNNING
        self._event = asyncio.Event()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._installed: list[signal.Signals] = []
        self._previous_handlers: dict[signal.Signals, Any] = {}
        self.reason: str | None = None

    @property
    def state(self) -> ShutdownState:
        """Return the current lifecycle state."""
        return self._state

    @property
    def is_cancelled(self) -> bool:
        """Check if shutdown has begun."""
        return self._state is ShutdownState.SHUTTING_DOWN

    def cancel(self, reason: str = "requested") -> bool:
        """Begin shutdown.

        Args:
            reason: What triggered the shutdown, e.g. a signal name.

        Returns:
            True if this call started the shutdown, False if it had
            already begun.
        """
        with self._lock:
            if self._state is ShutdownState.SHUTTING_DOWN:
                return False
            self._state = ShutdownState.SHUTTING_DOWN
            self.reason = reason

        get_logger(__name__).info(
            "signal received, starting graceful shutdown", reason=reason
        )
        self._set_event()
        return True

    async def wait(self) -> None:
        """Wait until shutdown has begun."""
        self._bind_loop(asyncio.get_running_loop())
        await self._event.wait()

    def install_signal_handlers(
        self, loop: asyncio.AbstractEventLoop | None = None
    ) -> None:
        """Register handlers for the shutdown signals.

        Uses ``loop.add_signal_handler`` where the event loop supports it
        and falls back to ``signal.signal`` otherwise. Calling this again
        while handlers are installed is a no-op.

        Args:
            loop: Event loop to deliver signals to. Defaults to the
                running loop.

        Raises:
            SignalHandlerError: If any handler cannot be installed.
        """
        if self._installed:
            return

        loop = loop or asyncio.get_running_loop()
        self._bind_loop(loop)

        for sig in self._signals:
            try:
                loop.add_signal_handler(sig, self._handle_signal, sig)
            except NotImplementedError:
                # Proactor event loops (Windows) have no add_signal_handler
                try:
                    self._previous_handlers[sig] = signal.signal(sig, self._handle_raw_signal)
                except (OSError, ValueError) as e:
                    self.remove_signal_handlers()
                    raise SignalHandlerError(
                        f"Failed to install handler for {sig.name}: {e}"
                    ) from e
            except (OSError, RuntimeError, ValueError) as e:
                self.remove_signal_handlers()
                raise SignalHandlerError(
                    f"Failed to install handler for {sig.name}: {e}"
                ) from e
            self._installed.append(sig)

        get_logger(__name__).debug(
            "Shutdown signal handlers registered",
            signals=[sig.name for sig in self._installed],
        )

    def remove_signal_handlers(self) -> None:
        """Restore the handlers that were in place before installation."""
        loop = self._loop
        for sig in self._installed:
            if sig in self._previous_handlers:
                signal.signal(sig, self._previous_handlers.pop(sig))
            elif loop is not None and not loop.is_closed():
                loop.remove_signal_handler(sig)
        self._installed.clear()

    def _handle_signal(self, sig: signal.Signals) -> None:
        if not self.cancel(reason=sig.name):
            get_logger(__name__).debug(
                "Shutdown already in progress, ignoring signal", signal=sig.name
            )

    def _handle_raw_signal(self, signum: int, frame: FrameType | None) -> None:
        sig = signal.Signals(signum)
        loop = self._loop
        if loop is None or loop.is_closed():
            self._handle_signal(sig)
            return
        loop.call_soon_threadsafe(self._handle_signal, sig)

    def _bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._loop is None or self._loop.is_closed():
            self._loop = loop

    def _set_event(self) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            self._event.set()
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop or not loop.is_running():
            self._event.set()
        else:
            loop.call_soon_threadsafe(self._event.set)
