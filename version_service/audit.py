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
"""Audit sink abstraction and implementations.

The version handler reports every VersionInfo it serves to an audit sink.
Sinks are write-behind: ``record`` only enqueues, and the disk I/O happens
in a background task, so a request never waits for or fails on the
filesystem. Write failures are logged by the writer.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from pathlib import Path

import structlog

from version_service.config import Settings
from version_service.models import VersionInfo

DEFAULT_MAX_PENDING = 1024

logger = structlog.get_logger(__name__)


class AuditSink(ABC):
    """Abstract base class for recording served versions.

    Methods:
        start: Begin background processing.
        record: Queue a served VersionInfo.
        close: Flush pending records and stop.
    """

    async def start(self) -> None:
        """Begin background processing. No-op by default."""
        return None

    @abstractmethod
    async def record(self, info: VersionInfo) -> None:
        """Queue a served VersionInfo.

        Args:
            info: The value returned to the client.

        Raises:
            RuntimeError: If the sink has been closed.
        """
        pass

    async def close(self) -> None:
        """Flush pending records and stop. No-op by default."""
        return None


class NullAuditSink(AuditSink):
    """Audit sink that discards every record."""

    async def record(self, info: VersionInfo) -> None:
        return None


class FileAuditSink(AuditSink):
    """Audit sink appending one JSON line per record to a file.

    Records are buffered in a bounded asyncio queue and written by a single
    background task, using a worker thread for the blocking file I/O. When
    the queue is full new records are dropped and counted.
    """

    def __init__(self, path: str | Path, max_pending: int = DEFAULT_MAX_PENDING) -> None:
        """Initialize the sink.

        Args:
            path: The file to append to. Parent directories must exist.
            max_pending: Maximum number of records waiting to be written.
        """
        self._path = Path(path)
        self._queue: asyncio.Queue[VersionInfo] = asyncio.Queue(maxsize=max_pending)
        self._writer: asyncio.Task[None] | None = None
        self._closed = False
        self.written = 0
        self.failed = 0
        self.dropped = 0

    @property
    def path(self) -> Path:
        """Return the file records are appended to."""
        return self._path

    async def start(self) -> None:
        if self._closed:
            raise RuntimeError("audit sink is closed")
        if self._writer is None:
            self._writer = asyncio.create_task(self._run(), name="audit-writer")
            logger.info("Audit sink started", path=str(self._path))

    async def record(self, info: VersionInfo) -> None:
        if self._closed:
            raise RuntimeError("audit sink is closed")
        try:
            self._queue.put_nowait(info)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "Audit queue full, dropping record",
                path=str(self._path),
                dropped=self.dropped,
            )

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._writer is None:
            # Never started: flush whatever was queued before stopping
            self._writer = asyncio.create_task(self._run(), name="audit-writer")
        await self._queue.join()
        self._writer.cancel()
        try:
            await self._writer
        except asyncio.CancelledError:
            pass
        logger.info(
            "Audit sink closed",
            path=str(self._path),
            written=self.written,
            failed=self.failed,
            dropped=self.dropped,
        )

    async def _run(self) -> None:
        while True:
            info = await self._queue.get()
            line = json.dumps(info.model_dump(mode="json")) + "\n"
            try:
                await asyncio.to_thread(self._append, line)
                self.written += 1
            except OSError as e:
                self.failed += 1
                logger.error(
                    "Failed to write audit record",
                    path=str(self._path),
                    error=str(e),
                )
            finally:
                self._queue.task_done()

    def _append(self, line: str) -> None:
        with self._path.open("a", encoding="utf-8") as f:
            f.write(line)
            f.flush()


def create_audit_sink(settings: Settings) -> AuditSink:
    """Create the audit sink for the configured path.

    Args:
        settings: Service settings holding the optional audit log path.

    Returns:
        A FileAuditSink when auditing is enabled, otherwise a NullAuditSink.
    """
    if not settings.audit_enabled:
        return NullAuditSink()
    return FileAuditSink(settings.audit_log_path)
