"""Replay a recorded event stream from a JSON-lines file.

Each line holds one push event::

    {"event": "data", "payload": {"type": "anomaly", "message": "..."}, "delay_ms": 50}

Plain text and ``.gz`` recordings are supported.
"""

from __future__ import annotations

import asyncio
import gzip
import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import aiofiles
from aiofiles.threadpool import wrap

from ..core.models import EventKind
from .base import EventHandler
from .memory import InMemoryChannel

logger = logging.getLogger(__name__)

_TERMINAL = {EventKind.COMPLETE.value, EventKind.ERROR.value}


@asynccontextmanager
async def _open_text(path: Path, *, encoding: str = "utf-8", decode_errors: str = "replace"):
    """Open a recording for async text reading (plain or gzip)."""
    if path.suffix.lower() == ".gz":
        f = gzip.open(path, mode="rt", encoding=encoding, errors=decode_errors)
        af = wrap(f)
        try:
            yield af
        finally:
            await af.close()
    else:
        async with aiofiles.open(path, encoding=encoding, errors=decode_errors) as f:
            yield f


def parse_record(line: str) -> tuple[str, Any, float | None] | None:
    """Parse one recording line into (event, payload, delay_ms).

    Returns None for blank lines and lines that are not a valid event record.
    """
    s = line.strip()
    if not s or not (s.startswith("{") and s.endswith("}")):
        return None
    try:
        obj = json.loads(s)
    except json.JSONDecodeError:
        return None
    if not isinstance(obj, dict):
        return None

    event = obj.get("event")
    try:
        name = EventKind(event).value
    except ValueError:
        return None

    delay = obj.get("delay_ms")
    if not isinstance(delay, (int, float)) or isinstance(delay, bool) or delay < 0:
        delay = None
    return name, obj.get("payload"), delay


async def iter_records(path: Path) -> AsyncIterator[tuple[int, str, Any, float | None]]:
    """Yield (line_no, event, payload, delay_ms) for each valid record."""
    async with _open_text(path) as f:
        line_no = 0
        async for line in f:
            line_no += 1
            record = parse_record(line)
            if record is None:
                if line.strip():
                    logger.warning("Skipping unparseable record at %s:%s", path, line_no)
                continue
            yield (line_no, *record)


class ReplayChannel(InMemoryChannel):
    """Live channel backed by a recording, played on the running event loop."""

    def __init__(self, path: str | Path, *, delay_ms: float = 0.0) -> None:
        super().__init__(connected=False)
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        self.path = Path(path)
        self.delay_ms = delay_ms
        self._task: asyncio.Task[None] | None = None

    def connect(self) -> None:
        if not self.path.is_file():
            raise FileNotFoundError(f"Event recording not found: {self.path}")
        super().connect()

    def close(self) -> None:
        self._cancel()
        super().close()

    def start_stream(
        self,
        on_progress: EventHandler,
        on_complete: EventHandler,
        on_error: EventHandler,
    ) -> None:
        # Raises RuntimeError outside a loop, before any channel state changes.
        loop = asyncio.get_running_loop()
        super().start_stream(on_progress, on_complete, on_error)
        self._cancel()
        self._task = loop.create_task(self._replay())
        self._task.add_done_callback(self._log_failure)

    def stop_stream(self) -> None:
        super().stop_stream()
        self._cancel()

    async def join(self) -> None:
        """Wait until the current replay finishes or is cancelled."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    def _cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def _log_failure(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Replay of %s failed", self.path, exc_info=exc)

    async def _replay(self) -> None:
        try:
            async for line_no, event, payload, delay_ms in iter_records(self.path):
                delay = self.delay_ms if delay_ms is None else delay_ms
                if delay:
                    await asyncio.sleep(delay / 1000.0)
                else:
                    # Yield so stop_stream() can take effect between events.
                    await asyncio.sleep(0)
                logger.debug("Replaying %s event from line %s", event, line_no)
                self.emit(event, payload)
                if event in _TERMINAL:
                    return
        except OSError as exc:
            logger.exception("Replay of %s failed", self.path)
            self.emit(EventKind.ERROR, {"message": str(exc)})
            return

        self.emit(EventKind.COMPLETE, {"reason": "eof"})
