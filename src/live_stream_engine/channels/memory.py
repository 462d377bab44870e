"""In-process live channel."""

from __future__ import annotations

import logging
from typing import Any

from ..core.models import EventKind
from .base import EventHandler

logger = logging.getLogger(__name__)


class InMemoryChannel:
    """Synchronous channel: :meth:`emit` delivers straight to the handlers.

    ``data`` goes to the subscribed handler. ``progress``, ``complete`` and
    ``error`` go to the callbacks registered by the last :meth:`start_stream`,
    and also to a subscribed handler when one exists for that event.
    """

    def __init__(self, *, connected: bool = True) -> None:
        self._connected = connected
        self._handlers: dict[str, EventHandler] = {}
        self._callbacks: dict[str, EventHandler] = {}
        self.streaming = False
        self.start_calls = 0
        self.stop_calls = 0

    @property
    def connected(self) -> bool:
        return self._connected

    def connect(self) -> None:
        self._connected = True

    def close(self) -> None:
        """Tear the channel down; nothing is delivered afterwards."""
        self._connected = False
        self.streaming = False
        self._handlers.clear()
        self._callbacks.clear()

    def subscribe(self, event: str, handler: EventHandler) -> None:
        self._handlers[EventKind(event).value] = handler

    def unsubscribe(self, event: str) -> None:
        self._handlers.pop(EventKind(event).value, None)

    def start_stream(
        self,
        on_progress: EventHandler,
        on_complete: EventHandler,
        on_error: EventHandler,
    ) -> None:
        if not self._connected:
            raise ConnectionError("channel is not connected")
        self._callbacks = {
            EventKind.PROGRESS.value: on_progress,
            EventKind.COMPLETE.value: on_complete,
            EventKind.ERROR.value: on_error,
        }
        self.streaming = True
        self.start_calls += 1

    def stop_stream(self) -> None:
        self.streaming = False
        self.stop_calls += 1

    def emit(self, event: EventKind | str, payload: Any = None) -> bool:
        """Deliver one push event. Returns False when nothing received it."""
        if not self._connected:
            logger.debug("Dropping %s event on closed channel", event)
            return False

        name = EventKind(event).value
        delivered = False
        handler = self._handlers.get(name)
        if handler is not None:
            handler(payload)
            delivered = True
        callback = self._callbacks.get(name)
        if callback is not None:
            callback(payload)
            delivered = True
        return delivered
