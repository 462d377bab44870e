"""Live channel interface."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

EventHandler = Callable[[Any], None]


class LiveChannel(Protocol):
    """Push transport consumed by the stream session.

    Named events are ``progress``, ``data``, ``complete`` and ``error``.
    Handlers passed to :meth:`start_stream` stay registered until the next
    start so that events still in flight after :meth:`stop_stream` arrive.
    """

    @property
    def connected(self) -> bool:
        """True while the transport is usable."""
        ...

    def subscribe(self, event: str, handler: EventHandler) -> None:
        """Register ``handler`` for a named push event."""
        ...

    def unsubscribe(self, event: str) -> None:
        """Remove the handler registered for ``event``, if any."""
        ...

    def start_stream(
        self,
        on_progress: EventHandler,
        on_complete: EventHandler,
        on_error: EventHandler,
    ) -> None:
        """Ask the backend to start emitting. Returns without waiting."""
        ...

    def stop_stream(self) -> None:
        """Ask the backend to stop emitting. Returns without waiting."""
        ...
