"""Stream session: lifecycle control over a live channel.

A :class:`StreamSession` owns one :class:`StreamAggregator` and the session
state. It is the only component that issues start/stop commands to the
channel; everything runs on the caller's thread, driven by commands and
channel callbacks.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from ..channels.base import LiveChannel
from .buffer import StreamAggregator, StreamView, stats_to_dict
from .errors import ChannelUnavailable, StreamError
from .events import ErrorEvent
from .models import EventKind, FilterLevel, Notification, SessionState
from .options import StreamOptions, update_options
from .state import SessionEvent, transition

logger = logging.getLogger(__name__)

Notifier = Callable[[Notification], None]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _log_notification(n: Notification) -> None:
    level = logging.ERROR if n.level == "error" else logging.INFO
    logger.log(level, "%s", n.message)


def _error_message(err: Any) -> str:
    """Extract a readable message from an error payload."""
    if isinstance(err, BaseException):
        return str(err) or type(err).__name__
    if isinstance(err, Mapping):
        try:
            return ErrorEvent.model_validate(err).message
        except ValidationError:
            return str(dict(err))
    if err is None:
        return ErrorEvent().message
    return str(err)


class StreamSession:
    def __init__(
        self,
        *,
        options: StreamOptions | None = None,
        clock: Callable[[], datetime] = _utcnow,
        notifier: Notifier | None = None,
    ) -> None:
        self.options = options or StreamOptions()
        self.aggregator = StreamAggregator(max_lines=self.options.max_lines, clock=clock)
        self._notifier = notifier or _log_notification
        self._state = SessionState.IDLE
        self._channel: LiveChannel | None = None
        self.last_notification: Notification | None = None
        self.last_error: StreamError | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def channel(self) -> LiveChannel | None:
        return self._channel

    # -------------------------------------------------------------- channel
    def attach(self, channel: LiveChannel) -> None:
        """Subscribe to ``channel``'s data events, replacing any previous channel."""
        if self._channel is channel:
            return
        if self._channel is not None:
            self.detach()
        channel.subscribe(EventKind.DATA.value, self._on_data)
        self._channel = channel

    def detach(self) -> None:
        if self._channel is None:
            return
        self._channel.unsubscribe(EventKind.DATA.value)
        self._channel = None

    # ------------------------------------------------------------- commands
    def start(self) -> None:
        """Begin a new streaming run.

        Raises ChannelUnavailable without touching state when no connected
        channel is attached, and InvalidTransition when already streaming.
        """
        channel = self._channel
        if channel is None or not channel.connected:
            self._notify("error", "Live channel connection not available")
            raise ChannelUnavailable("Live channel connection not available")

        previous = self._state
        new_state = transition(previous, SessionEvent.START)

        previous_stats = self.aggregator.start_session()
        previous_error = self.last_error
        self.last_error = None
        self._state = new_state
        try:
            channel.start_stream(self.on_progress, self.on_complete, self.on_error)
        except Exception as exc:
            self._state = previous
            self.aggregator.restore_stats(previous_stats)
            self.last_error = previous_error
            logger.exception("Live channel refused start command")
            self._notify("error", f"Live channel refused start: {exc}")
            raise ChannelUnavailable(f"Live channel refused start: {exc}") from exc

        logger.info("Stream session %s -> %s", previous.value, new_state.value)
        self._notify("info", "Started real-time stream analysis")

    def stop(self) -> None:
        """Request that the channel stop emitting. No-op unless streaming."""
        previous = self._state
        new_state = transition(previous, SessionEvent.STOP)
        if new_state is previous:
            logger.debug("stop() ignored in state %s", previous.value)
            return

        if self._channel is not None:
            try:
                self._channel.stop_stream()
            except Exception:
                # Stopping is best-effort; the session still leaves Streaming.
                logger.exception("Live channel failed to accept stop command")

        self._state = new_state
        logger.info("Stream session %s -> %s", previous.value, new_state.value)
        self._notify("info", "Stopped real-time stream analysis")

    def clear(self) -> None:
        """Empty the buffer and zero the stats. State is unchanged."""
        self.aggregator.reset()
        self._state = transition(self._state, SessionEvent.CLEAR)

    def configure(self, **changes: Any) -> StreamOptions:
        """Update presentation options; ``max_lines`` is clamped to its bounds."""
        self.options = update_options(self.options, **changes)
        self.aggregator.max_lines = self.options.max_lines
        return self.options

    # ------------------------------------------------------------ callbacks
    def on_progress(self, payload: Any) -> None:
        self.aggregator.ingest(EventKind.PROGRESS, payload)

    def _on_data(self, payload: Any) -> None:
        self.aggregator.ingest(EventKind.DATA, payload)

    def on_complete(self, data: Any = None) -> None:
        previous = self._state
        self._state = transition(previous, SessionEvent.COMPLETE)
        logger.info("Stream complete (%s -> %s): %r", previous.value, self._state.value, data)
        self._notify("success", "Stream analysis completed")

    def on_error(self, err: Any = None) -> None:
        """Record a fatal channel error. Buffered entries are kept."""
        message = _error_message(err)
        self.last_error = StreamError(message, payload=err)
        previous = self._state
        self._state = transition(previous, SessionEvent.ERROR)
        logger.error("Stream error (%s -> %s): %s", previous.value, self._state.value, message)
        self._notify("error", f"Stream error: {message}")

    # ---------------------------------------------------------------- reads
    def query(self, filter_level: FilterLevel | str | None = None) -> StreamView:
        """Filtered view; defaults to the configured filter level."""
        level = self.options.filter_level if filter_level is None else filter_level
        return self.aggregator.query(level)

    def export_snapshot(self) -> list[dict[str, Any]]:
        return self.aggregator.export_snapshot()

    def status(self) -> dict[str, Any]:
        """Return a JSON-serializable summary of the session."""
        n = self.last_notification
        return {
            "state": self._state.value,
            "connected": bool(self._channel is not None and self._channel.connected),
            "stats": stats_to_dict(self.aggregator.stats),
            "options": {
                "auto_scroll": self.options.auto_scroll,
                "show_timestamps": self.options.show_timestamps,
                "max_lines": self.options.max_lines,
                "filter_level": self.options.filter_level.value,
            },
            "buffered": len(self.aggregator),
            "visible": len(self.query()),
            "malformed_events": self.aggregator.malformed_events,
            "last_notification": (
                {"level": n.level, "message": n.message} if n is not None else None
            ),
            "last_error": self.last_error.message if self.last_error is not None else None,
        }

    def _notify(self, level: str, message: str) -> None:
        n = Notification(level=level, message=message)
        self.last_notification = n
        self._notifier(n)
