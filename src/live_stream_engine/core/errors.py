"""Exception types raised by the stream engine."""

from __future__ import annotations


class StreamEngineError(Exception):
    """Base class for stream engine errors."""


class ChannelUnavailable(StreamEngineError):
    """No connected live channel is available to accept a command."""


class StreamError(StreamEngineError):
    """The live channel reported a fatal error mid-session."""

    def __init__(self, message: str, *, payload: object | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.payload = payload


class InvalidTransition(StreamEngineError):
    """A lifecycle command is not valid in the current session state."""


class InvalidOption(StreamEngineError, ValueError):
    """An option value cannot be interpreted."""
