"""Session lifecycle state machine.

Transitions are a pure function of (state, event) so they can be tested without
a transport. Side effects (channel calls, stats resets) live in the session.
"""

from __future__ import annotations

from enum import Enum

from .errors import InvalidTransition
from .models import SessionState


class SessionEvent(str, Enum):
    START = "start"
    STOP = "stop"
    COMPLETE = "complete"
    ERROR = "error"
    CLEAR = "clear"


def transition(state: SessionState, event: SessionEvent) -> SessionState:
    """Return the state reached from ``state`` on ``event``.

    Raises InvalidTransition for ``start`` while already streaming. Every other
    combination is accepted; commands that do not apply are self-loops.
    """
    if event is SessionEvent.START:
        if state is SessionState.STREAMING:
            raise InvalidTransition("Stream is already running")
        return SessionState.STREAMING

    if event in (SessionEvent.STOP, SessionEvent.COMPLETE, SessionEvent.ERROR):
        if state is SessionState.STREAMING:
            return SessionState.STOPPED
        return state

    # clear
    return state
