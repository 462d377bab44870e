"""Live channel interface and bundled implementations.

The transport itself is external; these channels let the engine run in-process
or against a recorded event stream.
"""

from __future__ import annotations

from .base import EventHandler, LiveChannel
from .memory import InMemoryChannel
from .replay import ReplayChannel, iter_records, parse_record

__all__ = [
    "EventHandler",
    "InMemoryChannel",
    "LiveChannel",
    "ReplayChannel",
    "iter_records",
    "parse_record",
]
