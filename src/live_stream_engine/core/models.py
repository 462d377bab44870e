"""Core data models for the live stream engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Literal


class EntryKind(str, Enum):
    """Kinds of displayable stream entries."""

    INFO = "info"
    ANOMALY = "anomaly"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


class FilterLevel(str, Enum):
    """Presentation filter applied to buffered entries."""

    ALL = "ALL"
    ANOMALY = "ANOMALY"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"

    def matches(self, kind: EntryKind) -> bool:
        """Return True when an entry of ``kind`` passes this filter."""
        if self is FilterLevel.ALL:
            return True
        return kind.value == self.value.lower()


class SessionState(str, Enum):
    """Lifecycle state of a stream session."""

    IDLE = "idle"
    STREAMING = "streaming"
    STOPPED = "stopped"


class EventKind(str, Enum):
    """Named push events delivered by a live channel."""

    PROGRESS = "progress"
    DATA = "data"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class StreamEntry:
    """One ingested event, in arrival order."""

    id: str
    timestamp: datetime
    kind: EntryKind
    message: str
    agent: str | None = None
    processing_time_ms: float | None = None
    confidence: float | None = None  # 0..1
    anomaly: dict[str, Any] | None = None  # structured note (e.g. {"description": ...})


@dataclass(frozen=True, slots=True)
class StreamStats:
    """Running aggregate supplied by upstream progress events."""

    total_processed: int = 0
    anomalies_detected: int = 0
    avg_processing_time_ms: float = 0.0
    start_time: datetime | None = None


@dataclass(frozen=True, slots=True)
class Notification:
    """User-facing outcome of a lifecycle event."""

    level: Literal["info", "success", "error"]
    message: str
