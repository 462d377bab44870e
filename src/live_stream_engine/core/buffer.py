"""Bounded stream buffer and running statistics.

The aggregator is the single owner of the buffered entries and the stats
record. It is driven synchronously from channel callbacks and never blocks.
"""

from __future__ import annotations

import itertools
import logging
from collections import deque
from collections.abc import Callable, Iterator, Mapping
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from .events import DataEvent, ProgressEvent
from .models import EntryKind, EventKind, FilterLevel, StreamEntry, StreamStats
from .options import DEFAULT_MAX_LINES, clamp_max_lines, parse_filter_level

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class StreamView:
    """Filtered, restartable view over the live buffer.

    Nothing is cached: every iteration walks the buffer as it is at that moment.
    """

    def __init__(self, entries: deque[StreamEntry], filter_level: FilterLevel) -> None:
        self._entries = entries
        self.filter_level = filter_level

    def __iter__(self) -> Iterator[StreamEntry]:
        level = self.filter_level
        # Snapshot so ingestion from a callback cannot invalidate the iterator.
        for entry in tuple(self._entries):
            if level.matches(entry.kind):
                yield entry

    def __len__(self) -> int:
        return sum(1 for _ in self)


class StreamAggregator:
    def __init__(
        self,
        *,
        max_lines: int = DEFAULT_MAX_LINES,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._entries: deque[StreamEntry] = deque()
        self._stats = StreamStats()
        self._max_lines = clamp_max_lines(max_lines)
        self._clock = clock
        self._seq = itertools.count(1)
        self.malformed_events = 0

    # ------------------------------------------------------------------ state
    @property
    def stats(self) -> StreamStats:
        return self._stats

    @property
    def max_lines(self) -> int:
        return self._max_lines

    @max_lines.setter
    def max_lines(self, value: int) -> None:
        # Trimming happens on the next data ingest.
        self._max_lines = clamp_max_lines(value)

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> list[StreamEntry]:
        """Return a copy of the buffer in arrival order."""
        return list(self._entries)

    # ----------------------------------------------------------------- ingest
    def ingest(self, kind: EventKind | str, payload: Any) -> StreamEntry | None:
        """Dispatch a push event by kind.

        Returns the new entry for ``data`` events, otherwise None. Malformed
        events are logged, counted and skipped.
        """
        try:
            event_kind = EventKind(kind)
        except ValueError:
            self._skip(kind, payload, "unknown event kind")
            return None

        if event_kind is EventKind.DATA:
            return self.ingest_data(payload)
        if event_kind is EventKind.PROGRESS:
            self.ingest_progress(payload)
        return None

    def ingest_progress(self, payload: Any) -> StreamStats | None:
        """Merge an upstream progress payload into the running stats."""
        if not isinstance(payload, Mapping):
            self._skip(EventKind.PROGRESS.value, payload, "payload is not an object")
            return None
        try:
            event = ProgressEvent.model_validate(payload)
        except ValidationError as e:
            self._skip(EventKind.PROGRESS.value, payload, str(e))
            return None

        prev = self._stats
        total = prev.total_processed
        if event.total_processed is not None:
            total = self._monotonic("total_processed", total, event.total_processed)
        anomalies = prev.anomalies_detected
        if event.anomalies_detected is not None:
            anomalies = self._monotonic("anomalies_detected", anomalies, event.anomalies_detected)
        avg = prev.avg_processing_time_ms
        if event.avg_processing_time_ms is not None:
            avg = event.avg_processing_time_ms

        self._stats = replace(
            prev,
            total_processed=total,
            anomalies_detected=anomalies,
            avg_processing_time_ms=avg,
        )
        return self._stats

    def ingest_data(self, payload: Any) -> StreamEntry | None:
        """Append a data payload as a new entry, evicting the oldest on overflow."""
        if not isinstance(payload, Mapping):
            self._skip(EventKind.DATA.value, payload, "payload is not an object")
            return None
        try:
            event = DataEvent.model_validate(payload)
        except ValidationError as e:
            self._skip(EventKind.DATA.value, payload, str(e))
            return None

        now = self._clock()
        entry = StreamEntry(
            id=f"{int(now.timestamp() * 1000)}-{next(self._seq)}",
            timestamp=now,
            kind=EntryKind(event.kind),
            message=event.message,
            agent=event.agent,
            processing_time_ms=event.processing_time_ms,
            confidence=event.confidence,
            anomaly=event.anomaly,
        )
        self._entries.append(entry)
        while len(self._entries) > self._max_lines:
            self._entries.popleft()
        return entry

    # ------------------------------------------------------------------ reads
    def query(self, filter_level: FilterLevel | str = FilterLevel.ALL) -> StreamView:
        """Return a lazy view of entries matching ``filter_level``."""
        return StreamView(self._entries, parse_filter_level(filter_level))

    def export_snapshot(self) -> list[dict[str, Any]]:
        """Serialize the full buffer, in arrival order."""
        return [entry_to_dict(e) for e in self._entries]

    # -------------------------------------------------------------- lifecycle
    def start_session(self) -> StreamStats:
        """Zero the stats and stamp the session start time.

        Returns the previous stats so a refused start can put them back.
        """
        previous = self._stats
        self._stats = StreamStats(start_time=self._clock())
        return previous

    def restore_stats(self, stats: StreamStats) -> None:
        self._stats = stats

    def reset(self) -> None:
        """Drop all buffered entries and zero the stats."""
        self._entries.clear()
        self._stats = StreamStats()
        self.malformed_events = 0

    # ---------------------------------------------------------------- helpers
    def _skip(self, kind: object, payload: Any, reason: str) -> None:
        self.malformed_events += 1
        logger.warning("Skipping malformed %s event (%s): %r", kind, reason, payload)

    @staticmethod
    def _monotonic(name: str, prev: int, new: int) -> int:
        if new < prev:
            logger.warning("Ignoring decreasing %s (%s -> %s)", name, prev, new)
            return prev
        return new


def entry_to_dict(entry: StreamEntry) -> dict[str, Any]:
    """Convert a StreamEntry into a JSON-serializable dict."""
    d: dict[str, Any] = {
        "id": entry.id,
        "timestamp": entry.timestamp.isoformat(),
        "kind": entry.kind.value,
        "message": entry.message,
    }
    if entry.agent is not None:
        d["agent"] = entry.agent
    if entry.processing_time_ms is not None:
        d["processing_time_ms"] = entry.processing_time_ms
    if entry.confidence is not None:
        d["confidence"] = entry.confidence
    if entry.anomaly is not None:
        d["anomaly"] = entry.anomaly
    return d


def stats_to_dict(stats: StreamStats) -> dict[str, Any]:
    """Convert StreamStats into a JSON-serializable dict."""
    return {
        "total_processed": stats.total_processed,
        "anomalies_detected": stats.anomalies_detected,
        "avg_processing_time_ms": stats.avg_processing_time_ms,
        "start_time": stats.start_time.isoformat() if stats.start_time is not None else None,
    }
