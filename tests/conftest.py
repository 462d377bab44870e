from __future__ import annotations

import json
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from live_stream_engine.channels import InMemoryChannel
from live_stream_engine.core.models import Notification
from live_stream_engine.core.session import StreamSession


class FakeClock:
    """Deterministic clock advancing one millisecond per call."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 12, 30, 8, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + timedelta(milliseconds=1)
        return current


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifications() -> list[Notification]:
    return []


@pytest.fixture
def channel() -> InMemoryChannel:
    return InMemoryChannel()


@pytest.fixture
def session(clock: FakeClock, notifications: list[Notification], channel: InMemoryChannel) -> StreamSession:
    s = StreamSession(clock=clock, notifier=notifications.append)
    s.attach(channel)
    return s


@pytest.fixture
def write_events() -> Callable[[Path, list[dict[str, Any]]], None]:
    def _write(path: Path, records: list[dict[str, Any]]) -> None:
        path.write_text(
            "\n".join(json.dumps(r) for r in records) + "\n",
            encoding="utf-8",
        )

    return _write
