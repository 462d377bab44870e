from __future__ import annotations

import pytest

from live_stream_engine.channels import InMemoryChannel
from live_stream_engine.core.errors import ChannelUnavailable, InvalidTransition
from live_stream_engine.core.models import FilterLevel, SessionState
from live_stream_engine.core.session import StreamSession


def _data(i: int, kind: str = "info") -> dict:
    return {"type": kind, "message": f"event {i}"}


def test_new_session_is_idle(session) -> None:
    assert session.state is SessionState.IDLE
    assert session.aggregator.stats.start_time is None


def test_start_requires_attached_channel(clock, notifications) -> None:
    s = StreamSession(clock=clock, notifier=notifications.append)
    with pytest.raises(ChannelUnavailable):
        s.start()
    assert s.state is SessionState.IDLE
    assert notifications[-1].level == "error"


def test_start_requires_connected_channel(session, channel) -> None:
    channel.close()
    with pytest.raises(ChannelUnavailable):
        session.start()
    assert session.state is SessionState.IDLE
    assert channel.start_calls == 0


def test_start_resets_stats_and_issues_command(session, channel) -> None:
    channel.emit("data", _data(1))

    session.start()

    assert session.state is SessionState.STREAMING
    assert channel.start_calls == 1
    assert session.aggregator.stats.start_time is not None
    assert session.aggregator.stats.total_processed == 0
    # start keeps previously buffered entries
    assert len(session.aggregator) == 1


def test_start_while_streaming_has_no_side_effects(session, channel) -> None:
    session.start()
    channel.emit("progress", {"totalProcessed": 5})
    start_time = session.aggregator.stats.start_time

    with pytest.raises(InvalidTransition):
        session.start()

    assert session.state is SessionState.STREAMING
    assert channel.start_calls == 1
    assert session.aggregator.stats.total_processed == 5
    assert session.aggregator.stats.start_time == start_time


def test_start_refused_by_channel_restores_state(session, channel, monkeypatch) -> None:
    def refuse(*_args) -> None:
        raise ConnectionError("backend busy")

    monkeypatch.setattr(channel, "start_stream", refuse)

    with pytest.raises(ChannelUnavailable, match="backend busy"):
        session.start()
    assert session.state is SessionState.IDLE
    assert session.aggregator.stats.start_time is None


def test_start_refused_by_channel_keeps_stats_and_last_error(session, channel, monkeypatch) -> None:
    session.start()
    channel.emit("progress", {"totalProcessed": 7, "anomaliesDetected": 2})
    channel.emit("error", {"message": "pipeline crashed"})
    stats_before = session.aggregator.stats

    def refuse(*_args) -> None:
        raise ConnectionError("backend busy")

    monkeypatch.setattr(channel, "start_stream", refuse)

    with pytest.raises(ChannelUnavailable, match="backend busy"):
        session.start()

    assert session.state is SessionState.STOPPED
    assert session.aggregator.stats == stats_before
    assert session.aggregator.stats.total_processed == 7
    assert session.aggregator.stats.anomalies_detected == 2
    assert session.last_error is not None
    assert session.last_error.message == "pipeline crashed"
    assert session.status()["last_error"] == "pipeline crashed"


def test_stop_while_idle_is_noop(session, channel, notifications) -> None:
    session.stop()
    assert session.state is SessionState.IDLE
    assert channel.stop_calls == 0
    assert notifications == []


def test_stop_is_idempotent_and_keeps_data(session, channel) -> None:
    session.start()
    channel.emit("data", _data(1))

    session.stop()
    session.stop()

    assert session.state is SessionState.STOPPED
    assert channel.stop_calls == 1
    assert len(session.aggregator) == 1


def test_late_events_after_stop_are_ingested(session, channel) -> None:
    session.start()
    session.stop()

    channel.emit("data", _data(1))
    channel.emit("progress", {"totalProcessed": 3})

    assert len(session.aggregator) == 1
    assert session.aggregator.stats.total_processed == 3


def test_events_after_channel_close_are_not_ingested(session, channel) -> None:
    session.start()
    channel.emit("progress", {"totalProcessed": 2})
    channel.close()

    assert channel.emit("data", _data(1)) is False
    assert channel.emit("progress", {"totalProcessed": 10}) is False
    assert channel.emit("error", {"message": "late"}) is False

    assert len(session.aggregator) == 0
    assert session.aggregator.stats.total_processed == 2
    assert session.last_error is None


def test_stopped_session_can_restart(session, channel) -> None:
    session.start()
    channel.emit("progress", {"totalProcessed": 9})
    session.stop()

    session.start()

    assert session.state is SessionState.STREAMING
    assert session.aggregator.stats.total_processed == 0
    assert channel.start_calls == 2


def test_complete_forces_stopped(session, channel, notifications) -> None:
    session.start()
    channel.emit("complete", {"processed": 10})

    assert session.state is SessionState.STOPPED
    assert notifications[-1].level == "success"


def test_error_forces_stopped_and_keeps_partial_results(session, channel, notifications) -> None:
    session.start()
    channel.emit("data", _data(1, "anomaly"))
    channel.emit("data", _data(2))
    channel.emit("error", {"message": "pipeline crashed"})

    assert session.state is SessionState.STOPPED
    assert session.last_error is not None
    assert session.last_error.message == "pipeline crashed"
    assert notifications[-1].message == "Stream error: pipeline crashed"
    assert len(session.aggregator) == 2
    assert len(session.export_snapshot()) == 2


def test_error_accepts_exception_payload(session) -> None:
    session.start()
    session.on_error(RuntimeError("socket reset"))
    assert session.last_error is not None
    assert session.last_error.message == "socket reset"


def test_clear_keeps_state(session, channel) -> None:
    session.start()
    channel.emit("data", _data(1))
    channel.emit("progress", {"totalProcessed": 4, "anomaliesDetected": 1})

    session.clear()

    assert session.state is SessionState.STREAMING
    assert len(session.aggregator) == 0
    assert session.aggregator.stats.total_processed == 0
    assert session.aggregator.stats.start_time is None


def test_configure_clamps_and_defaults_query(session, channel) -> None:
    opts = session.configure(max_lines=20, filter_level="warning")
    assert opts.max_lines == 100
    assert session.aggregator.max_lines == 100

    channel.emit("data", _data(1, "warning"))
    channel.emit("data", _data(2, "info"))

    assert [e.message for e in session.query()] == ["event 1"]
    assert len(session.query(FilterLevel.ALL)) == 2


def test_attach_replaces_previous_channel(session, channel) -> None:
    other = InMemoryChannel()
    session.attach(other)

    assert channel.emit("data", _data(1)) is False
    other.emit("data", _data(2))

    assert [e.message for e in session.aggregator.entries()] == ["event 2"]


def test_status_is_serializable_summary(session, channel) -> None:
    session.start()
    channel.emit("data", _data(1, "anomaly"))
    channel.emit("data", "garbage")

    status = session.status()

    assert status["state"] == "streaming"
    assert status["connected"] is True
    assert status["buffered"] == 1
    assert status["visible"] == 1
    assert status["malformed_events"] == 1
    assert status["options"]["filter_level"] == "ALL"
    assert status["stats"]["start_time"] is not None


def test_scenario_overflow_filter_then_clear(session, channel) -> None:
    session.start()
    for i in range(1, 1201):
        channel.emit("data", _data(i, "anomaly" if i > 200 and i % 20 == 0 else "info"))
    channel.emit("progress", {"totalProcessed": 1200, "anomaliesDetected": 50})

    entries = session.aggregator.entries()
    assert len(entries) == 1000
    assert entries[0].message == "event 201"
    assert entries[-1].message == "event 1200"

    anomalies = list(session.query("ANOMALY"))
    assert len(anomalies) == 50
    assert [e.message for e in anomalies] == sorted(
        (e.message for e in anomalies), key=lambda m: int(m.split()[1])
    )

    session.clear()
    assert len(session.aggregator) == 0
    assert session.aggregator.stats.total_processed == 0
    assert session.aggregator.stats.anomalies_detected == 0
    assert session.state is SessionState.STREAMING
