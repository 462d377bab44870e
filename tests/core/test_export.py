from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from live_stream_engine.core.buffer import StreamAggregator
from live_stream_engine.core.export import export_filename, write_snapshot


def test_export_filename_uses_iso_date() -> None:
    assert export_filename(datetime(2025, 12, 30, 23, 59, tzinfo=UTC)) == "stream_data_2025-12-30.json"


@pytest.mark.asyncio
async def test_write_snapshot_writes_full_buffer(tmp_path: Path, clock) -> None:
    agg = StreamAggregator(clock=clock)
    agg.ingest("data", {"type": "info", "message": "first"})
    agg.ingest("data", {"type": "anomaly", "message": "second", "anomaly": {"description": "spike"}})

    path = await write_snapshot(agg, tmp_path, now=datetime(2025, 12, 30, tzinfo=UTC))

    assert path == tmp_path / "stream_data_2025-12-30.json"
    doc = json.loads(path.read_text(encoding="utf-8"))
    assert [d["message"] for d in doc] == ["first", "second"]
    assert doc[1]["anomaly"] == {"description": "spike"}
    assert len(agg) == 2


@pytest.mark.asyncio
async def test_write_snapshot_refuses_empty_buffer(tmp_path: Path, clock) -> None:
    agg = StreamAggregator(clock=clock)
    with pytest.raises(ValueError, match="empty"):
        await write_snapshot(agg, tmp_path)


@pytest.mark.asyncio
async def test_write_snapshot_missing_directory(tmp_path: Path, clock) -> None:
    agg = StreamAggregator(clock=clock)
    agg.ingest("data", {"message": "x"})
    with pytest.raises(FileNotFoundError):
        await write_snapshot(agg, tmp_path / "missing")
