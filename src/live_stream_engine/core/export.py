"""Snapshot export for the stream buffer."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import aiofiles

from .buffer import StreamAggregator


def export_filename(now: datetime | None = None) -> str:
    """Return ``stream_data_<YYYY-MM-DD>.json`` for the given (UTC) moment."""
    now = now or datetime.now(UTC)
    return f"stream_data_{now.date().isoformat()}.json"


def snapshot_document(aggregator: StreamAggregator) -> list[dict[str, Any]]:
    """Return the full buffer as a JSON-serializable document."""
    return aggregator.export_snapshot()


async def write_snapshot(
    aggregator: StreamAggregator,
    directory: str | Path,
    *,
    now: datetime | None = None,
) -> Path:
    """Write the buffer snapshot into ``directory`` and return the file path."""
    out_dir = Path(directory)
    if not out_dir.is_dir():
        raise FileNotFoundError(f"Export directory not found: {out_dir}")

    document = snapshot_document(aggregator)
    if not document:
        raise ValueError("Nothing to export: the stream buffer is empty.")

    path = out_dir / export_filename(now)
    async with aiofiles.open(path, mode="w", encoding="utf-8") as f:
        await f.write(json.dumps(document, indent=2))
    return path
