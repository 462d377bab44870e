"""MCP tool implementations.

This module contains the *implementation* behind the exposed MCP tools.
Keep this layer thin: validate inputs, translate them into session calls, and
return JSON-serializable data structures.
"""

from __future__ import annotations

import os
from collections import deque
from pathlib import Path
from typing import Any

from live_stream_engine.channels import ReplayChannel
from live_stream_engine.core.buffer import entry_to_dict
from live_stream_engine.core.export import write_snapshot
from live_stream_engine.core.session import StreamSession

DEFAULT_LIMIT = 200
HARD_LIMIT = 5000
BASE_DIR_ENV = "LIVE_STREAM_BASE_DIR"


def _base_dir() -> Path:
    """Return the resolved base directory for recordings and exports."""
    raw = os.getenv(BASE_DIR_ENV, os.getcwd())
    return Path(raw).resolve()


def _safe_resolve(path: str) -> Path:
    """Resolve a path under the configured base directory."""
    base = _base_dir()
    p = Path(path).expanduser()
    if not p.is_absolute():
        p = base / p
    p = p.resolve()
    if base not in p.parents and p != base:
        raise ValueError("Path escapes base dir")
    return p


def connect_impl(session: StreamSession, *, source_path: str, delay_ms: float = 0.0) -> dict[str, Any]:
    """Attach a replay channel for ``source_path`` to the session.

    A previously attached replay channel is stopped and closed first.
    """
    path = _safe_resolve(source_path)
    channel = ReplayChannel(path, delay_ms=delay_ms)
    channel.connect()

    old = session.channel
    if old is not None:
        session.stop()
        session.detach()
        if isinstance(old, ReplayChannel):
            old.close()

    session.attach(channel)
    return session.status()


def start_impl(session: StreamSession) -> dict[str, Any]:
    session.start()
    return session.status()


def stop_impl(session: StreamSession) -> dict[str, Any]:
    session.stop()
    return session.status()


def clear_impl(session: StreamSession) -> dict[str, Any]:
    session.clear()
    return session.status()


def configure_impl(
    session: StreamSession,
    *,
    max_lines: int | None = None,
    filter_level: str | None = None,
    auto_scroll: bool | None = None,
    show_timestamps: bool | None = None,
) -> dict[str, Any]:
    session.configure(
        max_lines=max_lines,
        filter_level=filter_level,
        auto_scroll=auto_scroll,
        show_timestamps=show_timestamps,
    )
    return session.status()


def entries_impl(
    session: StreamSession,
    *,
    filter_level: str | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    """Return the most recent ``limit`` entries matching ``filter_level``.

    Entries keep arrival order (oldest first) within the returned window.
    """
    if limit is None:
        limit = DEFAULT_LIMIT
    if limit <= 0:
        raise ValueError("limit must be > 0")
    if limit > HARD_LIMIT:
        limit = HARD_LIMIT

    view = session.query(filter_level)
    window = deque(view, maxlen=limit)
    return {
        "filter_level": view.filter_level.value,
        "count": len(window),
        "buffered": len(session.aggregator),
        "entries": [entry_to_dict(e) for e in window],
    }


async def export_impl(session: StreamSession, *, directory: str | None = None) -> dict[str, Any]:
    """Write the full buffer to ``stream_data_<date>.json`` under ``directory``."""
    out_dir = _safe_resolve(directory) if directory else _base_dir()
    path = await write_snapshot(session.aggregator, out_dir)
    return {"path": str(path), "count": len(session.aggregator)}
