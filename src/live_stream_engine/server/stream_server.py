"""MCP server entrypoint (stdio transport).

This module wires together:
- Tools: lifecycle commands and filtered reads on the stream session
- Resources: payload schemas, a sample recording and the buffer snapshot

Run locally (stdio):
    python -m live_stream_engine.server.stream_server
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Sequence
from typing import Any

from mcp.server.fastmcp import FastMCP

from live_stream_engine.core.options import resolve_stream_options
from live_stream_engine.core.session import StreamSession
from live_stream_engine.resources.registry import register_resources
from live_stream_engine.tools.stream import (
    clear_impl,
    configure_impl,
    connect_impl,
    entries_impl,
    export_impl,
    start_impl,
    stop_impl,
)

LOGGER = logging.getLogger(__name__)


def _configure_logging() -> None:
    """Configure a reasonable default logging setup.

    The MCP client typically captures stderr; keeping logs concise makes them easier to consume.
    """
    level_name = os.getenv("LIVE_STREAM_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


session = StreamSession(options=resolve_stream_options())
mcp = FastMCP("live-stream", json_response=True)

register_resources(mcp, session)


@mcp.tool()
def stream_connect(source_path: str, delay_ms: float = 0.0) -> dict[str, Any]:
    """Attach a recorded event stream (JSON lines, optionally .gz) as the live channel.

    Parameters
    ----------
    source_path:
        Recording path, resolved under LIVE_STREAM_BASE_DIR.
    delay_ms:
        Default pause between replayed events when a record has no delay_ms.
    """
    return connect_impl(session, source_path=source_path, delay_ms=delay_ms)


@mcp.tool()
async def stream_start() -> dict[str, Any]:
    """Start streaming. Stats are reset; buffered entries are kept."""
    return start_impl(session)


@mcp.tool()
def stream_stop() -> dict[str, Any]:
    """Stop streaming (best effort; in-flight events may still arrive)."""
    return stop_impl(session)


@mcp.tool()
def stream_clear() -> dict[str, Any]:
    """Empty the buffer and zero the stats without changing the session state."""
    return clear_impl(session)


@mcp.tool()
def stream_status() -> dict[str, Any]:
    """Return session state, stats, options and buffer counts."""
    return session.status()


@mcp.tool()
def stream_entries(filter_level: str | None = None, limit: int | None = None) -> dict[str, Any]:
    """Return the most recent buffered entries.

    Parameters
    ----------
    filter_level:
        ALL, ANOMALY, ERROR, WARNING or INFO (case-insensitive). Defaults to the
        configured filter level.
    limit:
        Maximum number of entries returned (hard-capped in the implementation).

    Returns
    -------
    dict:
        {"filter_level": str, "count": int, "buffered": int, "entries": list[dict]}
    """
    return entries_impl(session, filter_level=filter_level, limit=limit)


@mcp.tool()
def stream_configure(
    max_lines: int | None = None,
    filter_level: str | None = None,
    auto_scroll: bool | None = None,
    show_timestamps: bool | None = None,
) -> dict[str, Any]:
    """Update stream options. max_lines is clamped to [100, 5000]."""
    return configure_impl(
        session,
        max_lines=max_lines,
        filter_level=filter_level,
        auto_scroll=auto_scroll,
        show_timestamps=show_timestamps,
    )


@mcp.tool()
async def stream_export(directory: str | None = None) -> dict[str, Any]:
    """Write the full buffer to stream_data_<date>.json and return its path."""
    return await export_impl(session, directory=directory)


def main(argv: Sequence[str] | None = None) -> None:
    """Start the MCP server over stdio."""
    _configure_logging()
    LOGGER.debug("Starting MCP server (transport=stdio)")
    _ = argv or sys.argv[1:]
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
