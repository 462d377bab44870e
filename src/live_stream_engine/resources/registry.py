"""MCP resource registry.

Resources are addressable by URI and can be fetched by the MCP client on demand.
"""

from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP

from live_stream_engine.core.events import DataEvent, ProgressEvent
from live_stream_engine.core.options import MAX_MAX_LINES, MIN_MAX_LINES
from live_stream_engine.core.session import StreamSession

SAMPLE_EVENTS = (
    '{"event": "progress", "payload": {"totalProcessed": 0, "anomaliesDetected": 0}}\n'
    '{"event": "data", "payload": {"type": "info", "message": "ingest agent online", "agent": "ingest"}}\n'
    '{"event": "data", "payload": {"type": "anomaly", "message": "latency spike on /api/v1/items", '
    '"agent": "detector", "processingTime": 42, "confidence": 0.91, '
    '"anomaly": {"description": "p99 latency 4x baseline"}}, "delay_ms": 100}\n'
    '{"event": "progress", "payload": {"totalProcessed": 2, "anomaliesDetected": 1, "avgProcessingTime": 21.5}}\n'
    '{"event": "complete", "payload": {"processed": 2}}\n'
)


def register_resources(mcp: FastMCP, session: StreamSession) -> None:
    """Register resource handlers on the MCP server."""

    @mcp.resource("app://live-stream/help")
    def help_resource() -> str:
        """Return a short list of available resource URIs."""
        return (
            "Resources:\n"
            "- app://live-stream/help\n"
            "- app://live-stream/schemas/data-event\n"
            "- app://live-stream/schemas/progress-event\n"
            "- app://live-stream/examples/sample-events\n"
            "- app://live-stream/snapshot (full buffer, arrival order)\n"
            f"\nmax_lines bounds: [{MIN_MAX_LINES}, {MAX_MAX_LINES}]\n"
        )

    @mcp.resource("app://live-stream/examples/sample-events")
    def sample_events() -> str:
        """Return a tiny JSON-lines recording for demos and tests."""
        return SAMPLE_EVENTS

    @mcp.resource("app://live-stream/schemas/data-event")
    def data_event_schema() -> dict[str, Any]:
        """Return the JSON schema for data event payloads."""
        return DataEvent.model_json_schema(by_alias=True)

    @mcp.resource("app://live-stream/schemas/progress-event")
    def progress_event_schema() -> dict[str, Any]:
        """Return the JSON schema for progress event payloads."""
        return ProgressEvent.model_json_schema(by_alias=True)

    @mcp.resource("app://live-stream/snapshot")
    def snapshot() -> list[dict[str, Any]]:
        """Return the current buffer snapshot."""
        return session.export_snapshot()
