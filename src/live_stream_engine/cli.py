from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from live_stream_engine.channels import ReplayChannel
from live_stream_engine.core.errors import InvalidOption, StreamEngineError
from live_stream_engine.core.export import write_snapshot
from live_stream_engine.core.models import FilterLevel, Notification, StreamEntry
from live_stream_engine.core.options import DEFAULT_MAX_LINES, parse_filter_level
from live_stream_engine.core.session import StreamSession


def _parse_filter(s: str) -> FilterLevel:
    try:
        return parse_filter_level(s)
    except InvalidOption as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _print_notification(n: Notification) -> None:
    print(f"[{n.level}] {n.message}", file=sys.stderr)


def _format_entry(e: StreamEntry, *, show_timestamps: bool) -> str:
    parts: list[str] = []
    if show_timestamps:
        parts.append(f"[{e.timestamp.strftime('%H:%M:%S')}]")
    parts.append(e.kind.value.upper())
    if e.agent:
        parts.append(f"({e.agent})")
    parts.append(e.message)
    if e.processing_time_ms is not None:
        parts.append(f"{e.processing_time_ms:g}ms")
    if e.confidence is not None:
        parts.append(f"conf={e.confidence * 100:.1f}%")
    line = " ".join(parts)
    if e.anomaly:
        line += f"\n    anomaly: {e.anomaly.get('description', e.anomaly)}"
    return line


async def _replay(args: argparse.Namespace) -> StreamSession:
    session = StreamSession(notifier=_print_notification)
    session.configure(
        max_lines=args.max_lines,
        filter_level=args.filter,
        show_timestamps=args.show_timestamps,
    )
    channel = ReplayChannel(Path(args.events), delay_ms=args.delay_ms)
    channel.connect()
    session.attach(channel)
    session.start()
    try:
        await channel.join()
    finally:
        session.stop()
        channel.close()

    if args.export:
        path = await write_snapshot(session.aggregator, args.export)
        print(f"Exported {len(session.aggregator)} entries to {path}", file=sys.stderr)
    return session


def main() -> None:
    p = argparse.ArgumentParser(description="Replay a recorded log-analysis event stream.")
    p.add_argument("events", help="JSON-lines recording (optionally .gz)")
    p.add_argument("--max-lines", type=int, default=DEFAULT_MAX_LINES, help="Buffer capacity (100-5000)")
    p.add_argument("--filter", type=_parse_filter, default=FilterLevel.ALL, help="ALL, ANOMALY, ERROR, WARNING or INFO")
    p.add_argument("--delay-ms", type=float, default=0.0, help="Pause between events without their own delay")
    p.add_argument("--export", default=None, help="Directory to write stream_data_<date>.json into")
    p.add_argument("--no-timestamps", dest="show_timestamps", action="store_false")
    p.add_argument("-v", "--verbose", action="store_true")
    p.set_defaults(show_timestamps=True)

    args = p.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        session = asyncio.run(_replay(args))
    except FileNotFoundError as e:
        print(str(e), file=sys.stderr)
        raise SystemExit(2)
    except (ValueError, StreamEngineError) as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(2)

    entries = list(session.query())
    for e in entries:
        print(_format_entry(e, show_timestamps=session.options.show_timestamps))

    stats = session.aggregator.stats
    print(
        f"\nShowing {len(entries)} / {len(session.aggregator)} entries. "
        f"processed={stats.total_processed} anomalies={stats.anomalies_detected} "
        f"avg={stats.avg_processing_time_ms:g}ms"
    )
    if session.last_error is not None:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
