"""Presentation options and their normalization."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Any

from .errors import InvalidOption
from .models import FilterLevel

logger = logging.getLogger(__name__)

DEFAULT_MAX_LINES = 1000
MIN_MAX_LINES = 100
MAX_MAX_LINES = 5000


@dataclass(frozen=True, slots=True)
class StreamOptions:
    auto_scroll: bool = True
    show_timestamps: bool = True
    max_lines: int = DEFAULT_MAX_LINES
    filter_level: FilterLevel = FilterLevel.ALL


def clamp_max_lines(value: Any) -> int:
    """Coerce ``value`` to an int within [MIN_MAX_LINES, MAX_MAX_LINES].

    Out-of-range numbers are clamped to the nearest bound. Values that are not
    integers at all raise InvalidOption.
    """
    if isinstance(value, bool):
        raise InvalidOption(f"max_lines must be an integer, got {value!r}")
    try:
        n = int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidOption(f"max_lines must be an integer, got {value!r}") from exc
    if isinstance(value, float) and n != value:
        raise InvalidOption(f"max_lines must be an integer, got {value!r}")

    clamped = min(MAX_MAX_LINES, max(MIN_MAX_LINES, n))
    if clamped != n:
        logger.warning(
            "max_lines=%s outside [%s, %s]; clamped to %s",
            n,
            MIN_MAX_LINES,
            MAX_MAX_LINES,
            clamped,
        )
    return clamped


def parse_filter_level(value: FilterLevel | str) -> FilterLevel:
    """Parse a filter level name (case-insensitive)."""
    if isinstance(value, FilterLevel):
        return value
    name = str(value).strip().upper()
    try:
        return FilterLevel(name)
    except ValueError as e:
        valid = ", ".join(f.value for f in FilterLevel)
        raise InvalidOption(f"Unknown filter level '{value}'. Valid values: {valid}.") from e


def update_options(options: StreamOptions, **changes: Any) -> StreamOptions:
    """Return a copy of ``options`` with normalized ``changes`` applied.

    ``None`` values are ignored so callers can pass through optional inputs.
    """
    normalized: dict[str, Any] = {}
    for key, value in changes.items():
        if value is None:
            continue
        if key == "max_lines":
            normalized[key] = clamp_max_lines(value)
        elif key == "filter_level":
            normalized[key] = parse_filter_level(value)
        elif key in ("auto_scroll", "show_timestamps"):
            normalized[key] = bool(value)
        else:
            raise InvalidOption(f"Unknown option '{key}'")
    if not normalized:
        return options
    return replace(options, **normalized)


def resolve_stream_options(options: StreamOptions | None = None) -> StreamOptions:
    """Return options with optional env overrides applied."""
    if options is None:
        options = StreamOptions()

    env_lines = os.getenv("LIVE_STREAM_MAX_LINES")
    if env_lines:
        try:
            options = update_options(options, max_lines=env_lines)
        except InvalidOption as exc:
            raise InvalidOption("LIVE_STREAM_MAX_LINES must be an integer") from exc

    env_filter = os.getenv("LIVE_STREAM_FILTER_LEVEL")
    if env_filter:
        try:
            options = update_options(options, filter_level=env_filter)
        except InvalidOption as exc:
            raise InvalidOption(f"LIVE_STREAM_FILTER_LEVEL is invalid: {exc}") from exc

    return options
