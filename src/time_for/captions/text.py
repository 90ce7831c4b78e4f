"""Caption sentences and text escaping."""

from __future__ import annotations

from datetime import datetime, timedelta


def ordinal(day: int) -> str:
    """Return the English ordinal for a day of the month (1st, 2nd, 11th, 21st)."""
    if 10 <= day % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"


def timestamp_caption(now: datetime, delay_seconds: int = 0) -> str:
    """Describe the current time as a sentence.

    Args:
        now: Local time the caption is generated at
        delay_seconds: Shift forward, e.g. to account for upload and paste time

    Returns:
        Sentence like "It is 14:05:09 Monday October 19th 2026"
    """
    moment = now + timedelta(seconds=delay_seconds)
    return (
        f"It is {moment:%H:%M:%S} {moment:%A} {moment:%B} "
        f"{ordinal(moment.day)} {moment:%Y}"
    )


def query_caption(query: str, custom_text: str | None = None) -> str:
    """Caption for the query clip: the custom text, or "time for <query>"."""
    if custom_text:
        return custom_text
    return f"time for {query}"


# Characters special to a filter option value, then to the filtergraph
# description around it. Each level strips one layer of backslashes.
_OPTION_SPECIAL = "\\':"
_GRAPH_SPECIAL = "\\'[],;"


def _backslash_escape(value: str, special: str) -> str:
    return "".join(f"\\{char}" if char in special else char for char in value)


def escape_filter_value(value: str) -> str:
    """Escape a value for use as a filter option inside ``-vf``.

    FFmpeg unescapes the string twice: once when splitting the filtergraph
    into filters and once when splitting a filter's options. The value is
    escaped for the option level first and the result for the graph level.

    Args:
        value: Raw option value (font name, file path)

    Returns:
        Escaped value, usable without surrounding quotes
    """
    return _backslash_escape(_backslash_escape(value, _OPTION_SPECIAL), _GRAPH_SPECIAL)
