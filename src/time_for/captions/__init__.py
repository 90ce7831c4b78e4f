"""Caption text and styling for the drawtext overlay."""

from time_for.captions.styles import CaptionStyle, DEFAULT_STYLE
from time_for.captions.text import (
    escape_filter_value,
    ordinal,
    query_caption,
    timestamp_caption,
)

__all__ = [
    "CaptionStyle",
    "DEFAULT_STYLE",
    "escape_filter_value",
    "ordinal",
    "query_caption",
    "timestamp_caption",
]
