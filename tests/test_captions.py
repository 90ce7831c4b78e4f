"""Tests for caption text and drawtext styling."""

import pytest
from datetime import datetime
from pathlib import Path

from time_for.captions.styles import CaptionStyle, DEFAULT_STYLE
from time_for.captions.text import (
    escape_filter_value,
    ordinal,
    query_caption,
    timestamp_caption,
)


class TestOrdinal:
    """Tests for ordinal day suffixes."""

    @pytest.mark.parametrize(
        "day,expected",
        [
            (1, "1st"),
            (2, "2nd"),
            (3, "3rd"),
            (4, "4th"),
            (11, "11th"),
            (12, "12th"),
            (13, "13th"),
            (21, "21st"),
            (22, "22nd"),
            (23, "23rd"),
            (30, "30th"),
            (31, "31st"),
        ],
    )
    def test_ordinal(self, day, expected):
        """Test suffixes including the teens."""
        assert ordinal(day) == expected


class TestTimestampCaption:
    """Tests for timestamp_caption."""

    def test_format(self):
        """Test the full sentence."""
        now = datetime(2026, 10, 19, 14, 5, 9)
        assert timestamp_caption(now) == "It is 14:05:09 Monday October 19th 2026"

    def test_delay_shifts_time(self):
        """Test the delay is added before formatting."""
        now = datetime(2026, 10, 19, 14, 5, 9)
        assert timestamp_caption(now, delay_seconds=60).startswith("It is 14:06:09")

    def test_delay_crosses_midnight(self):
        """Test day, weekday and ordinal follow the shifted time."""
        now = datetime(2026, 10, 31, 23, 59, 50)
        caption = timestamp_caption(now, delay_seconds=15)

        assert caption == "It is 00:00:05 Sunday November 1st 2026"

    def test_zero_padded_hours(self):
        """Test hours are two digits."""
        now = datetime(2026, 1, 2, 7, 3, 0)
        assert timestamp_caption(now) == "It is 07:03:00 Friday January 2nd 2026"


class TestQueryCaption:
    """Tests for query_caption."""

    def test_default_caption(self):
        """Test the 'time for' sentence."""
        assert query_caption("coffee") == "time for coffee"

    def test_custom_text_wins(self):
        """Test custom text replaces the sentence."""
        assert query_caption("coffee", "nap o'clock") == "nap o'clock"

    def test_empty_custom_text_ignored(self):
        """Test an empty custom text falls back."""
        assert query_caption("coffee", "") == "time for coffee"


def ffmpeg_unescape(value):
    """Undo one level of ffmpeg quoting: backslash escapes and '...' runs."""
    out, quoted, chars = [], False, iter(value)
    for char in chars:
        if quoted:
            if char == "'":
                quoted = False
            else:
                out.append(char)
        elif char == "\\":
            out.append(next(chars, ""))
        elif char == "'":
            quoted = True
        else:
            out.append(char)
    return "".join(out)


def bare_specials(value, special):
    """Return special characters that appear without a backslash in front."""
    found, chars = set(), iter(value)
    for char in chars:
        if char == "\\":
            next(chars, None)
        elif char in special:
            found.add(char)
    return found


class TestEscapeFilterValue:
    """Tests for escape_filter_value."""

    def test_plain_value_unchanged(self):
        """Test values without special characters."""
        assert escape_filter_value("/tmp/time-for/query_text.caption.txt") == (
            "/tmp/time-for/query_text.caption.txt"
        )

    @pytest.mark.parametrize(
        "value",
        [
            "C:/Fonts/font.ttf",
            "it's 100% done",
            "C:\\Users\\me\\time-for",
            "a[b],c;d",
            "it's 100% C:\\a[b],c;d",
            "ends with \\",
        ],
    )
    def test_value_survives_both_parsing_levels(self, value):
        """Test the graph parser and then the option parser give back the value."""
        escaped = escape_filter_value(value)

        assert not bare_specials(escaped, "'[],;")
        option_value = ffmpeg_unescape(escaped)
        assert not bare_specials(option_value, "':")
        assert ffmpeg_unescape(option_value) == value

    def test_colon_escaped_for_both_levels(self):
        """Test a drive letter colon does not end the option."""
        assert escape_filter_value("C:/x") == "C\\\\:/x"


class TestCaptionStyle:
    """Tests for CaptionStyle."""

    def test_default_values(self):
        """Test default style values."""
        style = CaptionStyle()

        assert style.font_family == "Montserrat"
        assert style.font_size == 22
        assert style.font_color == "white"
        assert style.border_width == 3
        assert style.margin_bottom == 20
        assert DEFAULT_STYLE == style

    def test_drawtext_params_bottom_center(self):
        """Test the text is centered and lifted off the bottom edge."""
        params = CaptionStyle().to_drawtext_params()

        assert params["x"] == "(w-text_w)/2"
        assert params["y"] == "(h-text_h)-20"
        assert params["borderw"] == 3
        assert params["fontsize"] == 22
        assert params["font"] == "Montserrat"
        assert "fontfile" not in params

    def test_font_file_takes_precedence(self):
        """Test a font file replaces the family name."""
        params = CaptionStyle(font_file="C:/Fonts/font.ttf").to_drawtext_params()

        assert params["fontfile"] == "C\\\\:/Fonts/font.ttf"
        assert "font" not in params

    def test_drawtext_filter(self):
        """Test the filter reads the caption file with expansion off."""
        text_filter = CaptionStyle().drawtext_filter(Path("/tmp/time-for/query_text.caption.txt"))

        assert text_filter.startswith("drawtext=font=Montserrat:")
        assert text_filter.endswith(":textfile=/tmp/time-for/query_text.caption.txt:expansion=none")
        assert "bordercolor=black" in text_filter
        assert ":text=" not in text_filter

    def test_drawtext_filter_escapes_textfile(self):
        """Test a textfile path with a drive colon and quote stays one option."""
        text_filter = CaptionStyle().drawtext_filter(Path("C:/it's/caption.txt"))

        assert ":textfile=C\\\\:/it\\\\\\'s/caption.txt:expansion=none" in text_filter
