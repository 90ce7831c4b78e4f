"""Caption styling for the drawtext overlay.

Captions are always drawn horizontally centered near the bottom edge of
the frame, with a dark outline so they stay readable on any clip.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from time_for.captions.text import escape_filter_value


@dataclass(frozen=True)
class CaptionStyle:
    """Configuration for caption appearance.

    Attributes:
        font_file: Path to a TrueType font; takes precedence over font_family
        font_family: Font name resolved by fontconfig when no file is given
        font_size: Font size in pixels
        font_color: FFmpeg color name or 0xRRGGBB value
        border_color: Outline color
        border_width: Outline width in pixels
        margin_bottom: Distance between text and the bottom edge in pixels
    """

    font_file: str | None = None
    font_family: str = "Montserrat"
    font_size: int = 22
    font_color: str = "white"
    border_color: str = "black"
    border_width: int = 3
    margin_bottom: int = 20

    def to_drawtext_params(self) -> dict[str, str | int]:
        """Get drawtext parameters, excluding the text itself.

        Returns:
            Ordered dict of drawtext option names to values
        """
        params: dict[str, str | int] = {}
        if self.font_file:
            params["fontfile"] = escape_filter_value(self.font_file)
        else:
            params["font"] = escape_filter_value(self.font_family)

        params["fontcolor"] = self.font_color
        params["fontsize"] = self.font_size
        params["borderw"] = self.border_width
        params["bordercolor"] = self.border_color
        params["x"] = "(w-text_w)/2"
        params["y"] = f"(h-text_h)-{self.margin_bottom}"
        return params

    def drawtext_filter(self, textfile: Path) -> str:
        """Build the complete ``drawtext=...`` filter for a caption file.

        The caption is read from ``textfile`` with expansion turned off, so
        quotes, percent signs and backslashes in it are drawn as typed.

        Args:
            textfile: UTF-8 file holding the caption

        Returns:
            Filter string for ``-vf``
        """
        params = {
            **self.to_drawtext_params(),
            "textfile": escape_filter_value(Path(textfile).as_posix()),
            "expansion": "none",
        }
        options = ":".join(f"{k}={v}" for k, v in params.items())
        return f"drawtext={options}"


DEFAULT_STYLE = CaptionStyle()
