"""Media asset paths.

A MediaAsset names one logical clip by its downloaded file and derives
the paths of its intermediate variants from it.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

DEFAULT_EXTENSION = "webm"


@dataclass(frozen=True)
class MediaAsset:
    """A logical clip and the paths of its transformed variants.

    Attributes:
        base: Path the clip is downloaded to
    """

    base: Path

    def __post_init__(self) -> None:
        object.__setattr__(self, "base", Path(self.base))

    @property
    def captioned(self) -> Path:
        """The clip with its caption burned in ("<stem>_text.<ext>")."""
        return self._with_suffix("_text")

    @property
    def scaled(self) -> Path:
        """The clip scaled to the common size ("<stem>_scaled.<ext>")."""
        return self._with_suffix("_scaled")

    def _with_suffix(self, addition: str) -> Path:
        extension = self.base.suffix.lstrip(".") or DEFAULT_EXTENSION
        return self.base.with_name(f"{self.base.stem}{addition}.{extension}")
