"""Pipeline states and the result of a run."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from time_for.models.results import HostedLink


class PipelineState(str, Enum):
    """Stages of a run, in order. FAILED is reachable from any of them."""

    IDLE = "idle"
    SEARCHING = "searching"
    DOWNLOADING = "downloading"
    SCALING = "scaling"
    CAPTIONING = "captioning"
    STITCHING = "stitching"
    UPLOADING = "uploading"
    PRESENTING = "presenting"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineState.DONE, PipelineState.FAILED)


@dataclass
class PipelineOutcome:
    """What a run produced.

    Attributes:
        run_id: Identifier of the run, also used in scratch file names
        final_path: The finished clip on disk
        link: Share link, None if upload was skipped or failed
        upload_error: Why the upload failed, if it did
        states: States visited, in order
    """

    run_id: str
    final_path: Path | None = None
    link: HostedLink | None = None
    upload_error: str | None = None
    states: list[PipelineState] = field(default_factory=list)

    @property
    def uploaded(self) -> bool:
        return self.link is not None

    @property
    def shareable(self) -> str:
        """The link if there is one, otherwise the local path."""
        if self.link is not None:
            return self.link.url
        return str(self.final_path) if self.final_path else ""
