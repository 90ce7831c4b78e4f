"""FFmpeg wrapper for captioning, scaling and stitching clips.

Every operation starts one ffmpeg process and returns a TranscodeHandle
right away, so unrelated operations run side by side and the caller
decides when to wait for them.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from time_for.captions.styles import CaptionStyle, DEFAULT_STYLE
from time_for.errors import (
    MediaIoError,
    ProcessIoError,
    ScalingOrProcessingError,
    map_spawn_error,
)
from time_for.ffmpeg_binary import FFmpegConfig, get_ffmpeg_info, get_ffmpeg_path, subprocess_flags
from time_for.logging import get_logger
from time_for.models.request import ConcatStrategy

logger = get_logger(__name__)

DEFAULT_SIZE = (480, 270)

# Common flags: overwrite, no prompts, only real errors on stderr
_BASE_ARGS = ["-hide_banner", "-nostdin", "-loglevel", "error", "-y"]

_PALETTE_FILTER = "[0:v] split [a][b];[a] palettegen [p];[b][p] paletteuse"
_CONCAT_FILTER = "[0:v] [1:v] concat=n=2:v=1:unsafe=true [v]"

# How much of ffmpeg's stderr to keep in error context
_STDERR_TAIL = 500


class TranscodeKind(str, Enum):
    """Kind of transformation a job performs."""

    CAPTION = "caption"
    SCALE = "scale"
    CONVERT = "convert"
    CONCAT_FLEXIBLE = "concat_flexible"
    CONCAT_STRICT = "concat_strict"


@dataclass
class TranscodeJob:
    """A single ffmpeg invocation.

    Attributes:
        kind: Transformation performed
        inputs: Input files in order
        output: File ffmpeg writes
        text: Caption text, kept for logging (CAPTION only)
        textfile: File drawtext reads the caption from (CAPTION only)
        size: Target (width, height) (SCALE only)
        manifest: Concat list file (CONCAT_STRICT only)
        style: Caption styling (CAPTION only)
    """

    kind: TranscodeKind
    inputs: tuple[Path, ...]
    output: Path
    text: str | None = None
    textfile: Path | None = None
    size: tuple[int, int] | None = None
    manifest: Path | None = None
    style: CaptionStyle = field(default=DEFAULT_STYLE)

    def to_args(self) -> list[str]:
        """Build ffmpeg arguments (without the executable)."""
        args = list(_BASE_ARGS)

        if self.kind == TranscodeKind.CAPTION:
            args += ["-i", str(self.inputs[0])]
            if self.textfile is None:
                raise ValueError("Captioning needs a caption text file")
            args += ["-vf", self.style.drawtext_filter(self.textfile)]

        elif self.kind == TranscodeKind.SCALE:
            width, height = self.size or DEFAULT_SIZE
            args += ["-i", str(self.inputs[0])]
            # Stream copy: no re-encode
            args += ["-s", f"{width}x{height}", "-c", "copy"]

        elif self.kind == TranscodeKind.CONVERT:
            args += ["-i", str(self.inputs[0])]
            args += ["-filter_complex", _PALETTE_FILTER]

        elif self.kind == TranscodeKind.CONCAT_FLEXIBLE:
            for path in self.inputs:
                args += ["-i", str(path)]
            args += ["-filter_complex", _CONCAT_FILTER, "-map", "[v]"]

        elif self.kind == TranscodeKind.CONCAT_STRICT:
            if self.manifest is None:
                raise ValueError("Strict concatenation needs a manifest file")
            args += ["-safe", "0", "-f", "concat", "-i", str(self.manifest)]
            args += ["-c", "copy"]

        args.append(str(self.output))
        return args


class TranscodeHandle:
    """A running ffmpeg job that can be waited on independently."""

    def __init__(self, job: TranscodeJob, process: subprocess.Popen):
        self.job = job
        self._process = process
        self._returncode: int | None = None
        self._stderr = ""

    @property
    def pid(self) -> int:
        return self._process.pid

    def done(self) -> bool:
        """Whether the process has exited (never blocks)."""
        return self._returncode is not None or self._process.poll() is not None

    def wait(self) -> int:
        """Block until ffmpeg exits.

        Returns:
            The process return code

        Raises:
            ProcessIoError: If waiting on the process fails
        """
        if self._returncode is None:
            try:
                _, stderr = self._process.communicate()
            except OSError as e:
                raise ProcessIoError(
                    f"Lost track of ffmpeg while waiting for {self.job.kind.value}: {e}",
                    context={"output": str(self.job.output)},
                ) from e
            self._stderr = stderr or ""
            self._returncode = self._process.returncode
        return self._returncode

    def result(self) -> Path:
        """Wait for the job and return its output file.

        Raises:
            ScalingOrProcessingError: If ffmpeg exited with a nonzero status
            ProcessIoError: If waiting on the process fails
        """
        code = self.wait()
        if code != 0:
            context = {"output": str(self.job.output)}
            if self._stderr.strip():
                context["stderr"] = self._stderr.strip()[-_STDERR_TAIL:]
            raise ScalingOrProcessingError(code, self.job.kind.value, context=context)

        logger.debug(
            f"ffmpeg {self.job.kind.value} finished",
            extra={"output": str(self.job.output)},
        )
        return self.job.output


def write_concat_manifest(manifest: Path, files: list[Path]) -> Path:
    """Write a concat demuxer list with one ``file '<path>'`` line per input.

    Paths are made absolute because the demuxer resolves relative entries
    against the manifest's own directory.
    """
    lines = []
    for path in files:
        quoted = Path(path).resolve().as_posix().replace("'", "'\\''")
        lines.append(f"file '{quoted}'")

    try:
        manifest.parent.mkdir(parents=True, exist_ok=True)
        manifest.write_text("\n".join(lines) + "\n", encoding="utf-8")
    except OSError as e:
        raise MediaIoError(
            f"Could not write concat list: {e}",
            context={"manifest": str(manifest)},
        ) from e
    return manifest


def write_caption_file(path: Path, text: str) -> Path:
    """Write caption text for drawtext's ``textfile`` option.

    drawtext reads the file as is, so no trailing newline is added.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise MediaIoError(
            f"Could not write caption file: {e}",
            context={"path": str(path)},
        ) from e
    return path


class MediaTranscoder:
    """Wrapper around the ffmpeg executable.

    Construction never fails; use ``is_available`` before starting work
    so a missing ffmpeg is reported once instead of by every job.
    """

    def __init__(
        self,
        config: FFmpegConfig | None = None,
        style: CaptionStyle | None = None,
        size: tuple[int, int] = DEFAULT_SIZE,
    ) -> None:
        self._config = config or FFmpegConfig()
        self._ffmpeg_path = get_ffmpeg_path(self._config)
        self.style = style or DEFAULT_STYLE
        self.size = size

    @property
    def ffmpeg_path(self) -> str:
        """Executable that will be spawned."""
        return self._ffmpeg_path or "ffmpeg"

    def is_available(self) -> bool:
        """Check that ffmpeg can be found and runs."""
        info = get_ffmpeg_info(self._config)
        if info.available:
            self._ffmpeg_path = info.path
            logger.debug(
                f"Using ffmpeg {info.version}",
                extra={"path": info.path, "source": info.source},
            )
        return info.available

    def submit(self, job: TranscodeJob) -> TranscodeHandle:
        """Start ffmpeg for a job.

        Raises:
            MediaIoError: If the output directory cannot be created
            ToolNotFoundError: If the executable does not exist
            ProcessIoError: If the process could not be started otherwise
        """
        try:
            job.output.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise MediaIoError(
                f"Could not create output directory: {e}",
                context={"path": str(job.output.parent)},
            ) from e
        cmd = [self.ffmpeg_path] + job.to_args()
        logger.debug(f"Spawning ffmpeg for {job.kind.value}", extra={"cmd": " ".join(cmd)})

        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
                creationflags=subprocess_flags(),
            )
        except OSError as e:
            raise map_spawn_error(e, self.ffmpeg_path, job.kind.value) from e

        return TranscodeHandle(job, process)

    def caption(
        self,
        input_path: Path,
        text: str,
        output_path: Path,
        style: CaptionStyle | None = None,
    ) -> TranscodeHandle:
        """Overlay text at the bottom center of the clip.

        The text is written to ``<output stem>.caption.txt`` next to the
        output and drawn verbatim from there.
        """
        output_path = Path(output_path)
        textfile = write_caption_file(output_path.with_name(f"{output_path.stem}.caption.txt"), text)
        return self.submit(
            TranscodeJob(
                kind=TranscodeKind.CAPTION,
                inputs=(Path(input_path),),
                output=output_path,
                text=text,
                textfile=textfile,
                style=style or self.style,
            )
        )

    def scale(
        self,
        input_path: Path,
        output_path: Path,
        size: tuple[int, int] | None = None,
    ) -> TranscodeHandle:
        """Resize the clip using stream copy (default 480x270).

        Both clips must share one size before strict concatenation.
        """
        return self.submit(
            TranscodeJob(
                kind=TranscodeKind.SCALE,
                inputs=(Path(input_path),),
                output=Path(output_path),
                size=size or self.size,
            )
        )

    def convert_to_gif(self, input_path: Path) -> TranscodeHandle:
        """Convert to a palette-optimized GIF next to the input (same stem)."""
        input_path = Path(input_path)
        return self.submit(
            TranscodeJob(
                kind=TranscodeKind.CONVERT,
                inputs=(input_path,),
                output=input_path.with_suffix(".gif"),
            )
        )

    def concat_flexible(self, first: Path, second: Path, output_path: Path) -> TranscodeHandle:
        """Concatenate with the concat filter.

        Re-encodes; the second clip is stretched to the first clip's size.
        """
        return self.submit(
            TranscodeJob(
                kind=TranscodeKind.CONCAT_FLEXIBLE,
                inputs=(Path(first), Path(second)),
                output=Path(output_path),
            )
        )

    def concat_strict(
        self,
        first: Path,
        second: Path,
        output_path: Path,
        manifest: Path,
    ) -> TranscodeHandle:
        """Concatenate with the concat demuxer (stream copy).

        Much faster than ``concat_flexible`` but both clips need identical
        codec parameters. ``manifest`` is overwritten; give every run its own.
        """
        first, second = Path(first), Path(second)
        write_concat_manifest(Path(manifest), [first, second])
        return self.submit(
            TranscodeJob(
                kind=TranscodeKind.CONCAT_STRICT,
                inputs=(first, second),
                output=Path(output_path),
                manifest=Path(manifest),
            )
        )

    def concat(
        self,
        first: Path,
        second: Path,
        output_path: Path,
        strategy: ConcatStrategy = ConcatStrategy.STRICT,
        manifest: Path | None = None,
    ) -> TranscodeHandle:
        """Concatenate two clips, first then second, with the chosen strategy."""
        if strategy == ConcatStrategy.FLEXIBLE:
            return self.concat_flexible(first, second, output_path)
        if manifest is None:
            manifest = Path(output_path).with_name("concat_list.txt")
        return self.concat_strict(first, second, output_path, manifest)
