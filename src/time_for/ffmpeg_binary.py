"""Locating and probing the FFmpeg executable.

Lookup order:
1. Explicit path from configuration
2. ``ffmpeg`` on the system PATH
3. The binary bundled by imageio-ffmpeg (``pip install time-for[bundled]``)
"""

from __future__ import annotations

import platform
import shutil
import subprocess
from pathlib import Path
from typing import NamedTuple

from pydantic import BaseModel, Field

from time_for.logging import get_logger

logger = get_logger(__name__)


class FFmpegInfo(NamedTuple):
    """Information about the FFmpeg installation."""

    path: str
    version: str
    available: bool
    source: str  # "custom", "system", "imageio" or "not_found"


class FFmpegConfig(BaseModel):
    """Where to look for the FFmpeg executable."""

    custom_ffmpeg_path: str | None = Field(
        default=None,
        description="Explicit path to the FFmpeg executable",
    )
    allow_bundled: bool = Field(
        default=True,
        description="Fall back to the imageio-ffmpeg binary when FFmpeg is not on PATH",
    )


def subprocess_flags() -> int:
    """Platform-specific creation flags so Windows does not flash a console."""
    if platform.system() == "Windows":
        return subprocess.CREATE_NO_WINDOW
    return 0


def _get_system_ffmpeg() -> str | None:
    return shutil.which("ffmpeg")


def _get_ffmpeg_from_imageio() -> str | None:
    try:
        import imageio_ffmpeg
    except ImportError:
        return None
    try:
        return imageio_ffmpeg.get_ffmpeg_exe()
    except RuntimeError:
        return None


def _locate(config: FFmpegConfig) -> tuple[str | None, str]:
    if config.custom_ffmpeg_path:
        if Path(config.custom_ffmpeg_path).exists():
            return config.custom_ffmpeg_path, "custom"
        logger.warning(
            "Configured ffmpeg path does not exist, falling back to PATH",
            extra={"path": config.custom_ffmpeg_path},
        )

    system_path = _get_system_ffmpeg()
    if system_path:
        return system_path, "system"

    if config.allow_bundled:
        bundled = _get_ffmpeg_from_imageio()
        if bundled:
            return bundled, "imageio"

    return None, "not_found"


def get_ffmpeg_path(config: FFmpegConfig | None = None) -> str | None:
    """Get the path to the FFmpeg executable.

    Args:
        config: Optional lookup configuration

    Returns:
        Path to FFmpeg, or None if it could not be found
    """
    path, _ = _locate(config or FFmpegConfig())
    return path


def _get_ffmpeg_version(ffmpeg_path: str) -> str | None:
    """Run ``ffmpeg -version`` and pull the version token from the first line.

    Returns:
        Version string, or None if FFmpeg could not be run successfully
    """
    try:
        result = subprocess.run(
            [ffmpeg_path, "-version"],
            capture_output=True,
            text=True,
            timeout=10,
            creationflags=subprocess_flags(),
        )
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.debug(f"ffmpeg version check failed: {e}", extra={"path": ffmpeg_path})
        return None

    if result.returncode != 0:
        return None

    # e.g. "ffmpeg version 6.0-full_build-www.gyan.dev Copyright ..."
    first_line = result.stdout.split("\n")[0]
    if "version" in first_line.lower():
        parts = first_line.split("version", 1)
        tokens = parts[1].split()
        if tokens:
            return tokens[0]
    return first_line.strip() or "unknown"


def get_ffmpeg_info(config: FFmpegConfig | None = None) -> FFmpegInfo:
    """Locate FFmpeg and check that it actually runs.

    Args:
        config: Optional lookup configuration

    Returns:
        FFmpegInfo; ``available`` is True only if ``ffmpeg -version`` succeeded
    """
    path, source = _locate(config or FFmpegConfig())
    if path is None:
        return FFmpegInfo(path="", version="", available=False, source="not_found")

    version = _get_ffmpeg_version(path)
    if version is None:
        return FFmpegInfo(path=path, version="", available=False, source=source)

    return FFmpegInfo(path=path, version=version, available=True, source=source)
