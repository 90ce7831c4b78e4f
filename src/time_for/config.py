"""Configuration loading and management for time-for.

Settings live in ``~/.time-for/config.json``; API keys may instead come
from the ``TENOR_API_KEY`` and ``IMGUR_CLIENT_ID`` environment variables,
which win over the file.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from pydantic import BaseModel, Field

from time_for.captions.styles import CaptionStyle
from time_for.errors import ConfigurationError
from time_for.ffmpeg_binary import FFmpegConfig
from time_for.logging import get_logger

logger = get_logger(__name__)

WORK_DIR_NAME = "time-for"

ENV_TENOR_KEY = "TENOR_API_KEY"
ENV_IMGUR_CLIENT_ID = "IMGUR_CLIENT_ID"


class SearchSettings(BaseModel):
    """Tenor search settings."""

    base_url: str = "https://tenor.googleapis.com/v2/search"
    # Tenor media format whose URL is downloaded
    media_format: str = "webm"
    default_limit: int = Field(default=10, ge=1)
    # The clip that shows the time
    reference_query: str = "look at time"
    reference_candidates: int = Field(default=16, ge=1)


class UploadSettings(BaseModel):
    """Imgur upload settings."""

    url: str = "https://api.imgur.com/3/upload"


class CaptionSettings(BaseModel):
    """Caption overlay settings."""

    font_file: str | None = None
    font_family: str = "Montserrat"
    font_size: int = Field(default=22, gt=0)
    font_color: str = "white"
    border_color: str = "black"
    border_width: int = Field(default=3, ge=0)
    margin_bottom: int = Field(default=20, ge=0)

    def to_style(self) -> CaptionStyle:
        return CaptionStyle(**self.model_dump())


class TimeForConfig(BaseModel):
    """Top-level configuration."""

    tenor_api_key: str | None = None
    imgur_client_id: str | None = None
    search: SearchSettings = Field(default_factory=SearchSettings)
    upload: UploadSettings = Field(default_factory=UploadSettings)
    caption: CaptionSettings = Field(default_factory=CaptionSettings)
    ffmpeg: FFmpegConfig = Field(default_factory=FFmpegConfig)
    target_width: int = Field(default=480, gt=0)
    target_height: int = Field(default=270, gt=0)
    # Overrides the temp/relative scratch directory when set
    work_dir: str | None = None
    max_parallel: int = Field(default=4, ge=1)
    # None means no timeout on HTTP requests
    request_timeout: float | None = Field(default=None, gt=0)
    # Press the paste shortcut after copying the link (--paste overrides)
    auto_paste: bool = False

    @property
    def target_size(self) -> tuple[int, int]:
        return (self.target_width, self.target_height)

    def require_tenor_key(self) -> str:
        """Return the Tenor API key.

        Raises:
            ConfigurationError: If no key is configured
        """
        if not self.tenor_api_key:
            raise ConfigurationError(
                f"No Tenor API key configured. Set {ENV_TENOR_KEY} or add "
                f"'tenor_api_key' to {get_config_path()}"
            )
        return self.tenor_api_key


def get_config_dir() -> Path:
    """Get the per-user configuration directory (``~/.time-for``)."""
    return Path.home() / ".time-for"


def get_config_path() -> Path:
    return get_config_dir() / "config.json"


def load_config(path: Path | None = None) -> TimeForConfig:
    """Load configuration from JSON, then apply environment overrides.

    Args:
        path: Config file; defaults to ``~/.time-for/config.json``. A missing
            file is not an error.

    Returns:
        TimeForConfig

    Raises:
        ConfigurationError: If the file is not valid JSON or has invalid values
    """
    config_path = path or get_config_path()
    data: dict = {}

    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Could not read config file: {e}",
                context={"path": str(config_path)},
            ) from e

    if os.environ.get(ENV_TENOR_KEY):
        data["tenor_api_key"] = os.environ[ENV_TENOR_KEY]
    if os.environ.get(ENV_IMGUR_CLIENT_ID):
        data["imgur_client_id"] = os.environ[ENV_IMGUR_CLIENT_ID]

    try:
        return TimeForConfig(**data)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid configuration: {e}",
            context={"path": str(config_path)},
        ) from e


def save_config(config: TimeForConfig, path: Path | None = None) -> Path:
    """Save configuration to JSON with an atomic write.

    Args:
        config: Configuration to save
        path: Target file; defaults to ``~/.time-for/config.json``

    Returns:
        Path to the saved config file

    Raises:
        ConfigurationError: If the file cannot be written
    """
    config_path = path or get_config_path()
    temp_path = config_path.with_name(config_path.name + ".tmp")

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(config.model_dump(), f, indent=2)
        temp_path.replace(config_path)
    except OSError as e:
        raise ConfigurationError(
            f"Could not write config file: {e}",
            context={"path": str(config_path)},
        ) from e
    return config_path


def get_work_dir(config: TimeForConfig, relative: bool = False) -> Path:
    """Get the scratch directory for a run.

    Args:
        config: Loaded configuration
        relative: Use ``./time-for`` instead of the system temp directory

    Returns:
        Directory path (not created here)
    """
    if config.work_dir:
        if relative:
            logger.warning(
                "Configured work_dir takes precedence over --relative",
                extra={"work_dir": config.work_dir},
            )
        return Path(config.work_dir)
    if relative:
        return Path.cwd() / WORK_DIR_NAME
    return Path(tempfile.gettempdir()) / WORK_DIR_NAME
