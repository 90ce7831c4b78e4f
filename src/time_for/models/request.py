"""The validated user intent for one pipeline run."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OutputFormat(str, Enum):
    """Container of the final file."""

    WEBM = "webm"  # Uploaded as a video, fast
    GIF = "gif"  # Converted locally with a generated palette, uploaded as an image


class ConcatStrategy(str, Enum):
    """How the two captioned clips are joined."""

    STRICT = "strict"  # Concat demuxer, stream copy, needs identical codecs
    FLEXIBLE = "flexible"  # Concat filter, re-encodes, tolerates mismatched inputs


class PipelineRequest(BaseModel):
    """What the user asked for. Immutable for the run."""

    model_config = ConfigDict(frozen=True)

    query: str | None = None
    custom_text: str | None = None
    considered_gifs: int = Field(default=5, ge=1, description="Leading search results to pick from")
    delay_seconds: int = Field(default=0, description="Shift applied to the timestamp caption")
    no_upload: bool = False
    explorer: bool = False
    relative: bool = False
    open_file: bool = False
    paste: bool = Field(default=False, description="Press the paste shortcut after copying the link")
    output_format: OutputFormat = OutputFormat.WEBM
    concat_strategy: ConcatStrategy = ConcatStrategy.STRICT

    @field_validator("query", "custom_text")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value

    @property
    def has_query(self) -> bool:
        return self.query is not None
