"""Data models for time-for.

Plain dataclasses for paths and results, Pydantic for the validated request.
"""

from __future__ import annotations

from time_for.models.asset import MediaAsset
from time_for.models.outcome import PipelineOutcome, PipelineState
from time_for.models.request import ConcatStrategy, OutputFormat, PipelineRequest
from time_for.models.results import HostedLink, SearchResult

__all__ = [
    "MediaAsset",
    "PipelineOutcome",
    "PipelineState",
    "ConcatStrategy",
    "OutputFormat",
    "PipelineRequest",
    "HostedLink",
    "SearchResult",
]
