"""Error hierarchy for time-for.

Every component raises its own tagged subclass of ``TimeForError`` and
lower-level exceptions are mapped at the component boundary with
``raise ... from`` so the original cause stays available for diagnostics:

- transcoder: ``ToolNotFoundError``, ``ProcessIoError``,
  ``ScalingOrProcessingError``
- search: ``TransportError``, ``ApiError``, ``NoResultsError``
- download / filesystem: ``DownloadError``, ``MediaIoError``
- upload: ``UploadError`` (recovered by the pipeline)
"""

from __future__ import annotations

from enum import Enum
from typing import Any

import requests

from time_for.logging import get_logger

logger = get_logger(__name__)


class ErrorCategory(str, Enum):
    """Categories of errors for handling decisions."""

    TRANSIENT = "transient"  # Network, timeout - environmental
    VALIDATION = "validation"  # Bad input or nothing found
    CONFIGURATION = "configuration"  # Missing tool or key - user can fix
    RESOURCE = "resource"  # File system problems
    EXTERNAL = "external"  # Remote service or ffmpeg rejected the work
    INTERNAL = "internal"  # Anything unexpected


class TimeForError(Exception):
    """Base exception for time-for errors.

    Attributes:
        message: Human-readable error message
        category: Error category for handling
        context: Additional context information
        recoverable: Whether retrying might succeed
    """

    category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        context: dict | None = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} (context: {self.context})"
        return self.message


class ConfigurationError(TimeForError):
    """Missing or invalid configuration, e.g. no Tenor API key."""

    category = ErrorCategory.CONFIGURATION

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context, recoverable=False)


# --- transcoder -------------------------------------------------------------


class TranscoderError(TimeForError):
    """Base class for failures of the external video tool."""


class ToolNotFoundError(TranscoderError):
    """The ffmpeg executable is not installed or not on PATH."""

    category = ErrorCategory.CONFIGURATION

    def __init__(self, message: str = "ffmpeg could not be found in PATH", context: dict | None = None):
        super().__init__(message, context, recoverable=False)


class ProcessIoError(TranscoderError):
    """Spawning or waiting on ffmpeg failed for a reason other than absence."""

    category = ErrorCategory.INTERNAL


class ScalingOrProcessingError(TranscoderError):
    """ffmpeg ran but exited with a nonzero status.

    Attributes:
        exit_code: Process exit code, ``None`` if killed by a signal
    """

    category = ErrorCategory.EXTERNAL

    def __init__(self, exit_code: int | None, operation: str = "process", context: dict | None = None):
        code = "None" if exit_code is None else str(exit_code)
        super().__init__(
            f"ffmpeg could not {operation} the clip (exit code {code})",
            context,
            recoverable=False,
        )
        self.exit_code = exit_code
        self.operation = operation


# --- search -----------------------------------------------------------------


class SearchError(TimeForError):
    """Base class for clip search failures."""


class TransportError(SearchError):
    """Network, timeout or decoding failure talking to the search API."""

    category = ErrorCategory.TRANSIENT

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context, recoverable=True)


class ApiError(SearchError):
    """The search API answered with a structured error payload.

    Attributes:
        code: Error code reported by the API
        api_message: Error message reported by the API
    """

    category = ErrorCategory.EXTERNAL

    def __init__(self, code: int | str, api_message: str, context: dict | None = None):
        super().__init__(
            f"Tenor responded with the error {code}: {api_message!r}",
            context,
            recoverable=False,
        )
        self.code = code
        self.api_message = api_message


class NoResultsError(SearchError):
    """The considered pool of search results was empty."""

    category = ErrorCategory.VALIDATION

    def __init__(self, query: str, context: dict | None = None):
        super().__init__(f'Could not find a GIF for query: "{query}"', context)
        self.query = query


# --- files ------------------------------------------------------------------


class MediaIoError(TimeForError):
    """File system failure while preparing or moving media files."""

    category = ErrorCategory.RESOURCE


class DownloadError(MediaIoError):
    """Fetching a clip to disk failed (network or file system)."""


# --- upload -----------------------------------------------------------------


class UploadError(TimeForError):
    """Upload failed or the hosting API answered with something unusable."""

    category = ErrorCategory.EXTERNAL

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context, recoverable=True)


# --- boundary mapping -------------------------------------------------------


def map_spawn_error(error: OSError, tool: str, operation: str) -> TranscoderError:
    """Map an exception raised while spawning a subprocess.

    Args:
        error: Exception raised by ``subprocess``
        tool: Executable that was being started
        operation: Transcode operation being performed

    Returns:
        ``ToolNotFoundError`` if the executable is missing, otherwise
        ``ProcessIoError``
    """
    context = {"tool": tool, "operation": operation}
    if isinstance(error, FileNotFoundError):
        return ToolNotFoundError(f"{tool} could not be found in PATH", context=context)
    return ProcessIoError(f"Could not run {tool} for {operation}: {error}", context=context)


def map_request_error(error: Exception, service: str, operation: str) -> TransportError:
    """Map a ``requests`` or JSON decoding failure to a ``TransportError``.

    Args:
        error: Original error
        service: Name of the remote service
        operation: Operation being performed

    Returns:
        TransportError describing the failure
    """
    context = {"service": service, "operation": operation}
    if isinstance(error, requests.Timeout):
        reason = "request timed out"
    elif isinstance(error, requests.ConnectionError):
        reason = "could not connect"
    elif isinstance(error, ValueError):
        reason = "response could not be decoded"
    else:
        reason = "request failed"
    return TransportError(f"{service} {operation}: {reason}: {error}", context=context)


def format_error_for_display(error: BaseException) -> str:
    """Format an error message for the user, including its cause.

    Args:
        error: Error to format

    Returns:
        Human-readable error message
    """
    if isinstance(error, TimeForError):
        text = f"[{error.category.value}] {error.message}"
        if error.context:
            context_str = ", ".join(f"{k}={v}" for k, v in error.context.items())
            text += f" ({context_str})"
    else:
        text = f"[error] {type(error).__name__}: {error}"

    cause = error.__cause__
    if cause is not None:
        text += f"\n  caused by {type(cause).__name__}: {cause}"
    return text


class ErrorContext:
    """Context manager that logs failures of a named operation.

    The exception is never suppressed.
    """

    def __init__(self, operation: str, context: dict[str, Any] | None = None):
        self.operation = operation
        self.context = context or {}
        self.error: BaseException | None = None

    def __enter__(self) -> "ErrorContext":
        logger.debug(f"Starting operation: {self.operation}")
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> bool:
        if exc_val is not None:
            self.error = exc_val
            logger.error(
                f"Error in {self.operation}: {exc_val}",
                extra={
                    "operation": self.operation,
                    "error_type": type(exc_val).__name__,
                    **self.context,
                },
            )
        else:
            logger.debug(f"Completed operation: {self.operation}")
        return False
