"""Tests for error handling and logging modules."""

import json
import logging
import pytest
from unittest.mock import Mock

import requests

from time_for.errors import (
    ApiError,
    ConfigurationError,
    DownloadError,
    ErrorCategory,
    ErrorContext,
    MediaIoError,
    NoResultsError,
    ProcessIoError,
    ScalingOrProcessingError,
    SearchError,
    TimeForError,
    ToolNotFoundError,
    TranscoderError,
    TransportError,
    UploadError,
    format_error_for_display,
    map_request_error,
    map_spawn_error,
)
from time_for.logging import (
    LogConfig,
    LogLevel,
    StructuredFormatter,
    configure_logging,
    get_logger,
    log_operation_complete,
    log_operation_failed,
    log_operation_start,
    set_verbosity,
)


def make_record(msg="Test message", name="time_for.pipeline", level=logging.INFO):
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=None,
    )


class TestErrorCategory:
    """Tests for ErrorCategory enum."""

    def test_categories(self):
        """Test error category values."""
        assert ErrorCategory.TRANSIENT.value == "transient"
        assert ErrorCategory.VALIDATION.value == "validation"
        assert ErrorCategory.CONFIGURATION.value == "configuration"
        assert ErrorCategory.RESOURCE.value == "resource"
        assert ErrorCategory.EXTERNAL.value == "external"
        assert ErrorCategory.INTERNAL.value == "internal"


class TestTimeForError:
    """Tests for TimeForError base class."""

    def test_basic_error(self):
        """Test basic error creation."""
        error = TimeForError("Test error")

        assert str(error) == "Test error"
        assert error.message == "Test error"
        assert error.context == {}
        assert error.recoverable is False
        assert error.category == ErrorCategory.INTERNAL

    def test_error_with_context(self):
        """Test error with context."""
        error = TimeForError("Test error", context={"key": "value"})

        assert "context: {'key': 'value'}" in str(error)
        assert error.context == {"key": "value"}


class TestSpecificErrors:
    """Tests for specific error types."""

    def test_tool_not_found(self):
        """Test ToolNotFoundError defaults."""
        error = ToolNotFoundError()

        assert isinstance(error, TranscoderError)
        assert error.category == ErrorCategory.CONFIGURATION
        assert "ffmpeg could not be found" in error.message

    def test_scaling_or_processing_error(self):
        """Test the exit code is kept and named in the message."""
        error = ScalingOrProcessingError(1, "scale")

        assert error.exit_code == 1
        assert error.operation == "scale"
        assert "exit code 1" in error.message
        assert error.category == ErrorCategory.EXTERNAL

    def test_scaling_error_killed_by_signal(self):
        """Test a missing exit code."""
        error = ScalingOrProcessingError(None)
        assert "exit code None" in error.message

    def test_transport_error_is_recoverable(self):
        """Test TransportError."""
        error = TransportError("timed out")

        assert isinstance(error, SearchError)
        assert error.recoverable is True
        assert error.category == ErrorCategory.TRANSIENT

    def test_api_error(self):
        """Test ApiError keeps the API's code and message."""
        error = ApiError(400, "API key not valid")

        assert error.code == 400
        assert error.api_message == "API key not valid"
        assert "400" in error.message
        assert error.recoverable is False

    def test_no_results_error(self):
        """Test NoResultsError names the query."""
        error = NoResultsError("coffee")

        assert error.query == "coffee"
        assert error.message == 'Could not find a GIF for query: "coffee"'
        assert error.category == ErrorCategory.VALIDATION

    def test_download_error_is_media_io(self):
        """Test DownloadError."""
        error = DownloadError("disk full")

        assert isinstance(error, MediaIoError)
        assert error.category == ErrorCategory.RESOURCE

    def test_upload_error(self):
        """Test UploadError."""
        error = UploadError("no link")

        assert error.recoverable is True
        assert error.category == ErrorCategory.EXTERNAL

    def test_configuration_error(self):
        """Test ConfigurationError."""
        error = ConfigurationError("missing key")
        assert error.category == ErrorCategory.CONFIGURATION


class TestMapSpawnError:
    """Tests for map_spawn_error."""

    def test_missing_executable(self):
        """Test FileNotFoundError becomes ToolNotFoundError."""
        error = map_spawn_error(FileNotFoundError("ffmpeg"), "ffmpeg", "scale")

        assert isinstance(error, ToolNotFoundError)
        assert error.context == {"tool": "ffmpeg", "operation": "scale"}

    def test_other_os_error(self):
        """Test any other OSError becomes ProcessIoError."""
        error = map_spawn_error(PermissionError("denied"), "ffmpeg", "caption")

        assert isinstance(error, ProcessIoError)
        assert "denied" in error.message


class TestMapRequestError:
    """Tests for map_request_error."""

    def test_timeout(self):
        """Test timeouts."""
        error = map_request_error(requests.Timeout("slow"), "Tenor", "search")

        assert isinstance(error, TransportError)
        assert "timed out" in error.message

    def test_connection_error(self):
        """Test connection failures."""
        error = map_request_error(requests.ConnectionError("refused"), "Tenor", "search")
        assert "could not connect" in error.message

    def test_decode_error(self):
        """Test JSON decoding failures."""
        error = map_request_error(ValueError("Expecting value"), "Tenor", "search")
        assert "could not be decoded" in error.message

    def test_generic(self):
        """Test other request failures."""
        error = map_request_error(requests.RequestException("boom"), "Tenor", "search")

        assert "request failed" in error.message
        assert error.context["service"] == "Tenor"


class TestErrorContext:
    """Tests for ErrorContext context manager."""

    def test_success_path(self):
        """Test successful operation path."""
        with ErrorContext("test_operation") as ctx:
            pass

        assert ctx.error is None

    def test_error_path(self):
        """Test the error is recorded and re-raised."""
        with pytest.raises(ValueError):
            with ErrorContext("test_operation") as ctx:
                raise ValueError("Test error")

        assert isinstance(ctx.error, ValueError)

    def test_context_included(self):
        """Test context is included."""
        ctx = ErrorContext("test_operation", context={"key": "value"})
        assert ctx.context == {"key": "value"}


class TestFormatErrorForDisplay:
    """Tests for format_error_for_display."""

    def test_format_time_for_error(self):
        """Test category, message and context are shown."""
        error = NoResultsError("coffee", context={"pool": 0})
        formatted = format_error_for_display(error)

        assert formatted.startswith("[validation]")
        assert "coffee" in formatted
        assert "pool=0" in formatted

    def test_format_generic_error(self):
        """Test formatting a non time-for error."""
        formatted = format_error_for_display(RuntimeError("oops"))
        assert formatted == "[error] RuntimeError: oops"

    def test_format_includes_cause(self):
        """Test the chained cause is shown."""
        try:
            try:
                raise FileNotFoundError("ffmpeg")
            except OSError as e:
                raise map_spawn_error(e, "ffmpeg", "scale") from e
        except ToolNotFoundError as error:
            formatted = format_error_for_display(error)

        assert "caused by FileNotFoundError" in formatted


class TestLogLevel:
    """Tests for LogLevel enum."""

    def test_levels(self):
        """Test log level ordering."""
        assert LogLevel.QUIET < LogLevel.NORMAL < LogLevel.VERBOSE < LogLevel.DEBUG


class TestLogConfig:
    """Tests for LogConfig dataclass."""

    def test_defaults(self):
        """Test default values."""
        config = LogConfig()

        assert config.level == LogLevel.NORMAL
        assert config.log_file is None
        assert config.json_format is False
        assert config.include_timestamp is True


class TestStructuredFormatter:
    """Tests for StructuredFormatter."""

    def test_text_format(self):
        """Test text formatting drops the package prefix."""
        formatter = StructuredFormatter(
            json_format=False,
            include_timestamp=False,
            include_context=False,
            color=False,
        )

        formatted = formatter.format(make_record())

        assert "INFO" in formatted
        assert "Test message" in formatted
        assert "pipeline" in formatted
        assert "time_for.pipeline" not in formatted

    def test_json_format(self):
        """Test JSON formatting."""
        formatter = StructuredFormatter(json_format=True, include_timestamp=False)

        record = make_record()
        record.run_id = "abc123"
        parsed = json.loads(formatter.format(record))

        assert parsed["level"] == "info"
        assert parsed["message"] == "Test message"
        assert parsed["context"] == {"run_id": "abc123"}

    def test_json_format_unserializable_context(self):
        """Test context values that are not JSON are stringified."""
        formatter = StructuredFormatter(json_format=True, include_timestamp=False)

        record = make_record()
        record.obj = object()
        parsed = json.loads(formatter.format(record))

        assert parsed["context"]["obj"].startswith("<object object")

    def test_context_in_text(self):
        """Test context inclusion in text format."""
        formatter = StructuredFormatter(
            json_format=False,
            include_timestamp=False,
            include_context=True,
            color=False,
        )

        record = make_record()
        record.custom_key = "custom_value"

        assert "custom_key=custom_value" in formatter.format(record)


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def test_configure_verbose(self):
        """Test verbose configuration."""
        configure_logging(LogConfig(level=LogLevel.VERBOSE))

        root = logging.getLogger("time_for")
        assert root.level == logging.INFO
        assert root.propagate is False

    def test_file_logging(self, tmp_path):
        """Test a file handler is added at debug level."""
        log_file = tmp_path / "logs" / "time-for.log"
        configure_logging(LogConfig(log_file=log_file))

        root = logging.getLogger("time_for")
        file_handlers = [h for h in root.handlers if isinstance(h, logging.FileHandler)]

        assert len(file_handlers) == 1
        assert file_handlers[0].level == logging.DEBUG
        assert log_file.parent.exists()

        configure_logging(LogConfig())

    def test_reconfigure_replaces_handlers(self):
        """Test handlers do not accumulate."""
        configure_logging(LogConfig())
        configure_logging(LogConfig())

        assert len(logging.getLogger("time_for").handlers) == 1


class TestGetLogger:
    """Tests for get_logger function."""

    def test_get_logger(self):
        """Test getting a logger."""
        logger = get_logger("time_for.test")
        assert logger.name == "time_for.test"


class TestSetVerbosity:
    """Tests for set_verbosity function."""

    def test_set_verbosity(self):
        """Test setting verbosity level."""
        set_verbosity(LogLevel.DEBUG)
        assert logging.getLogger("time_for").level == logging.DEBUG

        set_verbosity(LogLevel.NORMAL)
        assert logging.getLogger("time_for").level == logging.WARNING


class TestLogOperationHelpers:
    """Tests for log operation helper functions."""

    def test_log_operation_start(self):
        """Test logging operation start."""
        logger = Mock()
        log_operation_start(logger, "test_operation", param="value")

        logger.info.assert_called_once()
        call_args = logger.info.call_args
        assert "Starting" in call_args[0][0]
        assert call_args[1]["extra"]["param"] == "value"

    def test_log_operation_complete(self):
        """Test logging operation complete."""
        logger = Mock()
        log_operation_complete(logger, "test_operation", duration=5.5)

        call_args = logger.info.call_args
        assert "Completed" in call_args[0][0]
        assert call_args[1]["extra"]["duration_seconds"] == 5.5

    def test_log_operation_failed(self):
        """Test logging operation failure."""
        logger = Mock()
        log_operation_failed(logger, "test_operation", ValueError("Test error"))

        call_args = logger.error.call_args
        assert "Failed" in call_args[0][0]
        assert call_args[1]["extra"]["error_type"] == "ValueError"
        assert call_args[1]["extra"]["error_message"] == "Test error"
