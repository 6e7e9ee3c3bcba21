"""Tests for logging setup and formatters."""

import json
import logging
from io import StringIO
from unittest.mock import patch

import structlog

from vframes_client.config import Settings
from vframes_client.logger import (
    CustomJsonFormatter,
    KeyValueFormatter,
    get_logger,
    setup_logger,
    setup_logging,
)


def make_record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="vframes_client.tracker",
        level=logging.INFO,
        pathname="tracker.py",
        lineno=1,
        msg="Job reached terminal state",
        args=(),
        exc_info=None,
    )
    record.__dict__.update(extra)
    return record


def test_custom_json_formatter_fields() -> None:
    """Test JSON output carries the standard fields and the event context."""
    formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(logger)s %(message)s")

    output = json.loads(formatter.format(make_record(job_id="v1", status="COMPLETED")))

    assert output["level"] == "INFO"
    assert output["logger"] == "vframes_client.tracker"
    assert output["message"] == "Job reached terminal state"
    assert output["job_id"] == "v1"
    assert output["status"] == "COMPLETED"
    assert "timestamp" in output


def test_key_value_formatter_appends_context() -> None:
    """Test human-readable output lists the event context as sorted key=value pairs."""
    formatter = KeyValueFormatter("%(levelname)s %(message)s")

    line = formatter.format(make_record(status="COMPLETED", job_id="v1"))

    assert line == "INFO Job reached terminal state [job_id=v1 status=COMPLETED]"


def test_key_value_formatter_without_context() -> None:
    """Test records without context are formatted unchanged."""
    formatter = KeyValueFormatter("%(levelname)s %(message)s")

    assert formatter.format(make_record()) == "INFO Job reached terminal state"


def test_setup_logger_json() -> None:
    """Test setup_logger installs a single JSON handler at the configured level."""
    logger = logging.getLogger("vframes_client.test_json")
    config = Settings(log_format_json=True, log_level="DEBUG")

    setup_logger(logger, config=config)

    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, CustomJsonFormatter)
    assert logger.level == logging.DEBUG


def test_setup_logger_writes_key_values() -> None:
    """Test the default formatter output on the configured stream."""
    logger = logging.getLogger("vframes_client.test_plain")
    setup_logger(logger, log_level="INFO", config=Settings(log_format_json=False))
    stream = StringIO()
    handler = logger.handlers[0]
    assert isinstance(handler, logging.StreamHandler)
    handler.setStream(stream)

    logger.info("Uploading video", extra={"video_name": "clip.mp4"})

    assert "Uploading video [video_name=clip.mp4]" in stream.getvalue()
    assert isinstance(handler.formatter, KeyValueFormatter)


def test_setup_logging_excludes_noisy_loggers() -> None:
    """Test excluded loggers are raised to WARNING."""
    config = Settings(log_exclude_loggers="httpx, httpcore,")

    try:
        with patch("vframes_client.logger.setup_logger") as mock_setup:
            setup_logging(config)
        mock_setup.assert_called_once_with(logging.getLogger(), config=config)
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING
    finally:
        structlog.reset_defaults()


def test_get_logger_binds_context() -> None:
    """Test get_logger returns a structlog logger accepting key/value context."""
    logger = get_logger("vframes_client.test")

    assert hasattr(logger.bind(job_id="v1"), "info")
