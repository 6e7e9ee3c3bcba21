"""Logging configuration for vframes-client.

structlog is the logging front end for every module. ``setup_logging`` routes
structlog events through the standard library root logger so applications
embedding the client keep control of handlers.

Supports two output formats:
- JSON logging: Structured logs for log aggregation systems
- Standard logging (default): Human-readable logs with key=value context

Configure via VFRAMES_LOG_FORMAT_JSON environment variable.
"""

import logging
import sys

import structlog
from pythonjsonlogger.json import JsonFormatter

from vframes_client.config import Settings, settings

# Attributes every LogRecord carries; anything else came in as structlog context.
_RECORD_FIELDS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}


def _extra_fields(record: logging.LogRecord) -> dict[str, object]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RECORD_FIELDS and not key.startswith("_")
    }


class CustomJsonFormatter(JsonFormatter):
    """Custom JSON formatter with consistent field names."""

    def add_fields(
        self,
        log_record: dict[str, object],
        record: logging.LogRecord,
        message_dict: dict[str, object],
    ) -> None:
        """Add fields to the JSON log record.

        Args:
            log_record: Dictionary to populate with log fields
            record: Original log record
            message_dict: Message dictionary from format
        """
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["message"] = record.getMessage()

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        log_record.update(_extra_fields(record))


class KeyValueFormatter(logging.Formatter):
    """Human-readable formatter appending structlog context as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = _extra_fields(record)
        if not extras:
            return line
        context = " ".join(f"{key}={value}" for key, value in sorted(extras.items()))
        return f"{line} [{context}]"


def setup_logger(
    logger: logging.Logger,
    log_level: str | None = None,
    config: Settings | None = None,
) -> logging.Logger:
    """Setup a specific logger with JSON or key=value formatting."""
    config = config or settings
    formatter: logging.Formatter
    if config.log_format_json:
        formatter = CustomJsonFormatter(
            "%(timestamp)s %(level)s %(logger)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = KeyValueFormatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    logger.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(log_level or config.log_level)
    return logger


def setup_logging(config: Settings | None = None) -> structlog.stdlib.BoundLogger:
    """Configure structlog and the root logger.

    Loggers listed in VFRAMES_LOG_EXCLUDE_LOGGERS (comma-separated, e.g.
    "httpx,httpcore") are raised to WARNING to keep DEBUG output readable.

    Returns:
        Configured logger for vframes_client
    """
    config = config or settings
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.render_to_log_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    setup_logger(logging.getLogger(), config=config)

    for logger_name in config.log_exclude_loggers.split(","):
        if logger_name.strip():
            logging.getLogger(logger_name.strip()).setLevel(logging.WARNING)

    return structlog.get_logger("vframes_client")


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance for a specific module.

    Args:
        name: Logger name (usually __name__)

    Returns:
        structlog logger
    """
    return structlog.get_logger(name)
