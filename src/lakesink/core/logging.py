"""
Logging utilities for the lakehouse sink.

Provides structured logging with sink context support so that log lines
from the writer loop can be traced back to a sink, table and message.
"""

import json
import logging
import sys
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional


CONTEXT_FIELDS = ["sink_name", "table", "message_id", "schema_version", "attempt"]


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs JSON-structured log lines.

    Each log line includes:
    - Standard log fields (timestamp, level, message, logger)
    - Context fields if present (sink_name, table, message_id)
    - Exception text if present
    """

    def __init__(self, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON."""
        log_entry = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_timestamp:
            log_entry["timestamp"] = datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat()

        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_entry[name] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Formatter that outputs human-readable log lines with sink context.

    Format: TIMESTAMP - LOGGER - LEVEL - MESSAGE [sink_name=X table=Y]
    """

    def __init__(self, include_timestamp: bool = True):
        if include_timestamp:
            fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        else:
            fmt = "%(name)s - %(levelname)s - %(message)s"
        super().__init__(fmt)

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)

        context_parts = []
        for name in ["sink_name", "table", "message_id"]:
            value = getattr(record, name, None)
            if value is not None:
                context_parts.append(f"{name}={value}")

        if context_parts:
            return f"{base} [{' '.join(context_parts)}]"
        return base


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Get a logger instance for the sink package.

    Args:
        name: Logger name (typically __name__ of the calling module)
        level: Optional logging level override

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if level is not None:
        logger.setLevel(level)

    return logger


def configure_logging(
    level: int = logging.INFO,
    format_string: Optional[str] = None,
    include_timestamp: bool = True,
    structured: bool = False,
) -> logging.Logger:
    """
    Configure logging for the sink package.

    Args:
        level: Logging level (default: INFO)
        format_string: Custom format string (ignored if structured=True)
        include_timestamp: Whether to include timestamp in log messages
        structured: If True, output JSON-structured logs; if False, human-readable

    Returns:
        The package logger

    Example:
        >>> from lakesink.core.logging import configure_logging
        >>> configure_logging(level=logging.DEBUG, structured=True)
    """
    sink_logger = logging.getLogger("lakesink")
    sink_logger.setLevel(level)

    # Only add handler if none exist (avoid duplicate handlers)
    if not sink_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)

        if structured:
            formatter = StructuredFormatter(include_timestamp=include_timestamp)
        elif format_string:
            formatter = logging.Formatter(format_string)
        else:
            formatter = HumanReadableFormatter(include_timestamp=include_timestamp)

        handler.setFormatter(formatter)
        sink_logger.addHandler(handler)

    return sink_logger


class SinkLogContext:
    """
    Context manager for adding sink fields to log records.

    Example:
        >>> with SinkLogContext(sink_name="orders", table="orders_v1"):
        ...     log_with_context(logger, logging.INFO, "Committed batch")
    """

    # One active context per thread
    _local = threading.local()

    def __init__(
        self,
        sink_name: Optional[str] = None,
        table: Optional[str] = None,
        **extra: Any,
    ):
        self.context = {"sink_name": sink_name, "table": table, **extra}
        self.context = {k: v for k, v in self.context.items() if v is not None}
        self._previous: Optional["SinkLogContext"] = None

    def __enter__(self) -> "SinkLogContext":
        self._previous = getattr(SinkLogContext._local, "current", None)
        SinkLogContext._local.current = self
        return self

    def __exit__(self, *args) -> None:
        SinkLogContext._local.current = self._previous

    @classmethod
    def get_current(cls) -> Dict[str, Any]:
        """Get the sink context of the calling thread."""
        current = getattr(cls._local, "current", None)
        if current is None:
            return {}
        return current.context.copy()


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    exc_info: bool = False,
    **extra: Any,
) -> None:
    """
    Log a message with the current sink context merged into ``extra``.

    Args:
        logger: The logger to use
        level: Log level (e.g., logging.INFO)
        message: Log message
        exc_info: Attach the active exception's traceback
        **extra: Additional fields to include
    """
    context = SinkLogContext.get_current()
    context.update(extra)
    logger.log(level, message, extra=context, exc_info=exc_info)
