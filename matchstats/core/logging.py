"""
Structured logging module with JSON formatting and context tracking.

This module provides:
- JSON log formatting for structured logging
- Correlation ID tracking for admin HTTP requests
- Match ID tracking so every log line of a running match can be grouped
- Logger factory for consistent logger creation
"""
import logging
import json
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime
from typing import Any, Iterator

# Correlation ID of the admin HTTP request being served (if any)
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

# Identifier of the match currently being aggregated (if any)
match_id_var: ContextVar[str] = ContextVar("match_id", default="")

_STANDARD_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "message",
    "asctime",
}


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Outputs logs as JSON objects with the following fields:
    - timestamp: ISO 8601 formatted timestamp
    - level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - logger: Logger name
    - message: Log message
    - correlation_id: Request correlation ID (if available)
    - match_id: Running match ID (if available)
    - exception: Exception details (if an exception occurred)
    - extra: Any additional context from extra dict
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": correlation_id_var.get(),
            "match_id": match_id_var.get(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_keys = {
            k: v for k, v in record.__dict__.items() if k not in _STANDARD_ATTRS
        }
        if extra_keys:
            log_data["extra"] = extra_keys

        return json.dumps(log_data, default=str)


class ColoredFormatter(logging.Formatter):
    """
    Colored console formatter for development.

    Provides human-readable colored output for console logging
    while still including correlation and match IDs.
    """

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors."""
        level_color = self.COLORS.get(record.levelname, "")

        base_msg = f"{level_color}[{record.levelname}]{self.RESET} {record.name}: {record.getMessage()}"

        correlation_id = correlation_id_var.get()
        if correlation_id:
            base_msg += f" | correlation_id={correlation_id}"

        match_id = match_id_var.get()
        if match_id:
            base_msg += f" | match_id={match_id}"

        if record.exc_info:
            base_msg += "\n" + self.formatException(record.exc_info)

        return base_msg


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    handler: logging.Handler | None = None,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, use JSON formatter. If False, use colored console formatter.
        handler: Optional custom handler. If None, creates StreamHandler to stdout.
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(log_level)

    if json_output:
        formatter = JSONFormatter()
    else:
        formatter = ColoredFormatter()

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Reduce noise from third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__ from the calling module)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def set_correlation_id(correlation_id: str) -> Any:
    """
    Set the correlation ID in the context.

    Returns:
        Token that can be used to reset the context variable
    """
    return correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    """Get the current correlation ID or empty string if not set."""
    return correlation_id_var.get()


def clear_correlation_id(token: Any) -> None:
    """Clear the correlation ID from the context."""
    correlation_id_var.reset(token)


def set_match_id(match_id: str) -> Any:
    """Set the running match ID in the context; returns a reset token."""
    return match_id_var.set(match_id)


def clear_match_id(token: Any) -> None:
    match_id_var.reset(token)


@contextmanager
def match_context(match_id: str) -> Iterator[None]:
    """Tag every log record emitted inside the block with ``match_id``."""
    token = set_match_id(match_id)
    try:
        yield
    finally:
        clear_match_id(token)
