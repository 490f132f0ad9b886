"""Structured logging for single-user-cache.

Provides:
- JSON-formatted logs for log aggregation systems
- Request and operation context propagation through context variables
- OpenTelemetry trace context in every record
- A single-line console format for development
- Levels and format taken from Settings unless given explicitly

Usage:
    from single_user_cache.observability.logging import configure_logging

    configure_logging(level="DEBUG")

    logger = logging.getLogger("single_user_cache.app")
    with LogContext(request_id="abc-123"):
        logger.info("Resolving request")  # Includes request_id
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Any

from opentelemetry import trace

from single_user_cache.config import settings

_PACKAGE_LOGGER = "single_user_cache"

# Context variables for log correlation
request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")
operation_var: contextvars.ContextVar[str] = contextvars.ContextVar("operation", default="")

_CONTEXT_VARS: dict[str, contextvars.ContextVar[str]] = {
    "request_id": request_id_var,
    "operation": operation_var,
}

# Console labels for context fields
_SHORT_NAMES = {"request_id": "req", "operation": "op", "trace_id": "trace", "span_id": "span"}

# Standard LogRecord attributes, never copied as extra fields
_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


def _context_fields() -> dict[str, str]:
    """Context variables that are set, plus the active span ids."""
    fields = {key: var.get() for key, var in _CONTEXT_VARS.items() if var.get()}
    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        fields["trace_id"] = format(span_context.trace_id, "032x")
        fields["span_id"] = format(span_context.span_id, "016x")
    return fields


class JsonFormatter(logging.Formatter):
    """JSON log formatter with context variables and trace context.

    Output format:
    {
        "timestamp": "2026-10-19T12:34:56.789Z",
        "level": "WARNING",
        "logger": "single_user_cache.core.batch",
        "message": "Batch for fetch_user failed (2 queries): boom",
        "module": "batch",
        "function": "_fail_chunk",
        "line": 42,
        "operation": "fetch_user",
        "trace_id": "0123456789abcdef0123456789abcdef",
        "span_id": "fedcba9876543210"
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        log_data.update(_context_fields())

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                try:
                    json.dumps(value)
                    log_data[key] = value
                except (TypeError, ValueError):
                    log_data[key] = str(value)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Single-line formatter for development.

    Output format:
    12:34:56.789 WARNING single_user_cache.core.batch: Batch for fetch_user failed (2 queries): boom [op=fetch_user]
    """

    def __init__(self) -> None:
        super().__init__(
            "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        parts = [
            f"{_SHORT_NAMES.get(key, key)}={value}" for key, value in _context_fields().items()
        ]
        return f"{line} [{' '.join(parts)}]" if parts else line

# Handler installed by configure_logging, replaced on each call
_handler: logging.Handler | None = None


def configure_logging(
    json_format: bool | None = None,
    level: str | None = None,
    stream: IO[str] | None = None,
) -> logging.Handler:
    """Attach a formatted handler to the ``single_user_cache`` logger.

    The root logger is not modified. Calling it again replaces the handler
    installed by the previous call.

    Args:
        json_format: Use JSON lines (defaults to ``settings.log_json``)
        level: Log level name (defaults to ``settings.log_level``)
        stream: Output stream (defaults to stderr)

    Returns:
        The installed handler
    """
    global _handler

    if json_format is None:
        json_format = settings.log_json
    if level is None:
        level = settings.log_level

    logger = logging.getLogger(_PACKAGE_LOGGER)
    logger.setLevel(level.upper())
    if _handler is not None:
        logger.removeHandler(_handler)

    _handler = logging.StreamHandler(stream or sys.stderr)
    _handler.setFormatter(JsonFormatter() if json_format else ConsoleFormatter())
    logger.addHandler(_handler)
    return _handler


class LogContext:
    """Context manager for adding temporary log context.

    Usage:
        with LogContext(operation="fetch_user", request_id="123"):
            logger.info("Dispatching batch")  # Includes operation and request_id
    """

    def __init__(self, **kwargs: Any) -> None:
        self.extra = kwargs
        self._tokens: dict[str, contextvars.Token[str]] = {}

    def __enter__(self) -> "LogContext":
        for key, var in _CONTEXT_VARS.items():
            if key in self.extra:
                self._tokens[key] = var.set(self.extra[key])
        return self

    def __exit__(self, *args: Any) -> None:
        for key, token in self._tokens.items():
            _CONTEXT_VARS[key].reset(token)
        self._tokens.clear()

