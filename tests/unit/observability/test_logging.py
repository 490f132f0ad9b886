"""Tests for structured logging."""

import io
import json
import logging
import sys

import pytest

from single_user_cache.observability import logging as log_module
from single_user_cache.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    configure_logging,
    operation_var,
    request_id_var,
)


def _record(message: str = "Flushing 2 queries", **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="single_user_cache.core.batch",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    """Test JsonFormatter."""

    def test_basic_fields(self) -> None:
        """Records render as JSON with the standard fields."""
        data = json.loads(JsonFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "single_user_cache.core.batch"
        assert data["message"] == "Flushing 2 queries"
        assert "timestamp" in data
        assert "operation" not in data

    def test_includes_log_context(self) -> None:
        """Context variables are added to the record."""
        with LogContext(operation="fetch_user", request_id="req-1"):
            data = json.loads(JsonFormatter().format(_record()))

        assert data["operation"] == "fetch_user"
        assert data["request_id"] == "req-1"

    def test_extra_fields(self) -> None:
        """Extra attributes are included, non-JSON values as strings."""
        data = json.loads(JsonFormatter().format(_record(batch_size=3, target=object())))

        assert data["batch_size"] == 3
        assert isinstance(data["target"], str)

    def test_exception_info(self) -> None:
        """Exceptions are rendered with type and message."""
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()

        data = json.loads(JsonFormatter().format(record))

        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "boom"


class TestLogContext:
    """Test LogContext."""

    def test_restores_previous_values(self) -> None:
        """Values are reset on exit, including nested contexts."""
        with LogContext(operation="outer"):
            with LogContext(operation="inner", request_id="r"):
                assert operation_var.get() == "inner"
                assert request_id_var.get() == "r"
            assert operation_var.get() == "outer"
            assert request_id_var.get() == ""

        assert operation_var.get() == ""

    def test_unknown_keys_are_ignored(self) -> None:
        """Only known context variables are set."""
        with LogContext(unknown="x") as ctx:
            assert ctx.extra == {"unknown": "x"}


class TestConsoleFormatter:
    """Test ConsoleFormatter."""

    def test_format(self) -> None:
        """Console lines carry level, logger and context."""
        formatter = ConsoleFormatter()

        with LogContext(operation="fetch_user", request_id="req-1"):
            line = formatter.format(_record())

        assert " INFO single_user_cache.core.batch: Flushing 2 queries " in line
        assert line.endswith("[req=req-1 op=fetch_user]")

    def test_without_context(self) -> None:
        """No context means no trailing brackets."""
        line = ConsoleFormatter().format(_record())

        assert line.endswith("single_user_cache.core.batch: Flushing 2 queries")

    def test_exception_follows_context(self) -> None:
        """Tracebacks are appended after the context."""
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()

        with LogContext(operation="fetch_user"):
            line = ConsoleFormatter().format(record)

        first, *rest = line.splitlines()
        assert first.endswith("[op=fetch_user]")
        assert rest[-1] == "ValueError: boom"


class TestConfigureLogging:
    """Test configure_logging."""

    @pytest.fixture(autouse=True)
    def restore_package_logger(self):
        logger = logging.getLogger("single_user_cache")
        handlers = logger.handlers[:]
        level = logger.level
        yield
        logger.handlers[:] = handlers
        logger.setLevel(level)
        log_module._handler = None

    def test_explicit_arguments(self) -> None:
        """Explicit format and level win over settings."""
        stream = io.StringIO()

        handler = configure_logging(json_format=True, level="debug", stream=stream)
        logging.getLogger("single_user_cache.core.batch").debug("Flushing 1 queries")

        assert logging.getLogger("single_user_cache").level == logging.DEBUG
        assert isinstance(handler.formatter, JsonFormatter)
        assert json.loads(stream.getvalue())["message"] == "Flushing 1 queries"

    def test_defaults_from_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Unset arguments come from log_json and log_level."""
        monkeypatch.setattr(log_module.settings, "log_json", False)
        monkeypatch.setattr(log_module.settings, "log_level", "WARNING")

        handler = configure_logging(stream=io.StringIO())

        assert logging.getLogger("single_user_cache").level == logging.WARNING
        assert isinstance(handler.formatter, ConsoleFormatter)

    def test_json_default_from_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """log_json selects the JSON formatter."""
        monkeypatch.setattr(log_module.settings, "log_json", True)

        handler = configure_logging(stream=io.StringIO())

        assert isinstance(handler.formatter, JsonFormatter)

    def test_replaces_previous_handler(self) -> None:
        """Repeated calls keep a single installed handler."""
        logger = logging.getLogger("single_user_cache")
        before = len(logger.handlers)

        first = configure_logging(stream=io.StringIO())
        second = configure_logging(stream=io.StringIO())

        assert first not in logger.handlers
        assert second in logger.handlers
        assert len(logger.handlers) == before + 1

    def test_root_logger_untouched(self) -> None:
        """Only the package logger gets the handler."""
        root = logging.getLogger()
        handlers = root.handlers[:]

        configure_logging(stream=io.StringIO())

        assert root.handlers == handlers
