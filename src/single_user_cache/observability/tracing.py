"""OpenTelemetry tracing for single-user-cache.

Only the OpenTelemetry API is used; the host application installs the
tracer provider and exporters. Without one, spans are non-recording.

Usage:
    from single_user_cache.observability.tracing import get_tracer

    tracer = get_tracer(__name__)

    with tracer.start_as_current_span("single_user_cache.batch") as span:
        span.set_attribute("batch.size", 3)
"""

from __future__ import annotations

from typing import Any

from opentelemetry import trace

from single_user_cache.config import settings


def get_tracer(name: str) -> Any:
    """Get a tracer for the given module name.

    Args:
        name: Module name (typically __name__)

    Returns:
        OpenTelemetry tracer, or NoOpTracer if tracing is disabled
    """
    if not settings.enable_tracing:
        return NoOpTracer()
    return trace.get_tracer(name)


class NoOpTracer:
    """No-op tracer for when tracing is disabled."""

    def start_as_current_span(
        self, name: str, **kwargs: Any
    ) -> "NoOpSpanContextManager":
        """Return a no-op span context manager."""
        return NoOpSpanContextManager()

    def start_span(self, name: str, **kwargs: Any) -> "NoOpSpan":
        """Return a no-op span."""
        return NoOpSpan()


class NoOpSpan:
    """No-op span for when tracing is disabled."""

    def set_attribute(self, key: str, value: Any) -> None:
        pass

    def set_status(self, status: Any) -> None:
        pass

    def record_exception(self, exception: BaseException) -> None:
        pass

    def end(self) -> None:
        pass


class NoOpSpanContextManager:
    """No-op span context manager."""

    def __enter__(self) -> NoOpSpan:
        return NoOpSpan()

    def __exit__(self, *args: Any) -> None:
        pass
