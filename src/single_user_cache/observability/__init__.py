"""Observability for single-user-cache.

Provides structured logging, Prometheus metrics and OpenTelemetry tracing:
- JSON or console logging with request/operation context
- Per-operation batch and deduplication metrics
- One span per batch function invocation
"""

from single_user_cache.observability.logging import (
    LogContext,
    configure_logging,
    operation_var,
    request_id_var,
)
from single_user_cache.observability.metrics import (
    MetricsRegistry,
    get_metrics,
    metrics_registry,
)
from single_user_cache.observability.tracing import NoOpTracer, get_tracer

__all__ = [
    # Logging
    "configure_logging",
    "LogContext",
    "request_id_var",
    "operation_var",
    # Tracing
    "get_tracer",
    "NoOpTracer",
    # Metrics
    "MetricsRegistry",
    "metrics_registry",
    "get_metrics",
]
