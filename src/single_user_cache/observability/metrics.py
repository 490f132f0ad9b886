"""Prometheus metrics for single-user-cache.

Provides batching and deduplication counters per operation:
- Batches dispatched, failed, their size and latency
- Memo hits (cache=True lookups answered without a new query)
- Dedup hits (duplicate keys joined to a pending query)

Usage:
    from single_user_cache.observability.metrics import get_metrics

    metrics = get_metrics()
    if metrics.batches_total is not None:
        metrics.batches_total.labels(operation="fetch_user").inc()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from prometheus_client import REGISTRY, Counter, Histogram, generate_latest

from single_user_cache.config import settings

logger = logging.getLogger(__name__)


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    # Batch metrics
    batches_total: Any = None
    batch_failures_total: Any = None
    batch_size: Any = None
    batch_duration_seconds: Any = None

    # Deduplication metrics
    memo_hits_total: Any = None
    dedup_hits_total: Any = None

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: Any = field(default=None, repr=False)

    def initialize(self) -> None:
        """Initialize Prometheus metrics."""
        if self._initialized:
            return

        if not settings.enable_metrics:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        self._registry = REGISTRY

        self.batches_total = Counter(
            "single_user_cache_batches_total",
            "Batch function invocations",
            ["operation"],
        )

        self.batch_failures_total = Counter(
            "single_user_cache_batch_failures_total",
            "Batch function invocations that failed",
            ["operation"],
        )

        self.batch_size = Histogram(
            "single_user_cache_batch_size",
            "Number of arguments per batch function invocation",
            ["operation"],
            buckets=(1, 2, 5, 10, 25, 50, 100, 250, 500, 1000),
        )

        self.batch_duration_seconds = Histogram(
            "single_user_cache_batch_duration_seconds",
            "Batch function latency in seconds",
            ["operation"],
            buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
        )

        self.memo_hits_total = Counter(
            "single_user_cache_memo_hits_total",
            "Lookups answered from the memoized query",
            ["operation"],
        )

        self.dedup_hits_total = Counter(
            "single_user_cache_dedup_hits_total",
            "Lookups joined to an already pending query",
            ["operation"],
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if self._registry is None:
            return b"# Metrics disabled\n"
        return generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry
