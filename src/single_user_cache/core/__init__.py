"""Batching and deduplication core.

- Query: one pending request and its future
- BatchUnit: pending-query collection, flush scheduling and dispatch
- Schedulers: deferral of flushes to the next loop turn
- lookup_key: deduplication key derivation
"""

from single_user_cache.core.batch import BatchFn, BatchUnit, split_chunks
from single_user_cache.core.keys import lookup_key, stable_stringify
from single_user_cache.core.query import Query
from single_user_cache.core.scheduler import (
    EventLoopScheduler,
    ManualScheduler,
    Scheduler,
    default_scheduler,
)

__all__ = [
    "BatchFn",
    "BatchUnit",
    "split_chunks",
    "Query",
    "lookup_key",
    "stable_stringify",
    "Scheduler",
    "EventLoopScheduler",
    "ManualScheduler",
    "default_scheduler",
]
