"""Batching and deduplication engine.

A BatchUnit owns the pending queries of one registered operation inside one
Cache. Calls to ``add()`` made in the same scheduling window are collected
and flushed together into a single batch function call:

    unit = BatchUnit("fetch_user", fetch_users)

    f1 = unit.add(42)
    f2 = unit.add(24)
    f3 = unit.add(42)  # same key, shares the query of f1

    await asyncio.gather(f1, f2, f3)  # fetch_users([42, 24], None) ran once

Oversized flushes are split into chunks of ``max_batch_size``; every chunk is
an independent batch call and an independent failure domain.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Awaitable, Callable

from single_user_cache.core.keys import SerializeFn, lookup_key
from single_user_cache.core.query import Query
from single_user_cache.core.scheduler import Scheduler, default_scheduler
from single_user_cache.errors import BatchResponseError
from single_user_cache.observability.logging import LogContext
from single_user_cache.observability.metrics import get_metrics
from single_user_cache.observability.tracing import get_tracer

logger = logging.getLogger(__name__)

BatchFn = Callable[[list[Any], Any], Awaitable[Sequence[Any]]]


def split_chunks(queries: list[Query], max_batch_size: int | None) -> list[list[Query]]:
    """Partition *queries* into contiguous chunks of at most *max_batch_size*."""
    if max_batch_size is None or len(queries) <= max_batch_size:
        return [queries]
    return [
        queries[start : start + max_batch_size]
        for start in range(0, len(queries), max_batch_size)
    ]


class BatchUnit:
    """Pending-query collection and flush logic for one operation."""

    def __init__(
        self,
        operation_name: str,
        batch_fn: BatchFn,
        context: Any = None,
        *,
        cache: bool = True,
        max_batch_size: int | None = None,
        serialize: SerializeFn | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.operation_name = operation_name
        self.batch_fn = batch_fn
        self.context = context
        self.cache_enabled = cache
        self.max_batch_size = max_batch_size
        self.serialize = serialize
        self.scheduler = scheduler or default_scheduler

        self._memo: dict[str, Query] = {}
        self._pending: dict[str, Query] = {}
        self._flush_scheduled = False
        self._inflight: set[asyncio.Task[None]] = set()

        self._metrics = get_metrics()
        self._tracer = get_tracer(__name__)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(operation={self.operation_name!r}, "
            f"cache={self.cache_enabled}, max_batch_size={self.max_batch_size})"
        )

    @property
    def flush_scheduled(self) -> bool:
        return self._flush_scheduled

    @property
    def pending_keys(self) -> list[str]:
        """Lookup keys waiting for the next flush, in admission order."""
        return list(self._pending)

    @property
    def memoized_keys(self) -> list[str]:
        return list(self._memo)

    def lookup_key(self, arg: Any) -> str:
        return lookup_key(arg, self.serialize)

    def add(self, arg: Any) -> asyncio.Future[Any]:
        """Request *arg*, returning a future for its result.

        Never blocks and never calls the batch function directly; the
        request is dispatched when the scheduled flush runs. Each caller
        gets its own view of the shared query future, so cancelling one
        waiter leaves the query and its other waiters untouched.
        """
        key = self.lookup_key(arg)

        if self.cache_enabled:
            query = self._memo.get(key)
            if query is not None:
                self._count(self._metrics.memo_hits_total)
                return asyncio.shield(query.future)

        query = self._pending.get(key)
        if query is not None:
            self._count(self._metrics.dedup_hits_total)
            return asyncio.shield(query.future)

        query = Query(key, arg)
        self._schedule_flush()
        self._pending[key] = query
        if self.cache_enabled:
            self._memo[key] = query
        return asyncio.shield(query.future)

    def clear(self, arg: Any) -> bool:
        """Forget the memoized result for *arg*.

        Returns:
            True if a memoized entry was removed
        """
        return self._memo.pop(self.lookup_key(arg), None) is not None

    def clear_all(self) -> int:
        """Forget every memoized result. Pending queries are kept.

        Returns:
            Number of entries removed
        """
        count = len(self._memo)
        self._memo.clear()
        return count

    async def drain(self) -> None:
        """Wait until every dispatched batch of this unit has completed."""
        while self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)

    def _schedule_flush(self) -> None:
        if self._flush_scheduled:
            return
        self.scheduler.schedule(self._flush)
        self._flush_scheduled = True

    def _flush(self) -> None:
        self._flush_scheduled = False
        queries = list(self._pending.values())
        self._pending = {}

        if not queries:
            return

        chunks = split_chunks(queries, self.max_batch_size)
        logger.debug(
            f"Flushing {len(queries)} queries for {self.operation_name} "
            f"in {len(chunks)} batch(es)"
        )
        for chunk in chunks:
            self._dispatch(chunk)

    def _dispatch(self, chunk: list[Query]) -> None:
        """Call the batch function for *chunk* and track its completion."""
        self._count(self._metrics.batches_total)
        if self._metrics.batch_size is not None:
            self._metrics.batch_size.labels(operation=self.operation_name).observe(len(chunk))

        args = [query.arg for query in chunk]
        started = time.perf_counter()
        try:
            response = self.batch_fn(args, self.context)
        except Exception as e:
            # Raised before returning an awaitable; fail the chunk from _complete
            response = asyncio.get_running_loop().create_future()
            response.set_exception(e)

        task = asyncio.get_running_loop().create_task(self._complete(chunk, response, started))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _complete(self, chunk: list[Query], response: Any, started: float) -> None:
        with (
            LogContext(operation=self.operation_name),
            self._tracer.start_as_current_span("single_user_cache.batch") as span,
        ):
            span.set_attribute("batch.operation", self.operation_name)
            span.set_attribute("batch.size", len(chunk))
            try:
                if inspect.isawaitable(response):
                    response = await response
                values = self._validate(chunk, response)
            except asyncio.CancelledError:
                for query in chunk:
                    query.cancel()
                raise
            except Exception as e:
                span.record_exception(e)
                self._fail_chunk(chunk, e)
                return
            finally:
                if self._metrics.batch_duration_seconds is not None:
                    self._metrics.batch_duration_seconds.labels(
                        operation=self.operation_name
                    ).observe(time.perf_counter() - started)

        for query, value in zip(chunk, values):
            query.settle(value)

    def _validate(self, chunk: list[Query], response: Any) -> list[Any]:
        if isinstance(response, (str, bytes, Mapping)) or not isinstance(response, Iterable):
            raise BatchResponseError(self.operation_name, len(chunk), None)
        values = list(response)
        if len(values) != len(chunk):
            raise BatchResponseError(self.operation_name, len(chunk), len(values))
        return values

    def _fail_chunk(self, chunk: list[Query], exc: Exception) -> None:
        self._count(self._metrics.batch_failures_total)
        logger.warning(f"Batch for {self.operation_name} failed ({len(chunk)} queries): {exc}")
        for query in chunk:
            query.fail(exc)

    def _count(self, counter: Any) -> None:
        if counter is not None:
            counter.labels(operation=self.operation_name).inc()
