"""Deferred execution of flush callbacks.

A BatchUnit never calls its batch function from ``add()``; it asks a
scheduler to run the flush later. The default scheduler uses the running
event loop's ``call_soon``, which runs the flush after the current
synchronous code and any callbacks already queued, so every ``add()`` issued
in the same turn (including from sibling tasks started by ``asyncio.gather``)
lands in the same batch.

Example:
    scheduler = ManualScheduler()
    cache = factory.create(scheduler=scheduler)

    future = cache.fetch_user(1)
    scheduler.run_pending()  # flushes now
    user = await future
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Callable, Protocol

Callback = Callable[[], None]


class Scheduler(Protocol):
    """Defers a callback to a later turn of the cooperative task queue."""

    def schedule(self, callback: Callback) -> None: ...


class EventLoopScheduler:
    """Schedule on the running asyncio loop with ``call_soon``."""

    def schedule(self, callback: Callback) -> None:
        asyncio.get_running_loop().call_soon(callback)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class ManualScheduler:
    """Queue callbacks until ``run_pending()`` is called.

    Intended for tests that need to control exactly when a flush happens.
    Flushes still need a running event loop, since dispatch starts tasks.
    """

    def __init__(self) -> None:
        self._queue: deque[Callback] = deque()

    @property
    def pending(self) -> int:
        """Number of callbacks waiting to run."""
        return len(self._queue)

    def schedule(self, callback: Callback) -> None:
        self._queue.append(callback)

    def run_pending(self) -> int:
        """Run the callbacks queued so far.

        Callbacks scheduled while running are kept for the next call.

        Returns:
            Number of callbacks executed
        """
        count = len(self._queue)
        for _ in range(count):
            self._queue.popleft()()
        return count


default_scheduler = EventLoopScheduler()
