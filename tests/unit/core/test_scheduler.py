"""Tests for flush schedulers."""

import asyncio

import pytest

from single_user_cache.core.scheduler import EventLoopScheduler, ManualScheduler


class TestManualScheduler:
    """Test ManualScheduler."""

    def test_queues_until_run(self) -> None:
        """Callbacks only run on run_pending()."""
        scheduler = ManualScheduler()
        ran: list[int] = []

        scheduler.schedule(lambda: ran.append(1))
        scheduler.schedule(lambda: ran.append(2))

        assert ran == []
        assert scheduler.pending == 2

        assert scheduler.run_pending() == 2
        assert ran == [1, 2]
        assert scheduler.pending == 0

    def test_callbacks_scheduled_while_running_wait(self) -> None:
        """Callbacks added during run_pending() are kept for the next run."""
        scheduler = ManualScheduler()
        ran: list[str] = []

        def first() -> None:
            ran.append("first")
            scheduler.schedule(lambda: ran.append("second"))

        scheduler.schedule(first)

        assert scheduler.run_pending() == 1
        assert ran == ["first"]
        assert scheduler.pending == 1

        scheduler.run_pending()
        assert ran == ["first", "second"]

    def test_run_pending_empty(self) -> None:
        """Nothing queued runs nothing."""
        assert ManualScheduler().run_pending() == 0


class TestEventLoopScheduler:
    """Test EventLoopScheduler."""

    @pytest.mark.asyncio
    async def test_runs_on_next_loop_turn(self) -> None:
        """The callback runs after the current synchronous code."""
        scheduler = EventLoopScheduler()
        ran: list[str] = []

        scheduler.schedule(lambda: ran.append("deferred"))
        ran.append("sync")

        assert ran == ["sync"]
        await asyncio.sleep(0)
        assert ran == ["sync", "deferred"]

    @pytest.mark.asyncio
    async def test_runs_before_later_callbacks(self) -> None:
        """Callbacks keep FIFO order with other loop callbacks."""
        scheduler = EventLoopScheduler()
        loop = asyncio.get_running_loop()
        ran: list[str] = []

        scheduler.schedule(lambda: ran.append("flush"))
        loop.call_soon(lambda: ran.append("later"))

        await asyncio.sleep(0)
        assert ran == ["flush", "later"]

    def test_requires_running_loop(self) -> None:
        """Scheduling outside an event loop fails."""
        with pytest.raises(RuntimeError):
            EventLoopScheduler().schedule(lambda: None)
