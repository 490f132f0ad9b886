from __future__ import annotations

import asyncio
from typing import Any


class Query:
    """A single pending request and its result future."""

    __slots__ = ("lookup_key", "arg", "future")

    def __init__(
        self,
        lookup_key: str,
        arg: Any,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.lookup_key = lookup_key
        self.arg = arg
        self.future: asyncio.Future[Any] = (loop or asyncio.get_running_loop()).create_future()

    @property
    def done(self) -> bool:
        return self.future.done()

    def settle(self, value: Any) -> None:
        """Resolve the future with *value*. No-op once settled."""
        if not self.future.done():
            self.future.set_result(value)

    def fail(self, exc: BaseException) -> None:
        """Reject the future with *exc*. No-op once settled."""
        if not self.future.done():
            self.future.set_exception(exc)

    def cancel(self) -> None:
        self.future.cancel()

    def __repr__(self) -> str:
        state = "done" if self.done else "pending"
        return f"Query(lookup_key={self.lookup_key!r}, {state})"
