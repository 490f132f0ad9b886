"""Factory and per-request cache instances.

Register batch functions once on a Factory, then create one Cache per unit of
work (typically per incoming request). Each registered operation becomes a
method on the cache:

    factory = Factory()
    factory.add("fetch_user", fetch_users)
    factory.add("fetch_posts", fetch_posts, cache=False, max_batch_size=100)

    cache = factory.create(context=db_session)
    user = await cache.fetch_user(42)

A batch function receives the ordered list of arguments and the cache's
context, and returns a sequence of results in the same order:

    async def fetch_users(ids: list[int], session: AsyncSession) -> list[User | None]:
        rows = await load_users(session, ids)
        return [rows.get(user_id) for user_id in ids]
"""

from __future__ import annotations

import asyncio
import keyword
import logging
from dataclasses import dataclass
from typing import Any, Callable

from single_user_cache.config import Settings, settings as default_settings
from single_user_cache.core.batch import BatchFn, BatchUnit
from single_user_cache.core.keys import SerializeFn
from single_user_cache.core.scheduler import Scheduler
from single_user_cache.errors import ConfigurationError, UnknownOperationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchOptions:
    """Per-operation batching options."""

    # Memoize results for the lifetime of the cache instance
    cache: bool = True

    # Split flushes larger than this into independent batch calls
    max_batch_size: int | None = None


@dataclass(frozen=True)
class Registration:
    """A batch function bound to an operation name."""

    name: str
    batch_fn: BatchFn
    options: BatchOptions
    serialize: SerializeFn | None = None


class Cache:
    """Per-request container of BatchUnits, one per operation.

    Instances are created by ``Factory.create()``; the factory adds one
    accessor method per registered operation to its own Cache subclass.
    """

    def __init__(
        self,
        registrations: dict[str, Registration],
        context: Any = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._registrations = registrations
        self._context = context
        self._scheduler = scheduler
        self._units: dict[str, BatchUnit] = {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(operations={sorted(self._registrations)})"

    @property
    def context(self) -> Any:
        """Opaque value passed to every batch function call."""
        return self._context

    def get(self, operation_name: str) -> BatchUnit:
        """Return the BatchUnit for *operation_name*, creating it on first use.

        Raises:
            UnknownOperationError: If the operation was never registered
        """
        unit = self._units.get(operation_name)
        if unit is not None:
            return unit

        registration = self._registrations.get(operation_name)
        if registration is None:
            raise UnknownOperationError(f"Unknown operation: {operation_name}")

        unit = BatchUnit(
            registration.name,
            registration.batch_fn,
            self._context,
            cache=registration.options.cache,
            max_batch_size=registration.options.max_batch_size,
            serialize=registration.serialize,
            scheduler=self._scheduler,
        )
        self._units[operation_name] = unit
        return unit

    def load(self, operation_name: str, arg: Any) -> asyncio.Future[Any]:
        """Request *arg* from *operation_name*."""
        return self.get(operation_name).add(arg)

    def clear(self, operation_name: str | None = None) -> int:
        """Drop memoized results of one operation, or of all of them.

        Returns:
            Number of memoized entries removed
        """
        if operation_name is not None:
            return self.get(operation_name).clear_all()
        return sum(unit.clear_all() for unit in self._units.values())

    async def drain(self) -> None:
        """Wait for every batch dispatched by this cache to complete."""
        for unit in list(self._units.values()):
            await unit.drain()


def _make_accessor(name: str) -> Callable[[Cache, Any], asyncio.Future[Any]]:
    def accessor(self: Cache, arg: Any) -> asyncio.Future[Any]:
        return self.get(name).add(arg)

    accessor.__name__ = name
    accessor.__qualname__ = f"Cache.{name}"
    accessor.__doc__ = f"Fetch one {name!r} result, batched with concurrent calls."
    return accessor


class Factory:
    """Registry of batch functions that builds Cache instances.

    Example:
        factory = Factory().add("fetch_user", fetch_users)
        cache = factory.create()
    """

    def __init__(
        self,
        *,
        scheduler: Scheduler | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._registrations: dict[str, Registration] = {}
        self._scheduler = scheduler
        self._settings = settings or default_settings
        self.Cache: type[Cache] = type("Cache", (Cache,), {"__module__": __name__})

    @property
    def operations(self) -> list[str]:
        """Registered operation names, in registration order."""
        return list(self._registrations)

    def add(
        self,
        name: str,
        batch_fn: BatchFn | None,
        serialize: SerializeFn | None = None,
        *,
        cache: bool | None = None,
        max_batch_size: int | None = None,
    ) -> Factory:
        """Register a batch function under *name*.

        Args:
            name: Operation name, exposed as a method on created caches
            batch_fn: ``batch_fn(args, context)`` returning an awaitable of
                results in the same order as ``args``
            serialize: Optional function deriving the lookup key of an argument
            cache: Memoize results for the cache lifetime (settings default)
            max_batch_size: Split larger flushes into chunks (settings default)

        Returns:
            The factory, for chaining

        Raises:
            ConfigurationError: If any parameter is invalid
        """
        self._validate_name(name)

        if batch_fn is None or not callable(batch_fn):
            raise ConfigurationError(f"Missing the function parameter for '{name}'")

        if serialize is not None and not callable(serialize):
            raise ConfigurationError(f"The serialize parameter for '{name}' is not callable")

        if cache is None:
            cache = self._settings.default_cache
        if max_batch_size is None:
            max_batch_size = self._settings.default_max_batch_size
        if max_batch_size is not None and (
            isinstance(max_batch_size, bool)
            or not isinstance(max_batch_size, int)
            or max_batch_size < 1
        ):
            raise ConfigurationError(
                f"max_batch_size for '{name}' must be a positive integer, got {max_batch_size!r}"
            )

        registration = Registration(
            name=name,
            batch_fn=batch_fn,
            options=BatchOptions(cache=bool(cache), max_batch_size=max_batch_size),
            serialize=serialize,
        )
        self._registrations[name] = registration
        setattr(self.Cache, name, _make_accessor(name))

        logger.debug(
            f"Registered operation {name} "
            f"(cache={registration.options.cache}, "
            f"max_batch_size={registration.options.max_batch_size})"
        )
        return self

    def create(self, context: Any = None, *, scheduler: Scheduler | None = None) -> Cache:
        """Create a cache instance for a single unit of work.

        Args:
            context: Value passed to every batch function call
            scheduler: Overrides the factory's flush scheduler

        Returns:
            Fresh Cache with no pending or memoized queries
        """
        return self.Cache(self._registrations, context, scheduler or self._scheduler)

    def _validate_name(self, name: Any) -> None:
        if not isinstance(name, str) or not name.isidentifier() or keyword.iskeyword(name):
            raise ConfigurationError(f"Operation name must be a Python identifier, got {name!r}")
        if name.startswith("_"):
            raise ConfigurationError(f"Operation name must not start with '_': {name!r}")
        if name in self._registrations:
            raise ConfigurationError(f"Operation already registered: {name}")
        if hasattr(Cache, name):
            raise ConfigurationError(f"Operation name is reserved: {name}")
