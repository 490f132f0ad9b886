"""Per-request batching and deduplication cache for async fetch functions.

Example:
    from single_user_cache import Factory

    factory = Factory()
    factory.add("fetch_user", fetch_users)

    cache = factory.create(context=session)
    alice, bob = await asyncio.gather(cache.fetch_user(1), cache.fetch_user(2))
    # fetch_users([1, 2], session) was called once
"""

from single_user_cache.cache import BatchOptions, Cache, Factory, Registration
from single_user_cache.core import (
    BatchUnit,
    EventLoopScheduler,
    ManualScheduler,
    Query,
    Scheduler,
    lookup_key,
)
from single_user_cache.errors import (
    BatchResponseError,
    ConfigurationError,
    SingleUserCacheError,
    UnknownOperationError,
    UnserializableArgumentError,
)

__version__ = "1.0.0"

__all__ = [
    # Registry and instances
    "Factory",
    "Cache",
    "BatchOptions",
    "Registration",
    # Core
    "BatchUnit",
    "Query",
    "lookup_key",
    "Scheduler",
    "EventLoopScheduler",
    "ManualScheduler",
    # Errors
    "SingleUserCacheError",
    "ConfigurationError",
    "UnknownOperationError",
    "UnserializableArgumentError",
    "BatchResponseError",
]
