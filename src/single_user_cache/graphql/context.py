"""Strawberry GraphQL context carrying a per-request cache.

Example:
    factory = Factory()
    factory.add("shell", load_shells)

    @strawberry.type
    class Query:
        @strawberry.field
        async def shell(self, info: strawberry.Info, id: str) -> Shell | None:
            return await info.context.cache.shell(id)

    router = GraphQLRouter(schema, context_getter=make_context_getter(factory))
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

from strawberry.types import Info

from single_user_cache.cache import Cache, Factory


class CacheContext:
    """Context class for GraphQL requests with a fresh cache.

    Every request gets its own Cache, so batching and memoization never
    leak between requests.
    """

    def __init__(self, factory: Factory, context: Any = None) -> None:
        """Initialize context with a new cache.

        Args:
            factory: Factory holding the registered batch functions
            context: Value passed to every batch function call
        """
        self.factory = factory
        self.cache: Cache = factory.create(context)

    @property
    def context(self) -> Any:
        """The value batch functions receive as their second argument."""
        return self.cache.context


def make_context_getter(
    factory: Factory,
    build_context: Callable[[], Awaitable[Any]] | None = None,
) -> Callable[[], Awaitable[CacheContext]]:
    """Build a Strawberry ``context_getter`` creating one cache per request.

    Args:
        factory: Factory holding the registered batch functions
        build_context: Optional coroutine function producing the value
            passed to batch functions (e.g. a database session)

    Returns:
        Async callable returning a fresh CacheContext
    """

    async def get_context() -> CacheContext:
        context = await build_context() if build_context is not None else None
        return CacheContext(factory, context)

    return get_context


def get_cache(info: Info) -> Cache:
    """Return the request cache from a resolver's ``info``.

    Accepts a CacheContext or a dict context with a ``"cache"`` entry.

    Raises:
        LookupError: If the context carries no cache
    """
    context = info.context
    if isinstance(context, CacheContext):
        return context.cache
    if isinstance(context, dict) and isinstance(context.get("cache"), Cache):
        return context["cache"]
    raise LookupError("GraphQL context does not carry a single-user-cache Cache")
