"""GraphQL integration for single-user-cache.

Provides a Strawberry context that carries one cache per request, so
resolvers issued in the same execution step share a batch.
"""

from single_user_cache.graphql.context import CacheContext, get_cache, make_context_getter

__all__ = ["CacheContext", "get_cache", "make_context_getter"]
