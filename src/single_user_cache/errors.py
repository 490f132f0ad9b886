"""Exceptions raised by single-user-cache."""

from __future__ import annotations


class SingleUserCacheError(Exception):
    """Base exception for single-user-cache errors."""

    pass


class ConfigurationError(SingleUserCacheError, TypeError):
    """Invalid operation registration (batch function, serializer, options)."""

    pass


class UnknownOperationError(SingleUserCacheError, LookupError):
    """Operation name was never registered on the factory."""

    pass


class UnserializableArgumentError(SingleUserCacheError, TypeError):
    """A lookup key could not be derived from the argument."""

    pass


class BatchResponseError(SingleUserCacheError):
    """Batch function returned a response that cannot be mapped to its queries."""

    def __init__(self, operation: str, expected: int, received: int | None) -> None:
        self.operation = operation
        self.expected = expected
        self.received = received
        if received is None:
            message = (
                f"The response for {operation} is not a sequence "
                f"(expected {expected} elements)"
            )
        else:
            message = (
                f"The number of elements in the response for {operation} does not "
                f"match: expected {expected}, got {received}"
            )
        super().__init__(message)
