"""Errors raised by the persistence layer."""


class NoSuchRowError(LookupError):
    """No row matched a lookup, mutation or aggregate."""

    def __init__(self, message: str = "no such row") -> None:
        super().__init__(message)


class RepositoryError(Exception):
    """Any other store-level failure, wrapped with the failing operation."""
