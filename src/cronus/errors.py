"""Exception types raised by the process registry.

Transport failures from the backing store (redis, SQLAlchemy) are not
wrapped: they propagate to the caller as raised by the client library.
"""

from __future__ import annotations


class CronusError(Exception):
    """Base class for registry errors."""


class InvalidArgumentError(CronusError, TypeError):
    """An argument had the wrong type.

    Raised before any store round trip, so the registry is left untouched.
    """

    def __init__(self, parameter: str, expected: str, value: object):
        self.parameter = parameter
        self.expected = expected
        self.value = value
        super().__init__(f"{parameter} was not {expected} (got {type(value).__name__})")


class StoreError(CronusError):
    """The store returned a document the registry cannot interpret, or an
    atomic field update could not be completed."""


class ConfigurationError(CronusError, ValueError):
    """Settings select an unknown backend or omit a required connection URL."""
