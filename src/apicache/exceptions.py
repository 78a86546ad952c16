"""Exception hierarchy for apicache.

All exceptions inherit from :class:`ApiCacheError` so a host application
can catch every library failure with a single ``except`` clause.

Subclass hierarchy::

    ApiCacheError
    +-- ConfigError
    +-- CacheIOError
    |   +-- CorruptCacheEntryError
    +-- WaitCancelledError

None of these are retried by the library. Retry policy, if any, belongs to
the transport wrapped by :mod:`apicache.client.transports`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class ApiCacheError(Exception):
    """Base exception for all apicache errors."""


class ConfigError(ApiCacheError):
    """Raised for configuration problems.

    Covers invalid JSON or values in a config file or environment variable,
    and a cache directory that cannot be created. A cache that fails to
    initialise is unusable, so this error is meant to abort start-up of the
    component that depends on it.
    """


class CacheIOError(ApiCacheError):
    """Raised when reading or writing a cache artifact fails.

    Surfaces out of the transport as a request failure. It is never
    converted into a cache hit or a cache miss.

    Args:
        message: Human-readable error description.
        path: The artifact that could not be read or written, if known.
    """

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class CorruptCacheEntryError(CacheIOError):
    """Raised when a persisted headers artifact cannot be parsed."""


class WaitCancelledError(ApiCacheError):
    """Raised when a rate-limiter wait is cancelled before it completes.

    Args:
        message: Human-readable error description.
        remaining_ms: Milliseconds of the wait that were skipped.
    """

    def __init__(self, message: str, remaining_ms: float = 0.0):
        super().__init__(message)
        self.remaining_ms = remaining_ms
