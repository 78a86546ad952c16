"""Disk-based response caching for apicache.

This package provides :class:`ResponseDiskCache`, which stores whole HTTP
responses as a body file plus a headers file keyed by request identity, and
the call-scoped hint machinery that lets callers choose readable cache keys.

The cache is consumed by
:class:`~apicache.client.transports.DiskCachingTransport` and is controlled
by the ``cache`` section of the configuration
(:class:`~apicache.models.CacheConfig`).
"""

from apicache.cache.disk import CacheEntry, ResponseDiskCache, materialize_response
from apicache.cache.hints import cache_hint, clear_hint, get_hint, sanitize_hint, set_hint
from apicache.cache.paths import HintPathBuilder

__all__ = [
    "CacheEntry",
    "HintPathBuilder",
    "ResponseDiskCache",
    "cache_hint",
    "clear_hint",
    "get_hint",
    "materialize_response",
    "sanitize_hint",
    "set_hint",
]
