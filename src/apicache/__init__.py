"""apicache -- transparent disk caching and call pacing for httpx clients.

This package plugs into :mod:`httpx` at the transport layer. A
:class:`~apicache.client.transports.DiskCachingTransport` answers repeated
requests from files on disk, and a
:class:`~apicache.limiter.generic.CallRateLimiter` spaces out the calls that
do reach the network so a rate-limited origin is never hit faster than the
configured interval.

Typical usage::

    from apicache import CallRateLimiter, cache_hint, create_client, resolve_config

    config = resolve_config()
    limiter = CallRateLimiter.from_config(config.rate_limiter)

    with create_client(config, rate_limiter=limiter) as client:
        with cache_hint("orders", "2024"):
            client.get("https://api.example.com/orders?year=2024")

Modules:
    models: Pydantic configuration models.
    config: Layered configuration loading (files, environment, overrides).
    exceptions: Exception hierarchy.
    cache: Disk cache, cache-key hints and hint path building.
    limiter: Minimum-interval call pacing.
    client: httpx transports and client factories.
"""

from apicache.cache import HintPathBuilder, ResponseDiskCache, cache_hint
from apicache.client import (
    AsyncDiskCachingTransport,
    AsyncRateLimitedTransport,
    DiskCachingTransport,
    RateLimitedTransport,
    create_async_client,
    create_client,
)
from apicache.config import load_config, resolve_config
from apicache.limiter import CallRateLimiter, RateLimiter
from apicache.models import ApiCacheConfig, CacheConfig, RateLimiterConfig

__version__ = "0.1.0"

__all__ = [
    "ApiCacheConfig",
    "AsyncDiskCachingTransport",
    "AsyncRateLimitedTransport",
    "CacheConfig",
    "CallRateLimiter",
    "DiskCachingTransport",
    "HintPathBuilder",
    "RateLimitedTransport",
    "RateLimiter",
    "RateLimiterConfig",
    "ResponseDiskCache",
    "cache_hint",
    "create_async_client",
    "create_client",
    "load_config",
    "resolve_config",
]
