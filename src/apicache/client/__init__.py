"""httpx integration for apicache.

Provides transports that add disk caching and call pacing to any
:class:`httpx.Client` or :class:`httpx.AsyncClient`, and factories that
build such clients from configuration.

Classes:
    :class:`DiskCachingTransport` -- cache with optional pacing on misses.
    :class:`RateLimitedTransport` -- pacing only.
    :class:`AsyncDiskCachingTransport`, :class:`AsyncRateLimitedTransport`
    -- async counterparts.

Example::

    from apicache.client import create_client

    with create_client(config, rate_limiter=limiter) as client:
        resp = client.get("https://api.example.com/users")
"""

from apicache.client.factory import (
    build_async_transport,
    build_transport,
    create_async_client,
    create_client,
)
from apicache.client.transports import (
    AsyncDiskCachingTransport,
    AsyncRateLimitedTransport,
    DiskCachingTransport,
    RateLimitedTransport,
)

__all__ = [
    "AsyncDiskCachingTransport",
    "AsyncRateLimitedTransport",
    "DiskCachingTransport",
    "RateLimitedTransport",
    "build_async_transport",
    "build_transport",
    "create_async_client",
    "create_client",
]
