"""Build httpx clients and transports from an :class:`~apicache.models.ApiCacheConfig`.

The factories honour the ``enabled`` flags of both configuration sections:

============  ==============  =====================================
cache         rate limiter    transport
============  ==============  =====================================
enabled       enabled         caching transport paced on misses
enabled       disabled        caching transport, no pacing
disabled      enabled         rate-limited transport
disabled      disabled        inner transport unchanged
============  ==============  =====================================

A limiter passed in by the host is used as-is, so one instance can pace
several clients talking to the same origin. When none is passed and pacing
is enabled, each call to a factory builds a fresh
:class:`~apicache.limiter.generic.CallRateLimiter`.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from apicache.cache.disk import ResponseDiskCache
from apicache.client.transports import (
    AsyncDiskCachingTransport,
    AsyncRateLimitedTransport,
    DiskCachingTransport,
    RateLimitedTransport,
)
from apicache.limiter.base import RateLimiter
from apicache.limiter.generic import CallRateLimiter
from apicache.models import ApiCacheConfig


def _resolve_limiter(
    config: ApiCacheConfig,
    rate_limiter: Optional[RateLimiter],
) -> Optional[RateLimiter]:
    if not config.rate_limiter.enabled:
        return None
    if rate_limiter is not None:
        return rate_limiter
    return CallRateLimiter.from_config(config.rate_limiter)


def _resolve_cache(
    config: ApiCacheConfig,
    cache: Optional[ResponseDiskCache],
) -> Optional[ResponseDiskCache]:
    if not config.cache.enabled:
        return None
    if cache is not None:
        return cache
    return ResponseDiskCache.from_config(config.cache)


def build_transport(
    config: Optional[ApiCacheConfig] = None,
    transport: Optional[httpx.BaseTransport] = None,
    *,
    cache: Optional[ResponseDiskCache] = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> httpx.BaseTransport:
    """Wrap *transport* according to *config*.

    Args:
        config: Effective configuration. Defaults to ``ApiCacheConfig()``.
        transport: Inner transport. Defaults to :class:`httpx.HTTPTransport`.
        cache: Pre-built cache to use instead of one built from config.
        rate_limiter: Shared limiter to use instead of one built from config.

    Raises:
        ConfigError: If the cache directory cannot be created.
    """
    config = config or ApiCacheConfig()
    inner = transport if transport is not None else httpx.HTTPTransport()
    limiter = _resolve_limiter(config, rate_limiter)
    disk_cache = _resolve_cache(config, cache)

    if disk_cache is not None:
        return DiskCachingTransport(disk_cache, inner, rate_limiter=limiter)
    if limiter is not None:
        return RateLimitedTransport(limiter, inner)
    return inner


def build_async_transport(
    config: Optional[ApiCacheConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    *,
    cache: Optional[ResponseDiskCache] = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> httpx.AsyncBaseTransport:
    """Async counterpart of :func:`build_transport`."""
    config = config or ApiCacheConfig()
    inner = transport if transport is not None else httpx.AsyncHTTPTransport()
    limiter = _resolve_limiter(config, rate_limiter)
    disk_cache = _resolve_cache(config, cache)

    if disk_cache is not None:
        return AsyncDiskCachingTransport(disk_cache, inner, rate_limiter=limiter)
    if limiter is not None:
        return AsyncRateLimitedTransport(limiter, inner)
    return inner


def create_client(
    config: Optional[ApiCacheConfig] = None,
    *,
    transport: Optional[httpx.BaseTransport] = None,
    cache: Optional[ResponseDiskCache] = None,
    rate_limiter: Optional[RateLimiter] = None,
    **client_kwargs: Any,
) -> httpx.Client:
    """Create an :class:`httpx.Client` with caching and pacing installed.

    Args:
        config: Effective configuration. Defaults to ``ApiCacheConfig()``.
        transport: Inner transport performing real calls.
        cache: Pre-built cache.
        rate_limiter: Shared limiter.
        **client_kwargs: Forwarded to :class:`httpx.Client` (``base_url``,
            ``timeout``, ``headers``, ...).

    Example::

        with create_client(config, base_url="https://api.example.com") as client:
            client.get("/users")
    """
    wrapped = build_transport(config, transport, cache=cache, rate_limiter=rate_limiter)
    return httpx.Client(transport=wrapped, **client_kwargs)


def create_async_client(
    config: Optional[ApiCacheConfig] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    cache: Optional[ResponseDiskCache] = None,
    rate_limiter: Optional[RateLimiter] = None,
    **client_kwargs: Any,
) -> httpx.AsyncClient:
    """Create an :class:`httpx.AsyncClient` with caching and pacing installed."""
    wrapped = build_async_transport(config, transport, cache=cache, rate_limiter=rate_limiter)
    return httpx.AsyncClient(transport=wrapped, **client_kwargs)
