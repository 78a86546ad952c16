"""httpx transports that add disk caching and call pacing.

httpx sends every request through a *transport*. The classes here wrap an
inner transport (by default the real network one) and intercept each
request on its way out:

- :class:`DiskCachingTransport` -- answers from
  :class:`~apicache.cache.disk.ResponseDiskCache` when the entry exists;
  otherwise paces the call with an optional
  :class:`~apicache.limiter.base.RateLimiter`, sends it, stores the
  response and returns it.
- :class:`RateLimitedTransport` -- paces every call, no caching.

:class:`AsyncDiskCachingTransport` and :class:`AsyncRateLimitedTransport`
are the :class:`httpx.AsyncClient` counterparts. Their disk I/O is blocking,
like the synchronous versions.

Cache misses read the whole body before returning, so the response handed
back to the client is already buffered. Errors from the inner transport and
:class:`~apicache.exceptions.CacheIOError` from the cache propagate to the
caller unchanged; nothing is retried here.

Example::

    cache = ResponseDiskCache("./api-cache")
    limiter = CallRateLimiter(min_delay_ms=1000)
    transport = DiskCachingTransport(cache, rate_limiter=limiter)

    with httpx.Client(transport=transport) as client:
        client.get("https://api.example.com/items/1")   # network, stored
        client.get("https://api.example.com/items/1")   # disk
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from apicache.cache.disk import ResponseDiskCache, materialize_response
from apicache.limiter.base import RateLimiter

logger = logging.getLogger(__name__)


class DiskCachingTransport(httpx.BaseTransport):
    """Serve responses from disk, fetching and storing them on a miss.

    Args:
        cache: The disk cache to read and fill.
        transport: Inner transport performing real calls. Defaults to
            :class:`httpx.HTTPTransport`.
        rate_limiter: Optional limiter pacing the calls that miss the
            cache. Hits never touch it.
    """

    def __init__(
        self,
        cache: ResponseDiskCache,
        transport: Optional[httpx.BaseTransport] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ) -> None:
        self._cache = cache
        self._transport = transport if transport is not None else httpx.HTTPTransport()
        self._rate_limiter = rate_limiter

    @property
    def cache(self) -> ResponseDiskCache:
        return self._cache

    @property
    def rate_limiter(self) -> Optional[RateLimiter]:
        return self._rate_limiter

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        key = self._cache.key_for(request)
        entry = self._cache.lookup(key)
        if entry is not None:
            logger.info("Cache HIT (disk): %s %s", request.method, request.url)
            return self._cache.materialize(entry, request)

        if self._rate_limiter is not None:
            self._rate_limiter.wait_as_needed()

        logger.info("Cache MISS: %s %s", request.method, request.url)
        try:
            live = self._transport.handle_request(request)
            try:
                body = live.read()
            finally:
                live.close()
            response = materialize_response(body, live.headers, live.status_code, request)
            self._cache.store(key, response.headers, body)
        finally:
            if self._rate_limiter is not None:
                self._rate_limiter.reset_last_call_time()
        return response

    def close(self) -> None:
        self._transport.close()


class RateLimitedTransport(httpx.BaseTransport):
    """Pace every call through a rate limiter.

    The limiter is reset as soon as the inner transport returns (or fails),
    before the body is streamed.

    Args:
        rate_limiter: The limiter to wait on.
        transport: Inner transport. Defaults to :class:`httpx.HTTPTransport`.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._rate_limiter = rate_limiter
        self._transport = transport if transport is not None else httpx.HTTPTransport()

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        self._rate_limiter.wait_as_needed()
        try:
            return self._transport.handle_request(request)
        finally:
            self._rate_limiter.reset_last_call_time()

    def close(self) -> None:
        self._transport.close()


class AsyncDiskCachingTransport(httpx.AsyncBaseTransport):
    """Async counterpart of :class:`DiskCachingTransport`.

    Args:
        cache: The disk cache to read and fill.
        transport: Inner transport. Defaults to
            :class:`httpx.AsyncHTTPTransport`.
        rate_limiter: Optional limiter pacing the calls that miss the cache.
    """

    def __init__(
        self,
        cache: ResponseDiskCache,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ) -> None:
        self._cache = cache
        self._transport = transport if transport is not None else httpx.AsyncHTTPTransport()
        self._rate_limiter = rate_limiter

    @property
    def cache(self) -> ResponseDiskCache:
        return self._cache

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        key = self._cache.key_for(request)
        entry = self._cache.lookup(key)
        if entry is not None:
            logger.info("Cache HIT (disk): %s %s", request.method, request.url)
            return self._cache.materialize(entry, request)

        if self._rate_limiter is not None:
            await self._rate_limiter.wait_as_needed_async()

        logger.info("Cache MISS: %s %s", request.method, request.url)
        try:
            live = await self._transport.handle_async_request(request)
            try:
                body = await live.aread()
            finally:
                await live.aclose()
            response = materialize_response(body, live.headers, live.status_code, request)
            self._cache.store(key, response.headers, body)
        finally:
            if self._rate_limiter is not None:
                self._rate_limiter.reset_last_call_time()
        return response

    async def aclose(self) -> None:
        await self._transport.aclose()


class AsyncRateLimitedTransport(httpx.AsyncBaseTransport):
    """Async counterpart of :class:`RateLimitedTransport`."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._rate_limiter = rate_limiter
        self._transport = transport if transport is not None else httpx.AsyncHTTPTransport()

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        await self._rate_limiter.wait_as_needed_async()
        try:
            return await self._transport.handle_async_request(request)
        finally:
            self._rate_limiter.reset_last_call_time()

    async def aclose(self) -> None:
        await self._transport.aclose()
