"""Tests for the client and transport factories."""

from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
import pytest

from apicache.cache import ResponseDiskCache
from apicache.client import (
    AsyncDiskCachingTransport,
    AsyncRateLimitedTransport,
    DiskCachingTransport,
    RateLimitedTransport,
    build_async_transport,
    build_transport,
    create_async_client,
    create_client,
)
from apicache.exceptions import ConfigError
from apicache.limiter import CallRateLimiter
from apicache.models import ApiCacheConfig, CacheConfig, RateLimiterConfig


def _config(cache_dir: Path, *, cache: bool = True, limiter: bool = True) -> ApiCacheConfig:
    return ApiCacheConfig(
        cache=CacheConfig(enabled=cache, directory=str(cache_dir)),
        rate_limiter=RateLimiterConfig(
            enabled=limiter, min_wait_ms_between_calls=0, random_ms_addition=0
        ),
    )


class TestBuildTransport:
    def test_cache_and_limiter(self, cache_dir: Path, handler) -> None:
        transport = build_transport(_config(cache_dir), httpx.MockTransport(handler))
        assert isinstance(transport, DiskCachingTransport)
        assert isinstance(transport.rate_limiter, CallRateLimiter)
        assert transport.cache.directory == cache_dir

    def test_cache_only(self, cache_dir: Path, handler) -> None:
        transport = build_transport(_config(cache_dir, limiter=False), httpx.MockTransport(handler))
        assert isinstance(transport, DiskCachingTransport)
        assert transport.rate_limiter is None

    def test_limiter_only(self, cache_dir: Path, handler) -> None:
        transport = build_transport(_config(cache_dir, cache=False), httpx.MockTransport(handler))
        assert isinstance(transport, RateLimitedTransport)
        assert not cache_dir.exists()

    def test_neither(self, cache_dir: Path, handler) -> None:
        inner = httpx.MockTransport(handler)
        assert build_transport(_config(cache_dir, cache=False, limiter=False), inner) is inner

    def test_limiter_settings_from_config(self, cache_dir: Path, handler) -> None:
        config = ApiCacheConfig(
            cache=CacheConfig(enabled=False),
            rate_limiter=RateLimiterConfig(min_wait_ms_between_calls=321, random_ms_addition=4),
        )
        transport = build_transport(config, httpx.MockTransport(handler))
        assert transport.rate_limiter.min_delay_ms == 321
        assert transport.rate_limiter.max_random_bonus_ms == 4

    def test_shared_limiter_is_used(self, cache_dir: Path, handler) -> None:
        shared = CallRateLimiter(0, 0)
        first = build_transport(_config(cache_dir), httpx.MockTransport(handler), rate_limiter=shared)
        second = build_transport(
            _config(cache_dir, cache=False), httpx.MockTransport(handler), rate_limiter=shared
        )
        assert first.rate_limiter is shared
        assert second.rate_limiter is shared

    def test_disabled_limiter_ignores_passed_instance(self, cache_dir: Path, handler) -> None:
        transport = build_transport(
            _config(cache_dir, limiter=False),
            httpx.MockTransport(handler),
            rate_limiter=CallRateLimiter(),
        )
        assert transport.rate_limiter is None

    def test_prebuilt_cache_is_used(self, cache: ResponseDiskCache, tmp_path: Path, handler) -> None:
        transport = build_transport(
            _config(tmp_path / "unused"), httpx.MockTransport(handler), cache=cache
        )
        assert transport.cache is cache

    def test_uncreatable_directory(self, tmp_path: Path, handler) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("file")
        with pytest.raises(ConfigError):
            build_transport(_config(blocker / "cache"), httpx.MockTransport(handler))

    def test_async_variants(self, cache_dir: Path, handler) -> None:
        inner = httpx.MockTransport(handler)
        assert isinstance(build_async_transport(_config(cache_dir), inner), AsyncDiskCachingTransport)
        assert isinstance(
            build_async_transport(_config(cache_dir, cache=False), inner), AsyncRateLimitedTransport
        )
        assert build_async_transport(_config(cache_dir, cache=False, limiter=False), inner) is inner


class TestCreateClient:
    def test_client_caches(self, cache_dir: Path, handler) -> None:
        with create_client(
            _config(cache_dir),
            transport=httpx.MockTransport(handler),
            base_url="http://example.com",
        ) as client:
            assert client.get("/items/1").json() == {"id": 1}
            assert client.get("/items/1").json() == {"id": 1}
        assert handler.calls == 1
        assert ResponseDiskCache(cache_dir).stats()["entries"] == 1

    def test_client_kwargs_forwarded(self, cache_dir: Path, handler) -> None:
        with create_client(
            _config(cache_dir, cache=False),
            transport=httpx.MockTransport(handler),
            headers={"User-Agent": "apicache-tests"},
        ) as client:
            client.get("http://example.com/")
        assert handler.requests[0].headers["User-Agent"] == "apicache-tests"

    def test_async_client_caches(self, cache_dir: Path, handler) -> None:
        async def run() -> None:
            async with create_async_client(
                _config(cache_dir),
                transport=httpx.MockTransport(handler),
                base_url="http://example.com",
            ) as client:
                await client.get("/items/1")
                await client.get("/items/1")

        asyncio.run(run())
        assert handler.calls == 1
