"""Pydantic configuration models shared across apicache.

This is the single source of truth for configuration shapes. The models are
loaded from JSON by :mod:`apicache.config` and consumed by the cache, the
rate limiter and the client factory:

* :class:`CacheConfig` -- the ``cache`` section (disk cache on/off, root
  directory, which response headers are persisted).
* :class:`RateLimiterConfig` -- the ``rate_limiter`` section (pacing on/off,
  minimum interval, random bonus).
* :class:`ApiCacheConfig` -- the top-level document combining both.

Field names are snake_case in Python. The camelCase spelling
(``minWaitMsBetweenCalls``, ``rateLimiter``, ...) is accepted as well when
validating, so config files written for other tooling load unchanged.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_CACHE_DIRECTORY = "./api-cache"
DEFAULT_CACHED_HEADERS = ("Content-Type", "Content-Length")


class CacheConfig(BaseModel):
    """Disk response cache settings.

    Example::

        CacheConfig(directory="/var/cache/my-app", cached_headers=["Content-Type", "ETag"])
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    enabled: bool = Field(default=True, description="Enable response caching")
    directory: str = Field(
        default=DEFAULT_CACHE_DIRECTORY,
        description="Root directory holding the cached body and header files",
    )
    cached_headers: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CACHED_HEADERS),
        description="Response headers persisted alongside the body",
    )


class RateLimiterConfig(BaseModel):
    """Call pacing settings for :class:`~apicache.limiter.generic.CallRateLimiter`."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    enabled: bool = Field(default=True, description="Enable call pacing")
    min_wait_ms_between_calls: int = Field(
        default=1000, ge=0, description="Minimum interval between paced calls"
    )
    random_ms_addition: int = Field(
        default=50, ge=0, description="Upper bound of the random bonus added to a wait"
    )


class ApiCacheConfig(BaseModel):
    """Top-level configuration document.

    Loaded and merged by :func:`~apicache.config.resolve_config`; see that
    function for the full precedence chain.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    cache: CacheConfig = Field(default_factory=CacheConfig)
    rate_limiter: RateLimiterConfig = Field(default_factory=RateLimiterConfig)
