"""Shared test fixtures for apicache.

Provides reusable fixtures for disk caches, rate limiters, fake networks and
isolated configuration environments. These fixtures are automatically
discovered by pytest and available to all test modules without explicit
imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import httpx
import pytest

from apicache.cache import ResponseDiskCache, clear_hint
from apicache.limiter import CallRateLimiter


# ---------------------------------------------------------------------------
# Hint isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clear_hint_between_tests() -> None:
    """Make sure no test leaks an ambient cache hint into the next one."""
    yield
    clear_hint()


# ---------------------------------------------------------------------------
# Cache and limiter fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    """Directory used as the cache root (not created in advance)."""
    return tmp_path / "api-cache"


@pytest.fixture
def cache(cache_dir: Path) -> ResponseDiskCache:
    """A ResponseDiskCache rooted in a temporary directory."""
    return ResponseDiskCache(cache_dir)


@pytest.fixture
def fast_limiter() -> CallRateLimiter:
    """A limiter with a short delay and no random bonus."""
    return CallRateLimiter(min_delay_ms=50, max_random_bonus_ms=0)


# ---------------------------------------------------------------------------
# Fake network
# ---------------------------------------------------------------------------


class RecordingHandler:
    """MockTransport handler that counts calls and returns a canned response."""

    def __init__(
        self,
        body: bytes = b'{"id": 1}',
        status_code: int = 200,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.body = body
        self.status_code = status_code
        self.headers = headers if headers is not None else {"Content-Type": "application/json"}
        self.requests: list[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, headers=self.headers, content=self.body)


@pytest.fixture
def handler() -> RecordingHandler:
    """A recording handler returning a small JSON body."""
    return RecordingHandler()


@pytest.fixture
def make_handler() -> Callable[..., RecordingHandler]:
    """Factory for recording handlers with custom responses."""
    return RecordingHandler


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and HOME to subdirectories of tmp_path so that
    tests never touch real user config, clears all APICACHE_* environment
    variables and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("apicache.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path / "home"))

    for var in [
        "APICACHE_CONFIG",
        "APICACHE_CACHE_ENABLED",
        "APICACHE_CACHE_DIR",
        "APICACHE_RATE_LIMIT_ENABLED",
        "APICACHE_MIN_WAIT_MS",
        "APICACHE_RANDOM_MS",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path
