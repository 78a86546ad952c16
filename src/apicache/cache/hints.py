"""Call-scoped cache-key hints.

A hint replaces the digest-based cache key with a human-readable one, so
cached files can be found by name (``orders/2024-body.json`` instead of
``5d41402abc4b2a76b9719d911017c592-body.json``).

The hint lives in a :class:`contextvars.ContextVar`. Every thread starts with
its own empty context and every asyncio task runs in a copy of the context it
was created from, so concurrent calls never observe each other's hints. The
code that sets a hint owns it and clears it when its call is done; the
:func:`cache_hint` context manager does both.

A hint can also travel with a single request through
``request.extensions["cache_hint"]``, which takes precedence over the
ambient value (see :meth:`~apicache.cache.disk.ResponseDiskCache.key_for`).

Example::

    with cache_hint("orders", "2024"):
        client.get("https://api.example.com/orders?year=2024")
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Optional

HINT_EXTENSION = "cache_hint"
"""Request extension key carrying a per-request hint."""

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")

_current_hint: ContextVar[Optional[str]] = ContextVar("apicache_cache_hint", default=None)


def _sanitize_part(part: str) -> str:
    cleaned = _UNSAFE_CHARS.sub("_", part.strip())
    # "." and ".." would address the parent of the cache root
    if cleaned.strip(".") == "":
        return "_" * len(cleaned)
    return cleaned


def sanitize_hint(*parts: Optional[str]) -> Optional[str]:
    """Turn hint parts into a cache key.

    Every character outside ``[A-Za-z0-9._-]`` becomes ``_``, blank parts are
    dropped and the remaining parts are joined with ``/`` so that related
    entries group into directories.

    Args:
        *parts: Hint segments, e.g. ``("orders", "2024")``.

    Returns:
        The sanitized key (``"orders/2024"``), or ``None`` when every part
        is blank.
    """
    cleaned = [_sanitize_part(str(p)) for p in parts if p is not None and str(p).strip()]
    if not cleaned:
        return None
    return "/".join(cleaned)


def set_hint(*parts: Optional[str]) -> Token:
    """Set the hint for the current thread or task.

    Returns:
        A token that :func:`clear_hint` uses to restore the previous hint.
    """
    return _current_hint.set(sanitize_hint(*parts))


def get_hint() -> Optional[str]:
    """Return the sanitized hint of the current thread or task, if any."""
    return _current_hint.get()


def clear_hint(token: Optional[Token] = None) -> None:
    """Clear the current hint.

    Args:
        token: The token returned by :func:`set_hint`. When given, the hint
            that was active before that call is restored; otherwise the hint
            is simply unset.
    """
    if token is not None:
        _current_hint.reset(token)
    else:
        _current_hint.set(None)


@contextmanager
def cache_hint(*parts: Optional[str]) -> Iterator[Optional[str]]:
    """Apply a hint for the duration of a ``with`` block.

    Yields:
        The sanitized hint in effect inside the block.
    """
    token = set_hint(*parts)
    try:
        yield _current_hint.get()
    finally:
        _current_hint.reset(token)
