"""Disk-backed response cache.

Every cached response is stored as two files under the cache root:

* ``<key>-body.json`` -- the raw response bytes, whatever their media type;
* ``<key>-headers.properties`` -- a filtered set of response headers in
  property-file syntax (one ``name=value`` per line).

An entry exists only when both files exist. The headers file is written
last, and each file is replaced atomically, so a crash between the two
writes leaves a body without headers -- which reads as a miss and is
overwritten by the next store.

Cache keys come from :meth:`ResponseDiskCache.key_for`: a hint when one is
set (see :mod:`apicache.cache.hints`), otherwise the MD5 hex digest of
``"<METHOD> <URL>"``. Entries never expire and are never deleted by this
module.

Two concurrent misses for the same key may both write the entry. The last
writer wins; since both fetched the same resource the files stay
self-consistent, and readers never see a half-written file.

The HTTP status is not persisted: cache hits are always replayed as
``200 OK``.
"""

from __future__ import annotations

import hashlib
import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from http import HTTPStatus
from pathlib import Path
from typing import Any, Optional, Union

import httpx

from apicache.cache.hints import HINT_EXTENSION, get_hint, sanitize_hint
from apicache.exceptions import CacheIOError, ConfigError, CorruptCacheEntryError
from apicache.fileio import atomic_write
from apicache.models import DEFAULT_CACHED_HEADERS, CacheConfig

logger = logging.getLogger(__name__)

BODY_SUFFIX = "-body.json"
HEADERS_SUFFIX = "-headers.properties"

_HEADERS_COMMENT = "# Cached response headers"
_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "f": "\f"}
_REVERSE_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\r": "\\r", "\t": "\\t", "\f": "\\f"}
_SPECIAL = "=:#!"
# Only real line terminators; str.splitlines() also breaks on U+2028 and friends
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class CacheEntry:
    """A cached response as read from (or written to) disk.

    Attributes:
        key: The cache key the entry is stored under.
        body: Raw response bytes.
        headers: The persisted headers, one value per name.
    """

    key: str
    body: bytes
    headers: dict[str, str] = field(default_factory=dict)


# --- Header file format ---


def _escape(text: str) -> str:
    out = []
    for ch in text:
        if ch in _REVERSE_ESCAPES:
            out.append(_REVERSE_ESCAPES[ch])
        elif ch in _SPECIAL:
            out.append("\\" + ch)
        elif " " <= ch <= "~":
            out.append(ch)
        else:
            # UTF-16 code units, as Properties.store writes them
            units = ch.encode("utf-16-be", "surrogatepass")
            for i in range(0, len(units), 2):
                out.append("\\u%04X" % int.from_bytes(units[i : i + 2], "big"))
    return "".join(out)


def _join_surrogates(text: str) -> str:
    """Combine ``\\uD83D\\uDE00``-style escape pairs into one character."""
    if not any("\ud800" <= ch <= "\udfff" for ch in text):
        return text
    return text.encode("utf-16-be", "surrogatepass").decode("utf-16-be")


def _read_token(line: str, pos: int, stop_at_separator: bool) -> tuple[str, int]:
    """Unescape *line* from *pos* until a separator (or the end)."""
    chars: list[str] = []
    while pos < len(line):
        ch = line[pos]
        if ch == "\\":
            if pos + 1 >= len(line):
                raise ValueError("dangling escape at end of line")
            nxt = line[pos + 1]
            if nxt == "u":
                code = line[pos + 2 : pos + 6]
                if len(code) != 4:
                    raise ValueError(f"truncated unicode escape '\\u{code}'")
                chars.append(chr(int(code, 16)))
                pos += 6
                continue
            chars.append(_ESCAPES.get(nxt, nxt))
            pos += 2
            continue
        if stop_at_separator and ch in "=:":
            return "".join(chars), pos
        chars.append(ch)
        pos += 1
    return "".join(chars), pos


def format_headers(headers: Mapping[str, str]) -> str:
    """Serialise headers to property-file text.

    The output is pure ASCII: characters outside printable ASCII are written
    as ``\\uXXXX`` escapes.
    """
    lines = [_HEADERS_COMMENT]
    lines.extend(f"{_escape(name)}={_escape(value)}" for name, value in headers.items())
    return "\n".join(lines) + "\n"


def parse_headers(text: str) -> dict[str, str]:
    """Parse property-file text written by :func:`format_headers`.

    Also reads files produced by Java's ``Properties.store`` (``#`` and ``!``
    comments, ``:`` separators, ``\\uXXXX`` escapes).

    Raises:
        ValueError: On a line without a separator or a broken escape.
    """
    headers: dict[str, str] = {}
    for lineno, raw in enumerate(_LINE_BREAK.split(text), start=1):
        line = raw.strip()
        if not line or line[0] in "#!":
            continue
        key, pos = _read_token(line, 0, stop_at_separator=True)
        if pos >= len(line):
            raise ValueError(f"line {lineno} has no '=' separator")
        value, _ = _read_token(line, pos + 1, stop_at_separator=False)
        key = key.strip()
        if not key:
            raise ValueError(f"line {lineno} has an empty header name")
        headers[_join_surrogates(key)] = _join_surrogates(value.lstrip())
    return headers


# --- Responses ---


def _as_headers(headers: Union[httpx.Headers, Mapping[str, str]]) -> httpx.Headers:
    if isinstance(headers, httpx.Headers):
        return httpx.Headers(headers)
    # Values read back from disk may hold non-ASCII text
    return httpx.Headers(headers, encoding="utf-8")


def _normalize_headers(
    headers: Union[httpx.Headers, Mapping[str, str]],
    keep_content_length: bool = False,
) -> httpx.Headers:
    # Bodies are stored decoded, so encoding framing no longer applies;
    # httpx recomputes Content-Length from the buffered body.
    normalized = _as_headers(headers)
    dropped = ["content-encoding", "transfer-encoding"]
    if not keep_content_length:
        dropped.append("content-length")
    for name in dropped:
        if name in normalized:
            del normalized[name]
    return normalized


def materialize_response(
    body: bytes,
    headers: Union[httpx.Headers, Mapping[str, str]],
    status_code: int = HTTPStatus.OK,
    request: Optional[httpx.Request] = None,
) -> httpx.Response:
    """Wrap buffered bytes in an :class:`httpx.Response`.

    The body is fully loaded, so ``.content``, ``.text``, ``.json()`` and
    ``iter_bytes()`` can be used any number of times. ``Content-Length`` is
    set to ``len(body)``, except for ``HEAD`` requests, which carry no body
    and keep the origin's value.

    Args:
        body: The response bytes (already decoded).
        headers: Response headers.
        status_code: HTTP status. Cache hits use the ``200`` default.
        request: The request the response answers, if any.
    """
    is_head = request is not None and request.method == "HEAD"
    return httpx.Response(
        status_code=int(status_code),
        headers=_normalize_headers(headers, keep_content_length=is_head),
        content=body or b"",
        request=request,
    )


# --- Cache ---


class ResponseDiskCache:
    """Filesystem store for whole HTTP responses.

    Args:
        directory: Cache root. Created, with parents, if missing.
        cached_headers: Response header names persisted with each body.
            Matching is case-insensitive; the configured spelling is used on
            disk. Multi-valued headers keep their first value.
        body_suffix: File-name suffix of the body artifact.
        headers_suffix: File-name suffix of the headers artifact.

    Raises:
        ConfigError: If the cache root cannot be created.

    Example::

        cache = ResponseDiskCache("./api-cache")
        key = cache.key_for(request)
        entry = cache.lookup(key)
        if entry is None:
            entry = cache.store(key, response.headers, response.content)
    """

    def __init__(
        self,
        directory: Union[str, Path],
        *,
        cached_headers: Iterable[str] = DEFAULT_CACHED_HEADERS,
        body_suffix: str = BODY_SUFFIX,
        headers_suffix: str = HEADERS_SUFFIX,
    ) -> None:
        self._root = Path(directory)
        self._cached_headers = tuple(cached_headers)
        self._body_suffix = body_suffix
        self._headers_suffix = headers_suffix
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigError(f"Failed to create cache directory: {directory}: {exc}") from exc

    @classmethod
    def from_config(cls, config: CacheConfig) -> ResponseDiskCache:
        """Build a cache from the ``cache`` configuration section."""
        return cls(config.directory, cached_headers=config.cached_headers)

    @property
    def directory(self) -> Path:
        """The cache root."""
        return self._root

    @property
    def cached_headers(self) -> tuple[str, ...]:
        return self._cached_headers

    # ------------------------------------------------------------------ #
    # Keys and paths
    # ------------------------------------------------------------------ #

    @staticmethod
    def digest_key(method: str, url: Union[str, httpx.URL]) -> str:
        """MD5 hex digest of ``"<METHOD> <URL>"``."""
        raw = f"{method.upper()} {url}"
        return hashlib.md5(raw.encode("utf-8"), usedforsecurity=False).hexdigest()

    def key_for(self, request: httpx.Request) -> str:
        """Derive the cache key of *request*.

        Priority: a hint in ``request.extensions["cache_hint"]`` (string or
        sequence of parts), then the hint of the current thread or task,
        then :meth:`digest_key`.
        """
        extension = request.extensions.get(HINT_EXTENSION)
        if extension is not None:
            parts = [extension] if isinstance(extension, str) else list(extension)
            hint = sanitize_hint(*parts)
            if hint:
                return hint

        hint = get_hint()
        if hint:
            return hint
        return self.digest_key(request.method, request.url)

    def _check_key(self, key: str) -> None:
        if not key or key.startswith("/") or "\\" in key:
            raise ValueError(f"Invalid cache key: {key!r}")
        if any(part in ("", ".", "..") for part in key.split("/")):
            raise ValueError(f"Invalid cache key: {key!r}")

    def body_path(self, key: str) -> Path:
        """Path of the body artifact for *key*."""
        self._check_key(key)
        return self._root / f"{key}{self._body_suffix}"

    def headers_path(self, key: str) -> Path:
        """Path of the headers artifact for *key*."""
        self._check_key(key)
        return self._root / f"{key}{self._headers_suffix}"

    # ------------------------------------------------------------------ #
    # Read / write
    # ------------------------------------------------------------------ #

    def contains(self, key: str) -> bool:
        """Return ``True`` if both artifacts of *key* exist."""
        return self.body_path(key).is_file() and self.headers_path(key).is_file()

    def lookup(self, key: str) -> Optional[CacheEntry]:
        """Read the entry stored under *key*.

        Returns:
            The :class:`CacheEntry`, or ``None`` when either artifact is
            missing. Absence is the normal miss branch, not an error.

        Raises:
            CacheIOError: If an existing artifact cannot be read.
            CorruptCacheEntryError: If the headers artifact is malformed.
        """
        body_path = self.body_path(key)
        headers_path = self.headers_path(key)
        if not (body_path.is_file() and headers_path.is_file()):
            return None

        try:
            body = body_path.read_bytes()
            raw_headers = headers_path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            path = Path(exc.filename) if exc.filename else None
            raise CacheIOError(f"Cannot read cache entry '{key}': {exc}", path=path) from exc

        try:
            headers = parse_headers(raw_headers.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise CorruptCacheEntryError(
                f"Corrupt headers for cache entry '{key}' at {headers_path}: {exc}",
                path=headers_path,
            ) from exc

        return CacheEntry(key=key, body=body, headers=headers)

    def filter_headers(self, headers: Union[httpx.Headers, Mapping[str, str]]) -> dict[str, str]:
        """Select the configured headers, first value only."""
        source = _as_headers(headers)
        filtered: dict[str, str] = {}
        for name in self._cached_headers:
            values = source.get_list(name)
            if values:
                filtered[name] = values[0]
        return filtered

    def store(
        self,
        key: str,
        headers: Union[httpx.Headers, Mapping[str, str]],
        body: bytes,
    ) -> CacheEntry:
        """Persist a response under *key*.

        Both artifacts are fully written before this returns; the headers
        artifact goes last.

        Raises:
            CacheIOError: If either artifact cannot be written.
        """
        body_path = self.body_path(key)
        headers_path = self.headers_path(key)
        filtered = self.filter_headers(headers)

        try:
            atomic_write(body_path, body)
            atomic_write(headers_path, format_headers(filtered))
        except OSError as exc:
            path = Path(exc.filename) if exc.filename else None
            raise CacheIOError(f"Cannot write cache entry '{key}': {exc}", path=path) from exc

        logger.info("Saved response to disk (body + headers): %s", key)
        return CacheEntry(key=key, body=body, headers=filtered)

    def materialize(
        self,
        entry: CacheEntry,
        request: Optional[httpx.Request] = None,
    ) -> httpx.Response:
        """Build a ``200 OK`` response from a cached entry."""
        return materialize_response(entry.body, entry.headers, HTTPStatus.OK, request)

    def stats(self) -> dict[str, Any]:
        """Return cache statistics.

        Returns:
            A ``dict`` with ``directory`` (str path) and ``entries`` (number
            of complete entries).
        """
        entries = 0
        for headers_file in self._root.rglob(f"*{self._headers_suffix}"):
            stem = headers_file.name[: -len(self._headers_suffix)]
            if headers_file.with_name(stem + self._body_suffix).is_file():
                entries += 1
        return {"directory": str(self._root), "entries": entries}
