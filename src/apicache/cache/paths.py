"""Hint path building: bucket identifiers into directory-like hint parts.

Caching thousands of entries under one directory makes them hard to browse.
:class:`HintPathBuilder` spreads identifiers over a small directory tree,
by numeric range or by alphabetic prefix, and hands the parts to
:func:`~apicache.cache.hints.cache_hint`::

    parts = HintPathBuilder().add("sets").explode("10236-1").build()
    # ['sets', '100000', '10000', '10000', '10200', '10236-1']
    with cache_hint(*parts):
        client.get(f"{base}/sets/10236-1/")
"""

from __future__ import annotations

import re
from typing import Optional

NUMBER_BUCKETS = (100_000, 10_000, 1_000, 100)

_PREFIXED_NUMBER = re.compile(r"^([a-z]+)\d+$", re.IGNORECASE)


class HintPathBuilder:
    """Fluent builder for cache-hint segments."""

    def __init__(self) -> None:
        self._parts: list[str] = []

    def add(self, segment: str) -> HintPathBuilder:
        """Append a literal segment."""
        self._parts.append(segment)
        return self

    def explode(self, value: Optional[str]) -> HintPathBuilder:
        """Bucket *value* by number when it contains ``-``, otherwise by prefix.

        ``None`` adds nothing.
        """
        if value is None:
            return self
        if "-" in value:
            return self.explode_number(value)
        return self.explode_string_number(value)

    def explode_number(self, number: str) -> HintPathBuilder:
        """Bucket a number (or the integer before its first ``-``) by magnitude.

        Adds one segment per bucket size in :data:`NUMBER_BUCKETS`
        (``(n // size) * size``, or ``size`` itself when that is 0), then the
        original value. Values without an integer prefix go under ``other``.
        """
        head = number.split("-")[0]
        try:
            cleaned = int(head)
        except ValueError:
            self._parts.extend(["other", number])
            return self

        for size in NUMBER_BUCKETS:
            bucket = (cleaned // size) * size
            self._parts.append(str(bucket if bucket != 0 else size))
        self._parts.append(number)
        return self

    def explode_string_number(self, value: str) -> HintPathBuilder:
        """Group ``<letters><digits>`` values under their alphabetic prefix."""
        match = _PREFIXED_NUMBER.match(value)
        if match:
            self._parts.extend([match.group(1), value])
        else:
            self._parts.extend(["other", value])
        return self

    def explode_on_groups(self, value: str, regex: str) -> HintPathBuilder:
        """Add every capture group of *regex* found in *value*.

        Falls back to ``regex_no_match``/*value* when the pattern does not
        match and to ``regex_other``/*value* when it does not compile.
        """
        try:
            match = re.search(regex, value, re.IGNORECASE)
        except re.error:
            self._parts.extend(["regex_other", value])
            return self

        if match:
            self._parts.extend(g for g in match.groups() if g is not None)
        else:
            self._parts.extend(["regex_no_match", value])
        return self

    def build(self) -> list[str]:
        """Return a copy of the segments collected so far."""
        return list(self._parts)

    def reset(self) -> HintPathBuilder:
        """Drop all collected segments."""
        self._parts.clear()
        return self
