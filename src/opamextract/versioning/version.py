"""opam version ordering.

opam orders versions with the Debian algorithm applied to the whole string:
the version is split into alternating non-digit and digit runs, non-digit
runs compare character by character (``~`` sorts before anything, even the
end of the string, and letters sort before other characters), digit runs
compare numerically.
"""

from __future__ import annotations

import functools
import re
from typing import List, Tuple

from opamextract.errors import MalformedVersion

__all__ = ["OpamVersion", "compare", "parse_version"]

_VALID_VERSION = re.compile(r"[A-Za-z0-9_+.~-]+")
_SEGMENT = re.compile(r"(\D*)(\d*)")

_Segments = Tuple[Tuple[str, int], ...]


def _char_order(ch: str) -> int:
    if ch == "~":
        return -1
    if ch.isalpha():
        return ord(ch)
    return ord(ch) + 256


def _compare_text(a: str, b: str) -> int:
    for i in range(max(len(a), len(b))):
        oa = _char_order(a[i]) if i < len(a) else 0
        ob = _char_order(b[i]) if i < len(b) else 0
        if oa != ob:
            return -1 if oa < ob else 1
    return 0


def _segments(raw: str) -> _Segments:
    parts: List[Tuple[str, int]] = []
    for text, digits in _SEGMENT.findall(raw):
        if not text and not digits:
            continue
        parts.append((text, int(digits) if digits else 0))
    # Trailing empty segments compare equal to the end of the string.
    while parts and parts[-1] == ("", 0):
        parts.pop()
    return tuple(parts)


def _compare_segments(a: _Segments, b: _Segments) -> int:
    for i in range(max(len(a), len(b))):
        text_a, num_a = a[i] if i < len(a) else ("", 0)
        text_b, num_b = b[i] if i < len(b) else ("", 0)
        result = _compare_text(text_a, text_b)
        if result:
            return result
        if num_a != num_b:
            return -1 if num_a < num_b else 1
    return 0


@functools.total_ordering
class OpamVersion:
    """A package version with opam ordering semantics."""

    __slots__ = ("raw", "_segments")

    def __init__(self, raw: str):
        self.raw = raw
        self._segments = _segments(raw)

    def compare(self, other: "OpamVersion") -> int:
        """Return -1, 0 or 1 as this version sorts before, with or after ``other``."""
        return _compare_segments(self._segments, other._segments)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OpamVersion):
            return NotImplemented
        return self.compare(other) == 0

    def __lt__(self, other: "OpamVersion") -> bool:
        if not isinstance(other, OpamVersion):
            return NotImplemented
        return self.compare(other) < 0

    def __hash__(self) -> int:
        return hash(self._segments)

    def __str__(self) -> str:
        return self.raw

    def __repr__(self) -> str:
        return f"OpamVersion({self.raw!r})"


def compare(v1: str, v2: str) -> int:
    """Compare two version strings without validating them."""
    return _compare_segments(_segments(v1), _segments(v2))


def parse_version(raw: str) -> OpamVersion:
    """Validate ``raw`` and wrap it as an :class:`OpamVersion`.

    Raises:
        MalformedVersion: If the string is empty or has characters opam rejects.
    """
    if not isinstance(raw, str) or not _VALID_VERSION.fullmatch(raw):
        raise MalformedVersion(f"Malformed version: {raw!r}")
    return OpamVersion(raw)
