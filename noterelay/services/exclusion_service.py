"""Glob-based exclusion of notes from sync."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


def _normalize(path: str) -> str:
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.lstrip("/")


@lru_cache(maxsize=256)
def compile_glob(pattern: str) -> re.Pattern[str]:
    """Translate a glob into a regex matched against a full relative path.

    ``*`` and ``?`` stay inside one path segment; a ``**`` segment spans any
    number of segments, including none.
    """
    pattern = _normalize(pattern)
    n = len(pattern)
    parts: list[str] = []
    i = 0
    while i < n:
        c = pattern[i]
        if c == "*":
            j = i
            while j < n and pattern[j] == "*":
                j += 1
            whole_segment = (i == 0 or pattern[i - 1] == "/") and (j == n or pattern[j] == "/")
            if j - i >= 2 and whole_segment:
                if j == n:
                    parts.append(".*")
                else:
                    parts.append("(?:[^/]*/)*")
                    j += 1  # the slash is part of the globstar segment
            else:
                parts.append("[^/]*")
            i = j
            continue
        if c == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(c))
        i += 1
    return re.compile("".join(parts), re.DOTALL)


def matches_pattern(path: str, pattern: str) -> bool:
    """Return True if *path* matches a single glob *pattern*.

    Patterns without a slash also match against the file name alone.
    """
    normalized = _normalize(path)
    regex = compile_glob(pattern)
    if regex.fullmatch(normalized):
        return True
    if "/" not in _normalize(pattern):
        return regex.fullmatch(normalized.rsplit("/", maxsplit=1)[-1]) is not None
    return False


def is_excluded(path: str, patterns: Iterable[str]) -> bool:
    """Return True if any pattern matches *path*.  No patterns means never excluded."""
    return any(matches_pattern(path, pattern) for pattern in patterns if pattern)
