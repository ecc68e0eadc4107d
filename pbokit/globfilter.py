from __future__ import annotations

from typing import Iterable


def matches_glob(s: str, pattern: str) -> bool:
    """Match ``s`` against a pattern with ``*`` wildcards.

    Text before the first ``*`` must match exactly; the rest of the pattern is
    tried against every suffix of ``s`` starting at the wildcard position, so the
    wildcard may also match nothing. Later wildcards are handled by recursion.
    There is no support for ``?``, character classes or ``**``.
    """
    index = pattern.find("*")
    if index < 0:
        return s == pattern
    if s[:index] != pattern[:index]:
        return False
    tail = pattern[index + 1 :]
    for i in range(index, len(s) + 1):
        if matches_glob(s[i:], tail):
            return True
    return False


def file_allowed(name: str, exclude_patterns: Iterable[str]) -> bool:
    for pattern in exclude_patterns:
        if matches_glob(name, pattern):
            return False
    return True
