"""
Exclusion filter — drops build-support noise from the installed list.
"""

from __future__ import annotations

from collections.abc import Iterable
from fnmatch import fnmatchcase

from nixup.core.models.config import DEFAULT_EXCLUDE_PATTERNS


class ExclusionFilter:
    """Shell-glob matcher over package names (case-sensitive, whole name)."""

    def __init__(self, patterns: Iterable[str] = DEFAULT_EXCLUDE_PATTERNS):
        self.patterns = tuple(patterns)

    def is_excluded(self, name: str) -> bool:
        return any(fnmatchcase(name, pattern) for pattern in self.patterns)

    def __call__(self, name: str) -> bool:
        return self.is_excluded(name)
