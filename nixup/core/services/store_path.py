"""
Store path parsing — ``/nix/store/<hash>-<name>-<version>`` → (name, version).

The split is heuristic: Nix store names are free-form, so the version
is whatever follows the *last* ``-<digit>`` boundary (the name group is
greedy): ``foo-1.0-2`` splits as ``("foo-1.0", "2")``. Output names such
as ``-bin`` or ``-dev`` after that boundary are glued onto the version
and get stripped.

An empty version means "skip this path"; parsing never raises.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from nixup.core.models.config import DEFAULT_VERSION_SUFFIXES

# 32-char base32 hash plus the separating dash
HASH_PREFIX_LENGTH = 33

_NAME_VERSION_RE = re.compile(r"(.+)-([0-9][0-9._a-zA-Z-]*)")
_SHORT_NUMERIC_RE = re.compile(r"[0-9]{1,2}")


class StorePathParser:
    """Parses store paths with a configurable output-suffix list."""

    def __init__(self, suffixes: Iterable[str] = DEFAULT_VERSION_SUFFIXES):
        self.suffixes = tuple(suffixes)
        if self.suffixes:
            alternatives = "|".join(re.escape(s) for s in self.suffixes)
            self._suffix_re: re.Pattern[str] | None = re.compile(rf"[_-](?:{alternatives})\Z")
        else:
            self._suffix_re = None

    def strip_suffix(self, version: str) -> str:
        """Remove one trailing ``-<output>`` / ``_<output>`` qualifier."""
        if self._suffix_re is None:
            return version
        return self._suffix_re.sub("", version, count=1)

    def parse(self, path: str) -> tuple[str, str]:
        """Split a store path into ``(name, version)``.

        Returns ``(remainder, "")`` when no usable version can be found,
        where remainder is the basename without its hash prefix.
        """
        basename = path.rstrip("/").rsplit("/", 1)[-1]
        remainder = basename[HASH_PREFIX_LENGTH:]

        match = _NAME_VERSION_RE.fullmatch(remainder)
        if not match:
            return remainder, ""

        name, version = match.group(1), self.strip_suffix(match.group(2))

        # "foo2-1" style misparse: a 1–2 digit "version" is really part of
        # the name, unless the name itself ends in a digit (qt5, python3).
        if _SHORT_NUMERIC_RE.fullmatch(version) and not name[-1].isdigit():
            return remainder, ""

        return name, version


def parse_store_path(
    path: str,
    suffixes: Iterable[str] = DEFAULT_VERSION_SUFFIXES,
) -> tuple[str, str]:
    """Convenience wrapper around ``StorePathParser(suffixes).parse(path)``."""
    return StorePathParser(suffixes).parse(path)
