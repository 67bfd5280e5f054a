"""
Version comparison and versioned-variant detection.

Nixpkgs versions are free-form strings. ``compare_versions`` orders them
the way GNU ``sort -V`` does (digit runs numerically, everything else
character by character), and ``is_older`` refuses to make a claim when
either side looks like a date or doesn't start with a digit, because
date- and hash-based schemes produce false "updates".

``VariantReconciler`` suppresses updates where the installed package is
a deliberately pinned major version (``tesseract4``) of a package whose
unqualified attribute has moved on (``tesseract`` at 5.x).
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping

from nixup.core.models.config import DEFAULT_VARIANT_PREFIXES

logger = logging.getLogger(__name__)

_ISO_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_COMPACT_DATE_RE = re.compile(r"[0-9]{8}")
_MAJOR_DOTTED_RE = re.compile(r"([0-9]+)\.")
_ALL_DIGITS_RE = re.compile(r"[0-9]+")


# ── Comparison ──────────────────────────────────────────────────


def is_valid_version(version: str) -> bool:
    """Whether ``version`` is safe to order against another version."""
    if _ISO_DATE_RE.match(version) or _COMPACT_DATE_RE.match(version):
        return False
    return version[:1].isdigit() and version[:1].isascii()


def _order(ch: str) -> int:
    """Sort weight of a non-digit character (``~`` < end < letters < other)."""
    if ch.isascii() and ch.isalpha():
        return ord(ch)
    if ch == "~":
        return -1
    return ord(ch) + 256


def _is_digit(s: str, i: int) -> bool:
    return i < len(s) and "0" <= s[i] <= "9"


def compare_versions(a: str, b: str) -> int:
    """Three-way version comparison: negative if a < b, 0 if equal, positive if a > b."""
    i = j = 0
    while i < len(a) or j < len(b):
        # Non-digit prefix, character by character
        while (i < len(a) and not _is_digit(a, i)) or (j < len(b) and not _is_digit(b, j)):
            ac = _order(a[i]) if i < len(a) and not _is_digit(a, i) else 0
            bc = _order(b[j]) if j < len(b) and not _is_digit(b, j) else 0
            if ac != bc:
                return ac - bc
            i += 1
            j += 1

        # Numeric run, leading zeros ignored; longer run wins
        while i < len(a) and a[i] == "0":
            i += 1
        while j < len(b) and b[j] == "0":
            j += 1

        first_diff = 0
        while _is_digit(a, i) and _is_digit(b, j):
            if not first_diff:
                first_diff = ord(a[i]) - ord(b[j])
            i += 1
            j += 1

        if _is_digit(a, i):
            return 1
        if _is_digit(b, j):
            return -1
        if first_diff:
            return first_diff

    return 0


def is_older(installed: str, latest: str) -> bool:
    """Whether ``installed`` is strictly, meaningfully older than ``latest``."""
    if installed == latest:
        return False
    if not is_valid_version(installed) or not is_valid_version(latest):
        return False
    return compare_versions(installed, latest) < 0


# ── Versioned variants ─────────────────────────────────────────


def major_version(version: str) -> str | None:
    """Leading major number: ``"4"`` for ``"4.1.3"`` or ``"4"``, else None."""
    match = _MAJOR_DOTTED_RE.match(version)
    if match:
        return match.group(1)
    if _ALL_DIGITS_RE.fullmatch(version):
        return version
    return None


class VariantReconciler:
    """Detects false-positive updates caused by major-version variants.

    Args:
        index: Repository index (flat name → version).
        prefixes: Namespace prefixes to probe as ``<prefix><major>.<name>``.
    """

    def __init__(
        self,
        index: Mapping[str, str],
        prefixes: Iterable[str] = DEFAULT_VARIANT_PREFIXES,
    ):
        self.index = index
        self.prefixes = tuple(prefixes)

    def candidates(self, name: str, major: str) -> list[str]:
        """Index keys that would hold a variant pinned to ``major``."""
        return [f"{name}{major}"] + [f"{prefix}{major}.{name}" for prefix in self.prefixes]

    def is_variant(self, name: str, installed: str, latest: str) -> bool:
        """True if ``installed`` is served by a pinned variant, not outdated."""
        installed_major = major_version(installed)
        if installed_major is None:
            return False

        if installed_major == major_version(latest):
            return False

        for key in self.candidates(name, installed_major):
            if self.index.get(key) == installed:
                logger.debug(
                    "%s %s matches variant %s — not an update to %s",
                    name, installed, key, latest,
                )
                return True

        return False
