"""
Repository index — flat ``{name: version}`` map of a nixpkgs snapshot.

``nix search <ref> "" --json`` returns every attribute path, e.g.::

    legacyPackages.x86_64-linux.curl                    → 8.17.0
    legacyPackages.x86_64-linux.haskellPackages.pandoc  → 3.6
    legacyPackages.x86_64-linux.qt5.qtbase              → 5.15.16

Paths are collapsed to the last segment (``curl``, ``pandoc``). When
the parent segment is a versioned namespace (``qt5``, ``python312``,
``lua54``…) the key keeps it (``qt5.qtbase``) so pinned variants stay
distinguishable. When several paths collapse to the same key, the
shallowest one wins: the top-level ``pandoc`` attribute beats
``haskellPackages.pandoc``.

Evaluating nixpkgs takes seconds, so the result is cached in
``nixpkgs-versions.json`` for ``cache_max_age`` seconds.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from nixup.adapters.base import PackageSource
from nixup.core.models.config import NixupConfig
from nixup.core.models.package import INDEX_ADAPTER
from nixup.core.observability.progress import PHASE_FETCH_INDEX, StatusChannel
from nixup.core.persistence import cache_file

logger = logging.getLogger(__name__)

_VERSIONED_NAMESPACE_RE = re.compile(r"^(qt[0-9]|python[0-9]+|lua[0-9]+|php[0-9]+|ruby_[0-9_]+)")

# legacyPackages.<system>.<attr>; anything deeper is a nested set
_TOP_LEVEL_DEPTH = 3


def flat_key(attr_path: str) -> str:
    """Collapse a full attribute path into its index key."""
    parts = attr_path.split(".")
    basename = parts[-1]
    if len(parts) > _TOP_LEVEL_DEPTH and _VERSIONED_NAMESPACE_RE.match(parts[-2]):
        return f"{parts[-2]}.{basename}"
    return basename


def flatten_search_results(results: dict[str, Any]) -> dict[str, str]:
    """Build the flat index from parsed ``nix search --json`` output.

    Colliding keys keep the entry with the fewest path segments; equal
    depths fall back to the lexically smallest attribute path.
    """
    best: dict[str, tuple[int, str, str]] = {}

    for attr_path, info in results.items():
        version = info.get("version") if isinstance(info, dict) else None
        if not isinstance(version, str):
            version = ""

        key = flat_key(attr_path)
        candidate = (attr_path.count(".") + 1, attr_path, version)
        current = best.get(key)
        if current is None or candidate[:2] < current[:2]:
            best[key] = candidate

    # A versionless winner still masks deeper entries, like a missing lookup
    return {key: version for key, (_, _, version) in sorted(best.items()) if version}


class RepositoryIndexer:
    """Builds and caches the repository index.

    Args:
        config: Resolved nixup configuration.
        source: Package source used for the repository query.
        status: Status channel for progress reporting.
    """

    def __init__(
        self,
        config: NixupConfig,
        source: PackageSource,
        status: StatusChannel | None = None,
    ):
        self.config = config
        self.source = source
        self.status = status or StatusChannel(config.status_file)

    @property
    def cache_path(self) -> Path:
        return self.config.index_cache

    def load_cached(self) -> dict[str, str] | None:
        """Read the cached index regardless of age, or None if unusable."""
        data = cache_file.read_json(self.cache_path)
        if data is None:
            return None
        try:
            return INDEX_ADAPTER.validate_python(data)
        except ValidationError as e:
            logger.warning("Invalid index cache %s: %s", self.cache_path, e)
            return None

    def get_index(self, force_refresh: bool = False) -> dict[str, str]:
        """Return the index, fetching it if the cache is stale or forced."""
        if not force_refresh and cache_file.is_fresh(self.cache_path, self.config.cache_max_age):
            cached = self.load_cached()
            if cached is not None:
                logger.debug("Using cached index (%d packages)", len(cached))
                return cached

        return self.fetch()

    def fetch(self) -> dict[str, str]:
        """Query the repository and persist a fresh index.

        On failure, falls back to a previous (possibly stale) cache, or
        an empty index. Failed fetches are never persisted.
        """
        logger.info("Fetching package index from %s...", self.config.nixpkgs_ref)
        self.status.write(PHASE_FETCH_INDEX)

        receipt = self.source.search(self.config.nixpkgs_ref)
        index: dict[str, str] | None = None

        if receipt.ok:
            try:
                raw = json.loads(receipt.output or "{}")
            except json.JSONDecodeError as e:
                logger.warning("Unparseable package search output: %s", e)
            else:
                if isinstance(raw, dict):
                    index = flatten_search_results(raw)
                else:
                    logger.warning("Unexpected package search output: %s", type(raw).__name__)
        else:
            logger.warning("Package index query failed: %s", receipt.error)

        if not index:
            fallback = self.load_cached()
            if fallback:
                logger.warning("Using previous package index (%d packages)", len(fallback))
                return fallback
            return index or {}

        cache_file.write_json(self.cache_path, index)
        logger.info("Indexed %d packages.", len(index))
        return index
