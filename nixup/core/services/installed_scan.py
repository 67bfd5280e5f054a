"""
Installed packages — parse the system closure into (name, version) pairs.

Runs ``nix path-info -r /run/current-system`` (through the package
source), parses each store path, drops unversioned, excluded and
too-short names, and keeps one entry per name. Cached in
``installed.json`` for ``cache_max_age`` seconds.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from pydantic import ValidationError

from nixup.adapters.base import PackageSource
from nixup.core.models.config import NixupConfig
from nixup.core.models.package import INSTALLED_ADAPTER, InstalledPackage
from nixup.core.observability.progress import PHASE_SCAN_INSTALLED, StatusChannel
from nixup.core.persistence import cache_file
from nixup.core.services.exclusions import ExclusionFilter
from nixup.core.services.store_path import StorePathParser

logger = logging.getLogger(__name__)


def scan_paths(
    paths: Iterable[str],
    parser: StorePathParser,
    exclusions: ExclusionFilter,
    min_name_length: int = 3,
) -> list[InstalledPackage]:
    """Turn raw store paths into a sorted, de-duplicated package list.

    Paths are sorted first; the first parsed entry per name wins.
    """
    seen: dict[str, InstalledPackage] = {}

    for path in sorted({p.strip() for p in paths if p.strip()}):
        name, version = parser.parse(path)
        if not version:
            continue
        if exclusions.is_excluded(name):
            continue
        if len(name) < min_name_length:
            continue
        if name not in seen:
            seen[name] = InstalledPackage(name=name, version=version)

    return [seen[name] for name in sorted(seen)]


def load_installed(path: Path) -> list[InstalledPackage] | None:
    """Read an installed-packages cache file, or None if missing or invalid."""
    data = cache_file.read_json(path)
    if data is None:
        return None
    try:
        return INSTALLED_ADAPTER.validate_python(data)
    except ValidationError as e:
        logger.warning("Invalid installed cache %s: %s", path, e)
        return None


class InstalledScanner:
    """Scans and caches the installed package list."""

    def __init__(
        self,
        config: NixupConfig,
        source: PackageSource,
        status: StatusChannel | None = None,
    ):
        self.config = config
        self.source = source
        self.status = status or StatusChannel(config.status_file)
        self.parser = StorePathParser(config.version_suffixes)
        self.exclusions = ExclusionFilter(config.exclude_patterns)

    @property
    def cache_path(self) -> Path:
        return self.config.installed_cache

    def load_cached(self) -> list[InstalledPackage] | None:
        """Read the cached list regardless of age, or None if unusable."""
        return load_installed(self.cache_path)

    def get_installed(self, force_rescan: bool = False) -> list[InstalledPackage]:
        """Return installed packages, rescanning if stale or forced."""
        if not force_rescan and cache_file.is_fresh(self.cache_path, self.config.cache_max_age):
            cached = self.load_cached()
            if cached is not None:
                logger.debug("Using cached installed list (%d packages)", len(cached))
                return cached

        return self.scan()

    def scan(self) -> list[InstalledPackage]:
        """Enumerate the closure and persist the parsed package list.

        A failed closure query falls back to the previous cache, or an
        empty list, and is not persisted.
        """
        logger.info("Scanning installed packages from %s...", self.config.system_path)
        self.status.write(PHASE_SCAN_INSTALLED)

        receipt = self.source.closure(self.config.system_path)
        if receipt.failed:
            logger.warning("Closure query failed: %s", receipt.error)
            fallback = self.load_cached()
            if fallback:
                logger.warning("Using previous installed list (%d packages)", len(fallback))
                return fallback
            return []

        packages = scan_paths(
            receipt.output.splitlines(),
            self.parser,
            self.exclusions,
            self.config.min_name_length,
        )
        cache_file.write_json(
            self.cache_path,
            INSTALLED_ADAPTER.dump_python(packages, mode="json"),
        )
        logger.info("Found %d packages.", len(packages))
        return packages
