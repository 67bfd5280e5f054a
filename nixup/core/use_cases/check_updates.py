"""
Check updates use case — the full index → scan → compare pipeline.

    acquire lock ─▶ fetch index ─▶ scan installed ─▶ compare ─▶ save report
         │                                             ▲
         └─ busy: abort, nothing written               │
                       fresh report with same total ───┘ (short-circuit)

Only one check runs per cache directory at a time. The status file is
updated as the pipeline moves through its phases and removed when it
finishes; the lock is released on every exit path.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from nixup.adapters.base import PackageSource
from nixup.core.models.config import DEFAULT_VARIANT_PREFIXES, NixupConfig
from nixup.core.models.package import InstalledPackage, UpdateRecord, UpdateReport
from nixup.core.observability.progress import PHASE_CHECK_VERSIONS, StatusChannel
from nixup.core.persistence import cache_file
from nixup.core.persistence.lock_file import ExecutionLock
from nixup.core.services.installed_scan import InstalledScanner
from nixup.core.services.repository_index import RepositoryIndexer
from nixup.core.services.versions import VariantReconciler, is_older

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "Another nixup instance is already running"

ProgressCallback = Callable[[int, int, int], None]


@dataclass
class UpdateCheckResult:
    """Outcome of one ``check_updates`` call."""

    report: UpdateReport | None = None
    busy: bool = False
    cached: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.report is not None and not self.busy

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        if self.report is not None:
            return self.report.to_dict()
        return {"error": self.error or "", "busy": self.busy}


def load_report(path: Path) -> UpdateReport | None:
    """Read a cached update report, or None if missing or invalid."""
    data = cache_file.read_json(path)
    if not isinstance(data, dict):
        return None
    try:
        return UpdateReport.model_validate(data)
    except ValidationError as e:
        logger.warning("Invalid update report %s: %s", path, e)
        return None


def compare_packages(
    installed: Iterable[InstalledPackage],
    index: Mapping[str, str],
    variant_prefixes: Iterable[str] = DEFAULT_VARIANT_PREFIXES,
    total: int | None = None,
    interval: int = 50,
    on_progress: ProgressCallback | None = None,
) -> tuple[list[UpdateRecord], int]:
    """Join installed packages against the index.

    Returns:
        (updates, checked) — the update records and the number of
        distinct names examined.
    """
    reconciler = VariantReconciler(index, variant_prefixes)
    packages = list(installed)
    total = len(packages) if total is None else total

    updates: list[UpdateRecord] = []
    seen: set[str] = set()
    checked = 0

    for pkg in packages:
        if pkg.name in seen:
            continue
        seen.add(pkg.name)

        checked += 1
        if on_progress is not None and checked % interval == 0:
            on_progress(checked, total, len(updates))

        latest = index.get(pkg.name)
        if not latest:
            continue

        if not is_older(pkg.version, latest):
            continue
        if reconciler.is_variant(pkg.name, pkg.version, latest):
            continue

        updates.append(UpdateRecord(name=pkg.name, installed=pkg.version, latest=latest))

    return updates, checked


def check_updates(
    config: NixupConfig,
    force_rescan: bool = False,
    force_recheck: bool = False,
    force_fetch: bool = False,
    source: PackageSource | None = None,
    lock: ExecutionLock | None = None,
    on_progress: ProgressCallback | None = None,
) -> UpdateCheckResult:
    """Run a full update check.

    Args:
        config: Resolved nixup configuration.
        force_rescan: Ignore the installed-packages cache.
        force_recheck: Ignore the update report cache.
        force_fetch: Ignore the repository index cache.
        source: Package source (default: the nix CLI).
        lock: Execution lock (default: ``config.lock_file``).
        on_progress: Called as ``(checked, total, updates)`` while comparing.

    Returns:
        UpdateCheckResult. ``busy`` is set, and nothing is written, when
        another check holds the lock.
    """
    if source is None:
        from nixup.adapters.nix.command import NixCliAdapter

        source = NixCliAdapter(timeout=config.timeout_seconds)
    lock = lock or ExecutionLock(config.lock_file)

    if not lock.acquire():
        logger.warning(BUSY_MESSAGE)
        return UpdateCheckResult(busy=True, error=BUSY_MESSAGE)

    status = StatusChannel(config.status_file)
    try:
        index = RepositoryIndexer(config, source, status).get_index(force_refresh=force_fetch)
        installed = InstalledScanner(config, source, status).get_installed(force_rescan=force_rescan)
        total = len(installed)

        if not force_recheck and cache_file.is_fresh(config.updates_cache, config.cache_max_age):
            cached = load_report(config.updates_cache)
            if cached is not None and cached.total == total and total > 0:
                logger.debug("Installed set unchanged (%d) — using cached report", total)
                return UpdateCheckResult(report=cached, cached=True)

        logger.info("Comparing %d packages...", total)
        status.write(PHASE_CHECK_VERSIONS, 0, total)

        def _progress(checked: int, total_: int, found: int) -> None:
            status.write(PHASE_CHECK_VERSIONS, checked, total_)
            if on_progress is not None:
                on_progress(checked, total_, found)

        updates, checked = compare_packages(
            installed,
            index,
            config.variant_prefixes,
            total=total,
            interval=config.progress_interval,
            on_progress=_progress,
        )

        report = UpdateReport.build(
            updates,
            checked=checked,
            total=total,
            nixpkgs_ref=config.nixpkgs_ref,
        )
        cache_file.write_json(config.updates_cache, report.to_dict())
        logger.info("Found %d updates.", report.count)
        return UpdateCheckResult(report=report)
    finally:
        status.clear()
        lock.release()
