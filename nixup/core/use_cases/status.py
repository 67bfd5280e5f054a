"""
Status use cases — read-only views for status bars and scripts.

None of these take the execution lock or run nix. They read the caches
and only observe whether a check is in flight, so a status bar can poll
them every few seconds.
"""

from __future__ import annotations

from dataclasses import dataclass

from nixup.core.models.config import NixupConfig
from nixup.core.models.package import InstalledPackage, StatusRecord, UpdateReport
from nixup.core.observability.progress import PHASE_CHECK_VERSIONS, StatusChannel
from nixup.core.persistence.lock_file import ExecutionLock, ProcessProbe
from nixup.core.services.installed_scan import load_installed
from nixup.core.use_cases.check_updates import load_report

UNKNOWN_COUNT = "?"


@dataclass
class CheckStatus:
    """What a running (or idle) nixup is doing right now."""

    busy: bool = False
    holder_pid: int | None = None
    record: StatusRecord | None = None

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        result: dict = {"busy": self.busy}
        if self.holder_pid is not None:
            result["pid"] = self.holder_pid
        if self.record is not None:
            result.update(self.record.model_dump(mode="json"))
        return result


def get_check_status(config: NixupConfig, probe: ProcessProbe | None = None) -> CheckStatus:
    """Observe the lock and status file without blocking."""
    lock = ExecutionLock(config.lock_file, probe=probe)
    if not lock.is_held():
        return CheckStatus()
    return CheckStatus(
        busy=True,
        holder_pid=lock.holder(),
        record=StatusChannel(config.status_file).read(),
    )


def get_report(config: NixupConfig) -> UpdateReport | None:
    """The last saved update report, if any."""
    return load_report(config.updates_cache)


def get_count(config: NixupConfig) -> str:
    """Update count as text — ``"?"`` when no valid report exists."""
    report = get_report(config)
    return str(report.count) if report is not None else UNKNOWN_COUNT


def get_installed(config: NixupConfig) -> list[InstalledPackage] | None:
    """The cached installed list (any age), or None if never scanned."""
    return load_installed(config.installed_cache)


def _busy_lines(status: CheckStatus) -> list[str]:
    record = status.record
    if record is None:
        return ["Starting..."]
    if record.phase == PHASE_CHECK_VERSIONS and record.total > 0:
        return [record.bar, f"Checking {record.progress}/{record.total}"]
    return [record.message or "Working..."]


def get_tooltip(
    config: NixupConfig,
    max_items: int = 5,
    probe: ProcessProbe | None = None,
) -> str:
    """Multi-line tooltip: progress while busy, updates when idle."""
    status = get_check_status(config, probe=probe)
    if status.busy:
        return "\n".join(_busy_lines(status))

    report = get_report(config)
    if report is None:
        return "No data"

    if report.count == 0:
        return "Up to date"

    lines = [f"{report.count} updates", ""]
    shown = report.updates[:max_items]
    lines.extend(f"{u.name} {u.installed} → {u.latest}" for u in shown)

    remaining = report.count - len(shown)
    if remaining > 0:
        lines.extend(["", f"+{remaining} more"])

    return "\n".join(lines)
