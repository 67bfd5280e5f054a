"""
Progress reporting — status file for status bars, bar for terminals.

A running update check overwrites ``status.json`` with its current
phase; status-bar tooltips read it while the execution lock is held.
Writes are fire-and-forget and readers treat a missing or half-written
file as "no data yet".
"""

from __future__ import annotations

import logging
import shutil
import sys
from pathlib import Path
from typing import TextIO

from pydantic import ValidationError

from nixup.core.models.package import StatusRecord
from nixup.core.persistence import cache_file

logger = logging.getLogger(__name__)

PHASE_FETCH_INDEX = "fetch_index"
PHASE_SCAN_INSTALLED = "scan_installed"
PHASE_CHECK_VERSIONS = "check_versions"

PHASE_MESSAGES: dict[str, str] = {
    PHASE_FETCH_INDEX: "Fetching package index...",
    PHASE_SCAN_INSTALLED: "Scanning installed packages...",
    PHASE_CHECK_VERSIONS: "Comparing versions...",
}

_FILLED = "█"
_EMPTY = "░"

STATUS_BAR_WIDTH = 20


def make_progress_bar(current: int, total: int, width: int = 10) -> str:
    """Block-character bar, e.g. ``███░░░░░░░`` for 3/10."""
    if total <= 0:
        return _EMPTY * width
    current = max(0, min(current, total))
    filled = current * width // total
    return _FILLED * filled + _EMPTY * (width - filled)


class StatusChannel:
    """Shared status file written by the running check."""

    def __init__(self, path: Path):
        self.path = path

    def write(
        self,
        phase: str,
        progress: int = 0,
        total: int = 0,
        message: str | None = None,
    ) -> None:
        record = StatusRecord(
            phase=phase,
            message=message if message is not None else PHASE_MESSAGES.get(phase, ""),
            progress=progress,
            total=total,
            bar=make_progress_bar(progress, total, STATUS_BAR_WIDTH) if total > 0 else "",
        )
        try:
            cache_file.write_json(self.path, record.model_dump(mode="json"))
        except OSError as e:
            logger.debug("Status write failed (%s): %s", self.path, e)

    def read(self) -> StatusRecord | None:
        data = cache_file.read_json(self.path)
        if not isinstance(data, dict):
            return None
        try:
            return StatusRecord.model_validate(data)
        except ValidationError:
            return None

    def clear(self) -> None:
        cache_file.remove(self.path)


class TerminalProgress:
    """Redraws ``[████░░] 40% (200/500) 3 updates`` on one stderr line.

    Does nothing unless the stream is a TTY.
    """

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream or sys.stderr
        self.enabled = bool(getattr(self.stream, "isatty", lambda: False)())
        columns = shutil.get_terminal_size((80, 24)).columns
        self.term_width = columns
        self.bar_width = max(20, columns - 45)

    def __call__(self, current: int, total: int, updates: int) -> None:
        if not self.enabled or total <= 0:
            return
        percent = current * 100 // total
        bar = make_progress_bar(current, total, self.bar_width)
        self.stream.write(f"\r  [{bar}] {percent:3d}% ({current}/{total}) {updates} updates")
        self.stream.flush()

    def clear(self) -> None:
        if not self.enabled:
            return
        self.stream.write("\r" + " " * self.term_width + "\r")
        self.stream.flush()
