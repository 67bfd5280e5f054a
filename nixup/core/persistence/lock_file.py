"""
Execution lock — at most one update check per cache directory.

The lock is a plain file holding the owner's PID. A lock whose PID is
no longer alive is stale and is discarded by the next acquirer, so a
``kill -9`` never wedges nixup permanently. Discarding happens under an
``flock`` on a sidecar ``.guard`` file: two acquirers that both saw the
same dead PID cannot each remove the other's fresh lock.

Read-only consumers (count, tooltip) call ``is_held()`` to decide
whether to show a busy indicator; they never acquire.
"""

from __future__ import annotations

import atexit
import errno
import fcntl
import logging
import os
import signal
import sys
import tempfile
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)


class ProcessProbe(ABC):
    """Answers "is this PID alive?" for the current platform."""

    @abstractmethod
    def is_alive(self, pid: int) -> bool:
        """Whether a process with ``pid`` currently exists."""


class PidProbe(ProcessProbe):
    """POSIX liveness check via signal 0."""

    def is_alive(self, pid: int) -> bool:
        if pid <= 0:
            return False
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            # Exists, owned by someone else
            return True
        except OSError as e:
            return e.errno == errno.EPERM
        return True


class ExecutionLock:
    """PID lock file with stale-lock recovery.

    Usage::

        lock = ExecutionLock(config.lock_file)
        if not lock.acquire():
            ...  # busy
        try:
            ...
        finally:
            lock.release()
    """

    def __init__(self, path: Path, probe: ProcessProbe | None = None):
        self.path = path
        self.probe = probe or PidProbe()
        self._owned = False

    # ── Observers ───────────────────────────────────────────────

    def holder(self) -> int | None:
        """PID recorded in the lock file, or None if absent/unreadable."""
        try:
            raw = self.path.read_text(encoding="utf-8").strip()
        except OSError:
            return None
        try:
            return int(raw)
        except ValueError:
            return None

    def is_held(self) -> bool:
        """Whether a live process currently holds the lock."""
        pid = self.holder()
        return pid is not None and self.probe.is_alive(pid)

    @property
    def owned(self) -> bool:
        """Whether this instance holds the lock."""
        return self._owned

    # ── Acquire / release ───────────────────────────────────────

    def acquire(self) -> bool:
        """Take the lock for the current process.

        Returns:
            True on success, False if another live process holds it
            or is busy discarding a stale one.
        """
        if self._owned:
            return True

        self.path.parent.mkdir(parents=True, exist_ok=True)

        for _ in range(2):
            if self._create():
                self._owned = True
                atexit.register(self.release)
                logger.debug("Acquired lock %s (pid %d)", self.path, os.getpid())
                return True

            if not self._discard_stale():
                return False

        return False

    def release(self) -> None:
        """Drop the lock if this process still owns it."""
        if not self._owned:
            return
        self._owned = False
        atexit.unregister(self.release)
        if self.holder() == os.getpid():
            self.path.unlink(missing_ok=True)
            logger.debug("Released lock %s", self.path)

    @property
    def guard_path(self) -> Path:
        return self.path.with_name(self.path.name + ".guard")

    @contextmanager
    def _guard(self) -> Iterator[bool]:
        # Serializes stale-lock removal; yields False if another process
        # is already doing it.
        with open(self.guard_path, "a") as guard_fd:
            try:
                fcntl.flock(guard_fd.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                yield False
                return
            try:
                yield True
            finally:
                fcntl.flock(guard_fd.fileno(), fcntl.LOCK_UN)

    def _discard_stale(self) -> bool:
        """Remove the lock file if its holder is dead.

        The file is re-read under the guard. Only a file that was read can
        be removed: a lock that vanished in between may already have been
        re-created by a rival, so it is left alone.
        """
        with self._guard() as guarded:
            if not guarded:
                logger.debug("Lock %s is being recovered by another process", self.path)
                return False

            try:
                raw = self.path.read_text(encoding="utf-8").strip()
            except FileNotFoundError:
                return True
            except OSError as e:
                logger.warning("Cannot read lock %s: %s", self.path, e)
                return False

            pid = int(raw) if raw.isdigit() else None
            if pid is not None and self.probe.is_alive(pid):
                logger.debug("Lock %s held by live pid %d", self.path, pid)
                return False

            logger.info("Removing stale lock %s (pid %s)", self.path, pid)
            self.path.unlink(missing_ok=True)
            return True

    def _create(self) -> bool:
        # Hard-link a fully written temp file into place: the lock never
        # exists without its PID.
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".nixup_lock_")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(f"{os.getpid()}\n")
            os.link(tmp_path, self.path)
        except FileExistsError:
            return False
        finally:
            os.unlink(tmp_path)
        return True

    def __enter__(self) -> ExecutionLock:
        return self

    def __exit__(self, *exc: object) -> None:
        self.release()


def _raise_system_exit(signum: int, _frame: object) -> None:
    sys.exit(128 + signum)


def install_termination_handlers() -> None:
    """Turn SIGTERM/SIGHUP into SystemExit so lock cleanup runs.

    SIGINT already raises KeyboardInterrupt. Only the main thread may
    install signal handlers; elsewhere this is a no-op.
    """
    if threading.current_thread() is not threading.main_thread():
        return
    for name in ("SIGTERM", "SIGHUP"):
        sig = getattr(signal, name, None)
        if sig is not None:
            signal.signal(sig, _raise_system_exit)
