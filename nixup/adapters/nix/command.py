"""
Nix CLI adapter — runs ``nix search`` and ``nix path-info``.

Both commands can take a long time (the search evaluates all of
nixpkgs). Each call runs under a timeout so a hung evaluation fails the
stage instead of holding the execution lock forever.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time

from nixup.adapters.base import PackageSource
from nixup.core.models.receipt import Receipt

logger = logging.getLogger(__name__)

NIX_FLAGS = ("--extra-experimental-features", "nix-command flakes")


class NixCliAdapter(PackageSource):
    """Query nixpkgs and the system closure through the ``nix`` binary.

    Args:
        nix_bin: Name or path of the nix executable.
        timeout: Seconds per command, or None for no limit.
    """

    def __init__(self, nix_bin: str = "nix", timeout: int | None = 600):
        self.nix_bin = nix_bin
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "nix"

    def is_available(self) -> bool:
        return shutil.which(self.nix_bin) is not None

    def search(self, ref: str) -> Receipt:
        return self._run("search", [self.nix_bin, *NIX_FLAGS, "search", ref, "", "--json"])

    def closure(self, root: str) -> Receipt:
        return self._run("closure", [self.nix_bin, *NIX_FLAGS, "path-info", "-r", root])

    def _run(self, operation: str, argv: list[str]) -> Receipt:
        command = " ".join(argv)
        logger.debug("Executing: %s", command)
        start = time.monotonic()

        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            return Receipt.failure(
                source=self.name,
                operation=operation,
                error=f"{self.nix_bin} not found on PATH",
                metadata={"command": command},
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                source=self.name,
                operation=operation,
                error=f"Command timed out after {self.timeout}s",
                metadata={"command": command, "timeout": self.timeout},
            )
        except Exception as e:
            return Receipt.failure(
                source=self.name,
                operation=operation,
                error=f"Command execution error: {e}",
                metadata={"command": command},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)

        if result.returncode != 0:
            return Receipt.failure(
                source=self.name,
                operation=operation,
                error=result.stderr.strip() or f"Command exited with code {result.returncode}",
                duration_ms=elapsed_ms,
                metadata={"command": command, "return_code": result.returncode},
            )

        return Receipt.success(
            source=self.name,
            operation=operation,
            output=result.stdout,
            duration_ms=elapsed_ms,
            metadata={"command": command, "return_code": 0},
        )
