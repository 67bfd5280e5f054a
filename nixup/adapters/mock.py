"""
Mock package source — canned nix output for tests.

Configured with a repository listing and a closure listing; records
every call so tests can assert which external queries happened.
"""

from __future__ import annotations

import json
from typing import Any

from nixup.adapters.base import PackageSource
from nixup.core.models.receipt import Receipt


class MockPackageSource(PackageSource):
    """In-memory package source.

    Args:
        packages: Attribute path → version, rendered as ``nix search --json``.
        closure_paths: Store paths returned by ``closure``.
    """

    def __init__(
        self,
        packages: dict[str, str] | None = None,
        closure_paths: list[str] | None = None,
        available: bool = True,
    ):
        self.packages = dict(packages or {})
        self.closure_paths = list(closure_paths or [])
        self._available = available
        self._failures: dict[str, str] = {}
        self._call_log: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return "mock"

    @property
    def call_log(self) -> list[tuple[str, str]]:
        """All (operation, argument) pairs this mock has received."""
        return self._call_log

    def calls(self, operation: str) -> int:
        """Number of times ``operation`` was called."""
        return sum(1 for op, _ in self._call_log if op == operation)

    def is_available(self) -> bool:
        return self._available

    def set_failure(self, operation: str, error: str = "Mock failure") -> None:
        """Configure ``operation`` ('search' or 'closure') to fail."""
        self._failures[operation] = error

    def search(self, ref: str) -> Receipt:
        self._call_log.append(("search", ref))
        if "search" in self._failures:
            return Receipt.failure(source=self.name, operation="search", error=self._failures["search"])

        listing: dict[str, Any] = {
            path: {"pname": path.rsplit(".", 1)[-1], "version": version, "description": ""}
            for path, version in self.packages.items()
        }
        return Receipt.success(source=self.name, operation="search", output=json.dumps(listing))

    def closure(self, root: str) -> Receipt:
        self._call_log.append(("closure", root))
        if "closure" in self._failures:
            return Receipt.failure(source=self.name, operation="closure", error=self._failures["closure"])
        return Receipt.success(
            source=self.name,
            operation="closure",
            output="\n".join(self.closure_paths) + ("\n" if self.closure_paths else ""),
        )

    def reset(self) -> None:
        """Clear call log and configured failures."""
        self._call_log.clear()
        self._failures.clear()
