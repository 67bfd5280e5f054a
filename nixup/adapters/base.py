"""
Package source base — the contract between nixup and the package manager.

nixup needs exactly two capabilities from the outside world:

    search(ref)   every (attribute path, version) in a package repository,
                  as ``nix search --json`` style JSON text
    closure(root) every store path transitively required by ``root``,
                  one per line

The core only ever talks to a PackageSource, never to ``nix`` directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from nixup.core.models.receipt import Receipt


class PackageSource(ABC):
    """Abstract base class for package sources.

    Package sources perform external side effects and return receipts.
    They NEVER raise exceptions — failures are captured in the Receipt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The source identifier (e.g., 'nix', 'mock')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the underlying tool is installed. Fast, never raises."""

    @abstractmethod
    def search(self, ref: str) -> Receipt:
        """Query the repository ``ref`` for all packages.

        On success ``receipt.output`` is a JSON object keyed by attribute
        path whose values carry at least a ``version`` field.
        """

    @abstractmethod
    def closure(self, root: str) -> Receipt:
        """List the closure of ``root``; ``receipt.output`` has one path per line."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
