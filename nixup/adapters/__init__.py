"""Adapters — bindings to the external package manager.

Public re-exports for convenient access.
"""

from nixup.adapters.base import PackageSource
from nixup.adapters.mock import MockPackageSource
from nixup.adapters.nix.command import NixCliAdapter

__all__ = [
    "MockPackageSource",
    "NixCliAdapter",
    "PackageSource",
]
