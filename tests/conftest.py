"""
Shared test fixtures and configuration.
"""

from collections.abc import Callable
from pathlib import Path

import pytest

from nixup.adapters.mock import MockPackageSource
from nixup.core.models.config import NixupConfig
from nixup.core.persistence.lock_file import ProcessProbe

FAKE_HASH = "0123456789abcdfghijklmnpqrsvwxyz"  # 32 chars, nix base32 alphabet


def store_path(name_version: str, hash_: str = FAKE_HASH) -> str:
    """Build a /nix/store path for ``name-version``."""
    return f"/nix/store/{hash_}-{name_version}"


@pytest.fixture
def make_store_path() -> Callable[..., str]:
    """Factory for synthetic store paths."""
    return store_path


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    """Return a temporary nixup cache directory."""
    path = tmp_path / "cache" / "nixup"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def config(cache_dir: Path) -> NixupConfig:
    """Config pointing at the temp cache, with the default filters."""
    return NixupConfig(cache_dir=cache_dir, nixpkgs_ref="test:nixpkgs", system_path="/run/test-system")


@pytest.fixture
def mock_source() -> MockPackageSource:
    """Package source with a small system: curl and systemd, both outdated."""
    return MockPackageSource(
        packages={
            "legacyPackages.x86_64-linux.curl": "8.17.0",
            "legacyPackages.x86_64-linux.systemd": "258.2",
        },
        closure_paths=[
            store_path("curl-8.16.0"),
            store_path("curl-8.16.0-bin"),
            store_path("systemd-258.1"),
            store_path("glibc-2.40-66"),
            store_path("source"),
        ],
    )


class StubProbe(ProcessProbe):
    """Liveness probe with a fixed answer."""

    def __init__(self, alive: bool):
        self.alive = alive

    def is_alive(self, pid: int) -> bool:
        return self.alive


@pytest.fixture
def alive_probe() -> ProcessProbe:
    """Probe that reports every PID as running."""
    return StubProbe(alive=True)


@pytest.fixture
def dead_probe() -> ProcessProbe:
    """Probe that reports every PID as gone."""
    return StubProbe(alive=False)
