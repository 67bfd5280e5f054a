"""
NixupConfig — the single immutable configuration object.

Built once at startup by ``nixup.core.config.loader.load_config`` and
passed explicitly to every component. Nothing in nixup reads the
environment after this object exists.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

# Low-level toolchain and build-support packages that clutter the
# update list. Shell-style globs, matched against the parsed name.
DEFAULT_EXCLUDE_PATTERNS: tuple[str, ...] = (
    "glibc*", "gcc-*", "binutils*", "linux-headers*", "stdenv*",
    "bootstrap-*", "expand-response-params", "audit-*",
    "patchelf*", "update-autotools*", "move-*", "patch-shebangs*",
    "wrap-*", "make-*-wrapper*", "multiple-outputs*",
    "pkg-config-wrapper*", "strip*", "compress-*", "fixup-*",
    "prune-*", "reproducible-*", "nix-support*", "propagated-*",
    "setup-hooks*", "acl-*", "attr-*", "bzip2-*", "xz-*", "zlib-*", "zstd-*",
    "openssl-*", "libffi-*", "ncurses-*", "readline-*",
    "*-lib", "*-dev", "*-doc", "*-man", "*-info", "*-debug", "*-hook",
)

# Nix output names that end up glued to the version in store paths.
DEFAULT_VERSION_SUFFIXES: tuple[str, ...] = (
    "lib", "bin", "dev", "out", "doc", "man", "info", "debug", "terminfo",
    "py", "nc", "pam", "data", "npm-deps", "only-plugins-qml",
    "fish-completions",
)

# Namespace prefixes probed (with the installed major version) when
# deciding whether an "update" is really a pinned variant.
DEFAULT_VARIANT_PREFIXES: tuple[str, ...] = ("qt", "python", "lua", "php")

DEFAULT_NIXPKGS_REF = "github:nixos/nixpkgs/nixos-unstable"
DEFAULT_SYSTEM_PATH = "/run/current-system"

# Cache file names inside cache_dir
INDEX_CACHE_FILE = "nixpkgs-versions.json"
INSTALLED_CACHE_FILE = "installed.json"
UPDATES_CACHE_FILE = "updates.json"
STATUS_FILE = "status.json"
LOCK_FILE = "nixup.lock"


class NixupConfig(BaseModel):
    """Resolved nixup settings."""

    model_config = ConfigDict(frozen=True)

    cache_dir: Path
    cache_max_age: int = Field(default=21600, ge=0)        # seconds (6h)
    nixpkgs_ref: str = DEFAULT_NIXPKGS_REF
    system_path: str = DEFAULT_SYSTEM_PATH
    min_name_length: int = Field(default=3, ge=0)
    exclude_patterns: tuple[str, ...] = DEFAULT_EXCLUDE_PATTERNS
    version_suffixes: tuple[str, ...] = DEFAULT_VERSION_SUFFIXES
    variant_prefixes: tuple[str, ...] = DEFAULT_VARIANT_PREFIXES
    progress_interval: int = Field(default=50, ge=1)
    command_timeout: int = Field(default=600, ge=0)        # 0 = no timeout

    # ── Derived paths ────────────────────────────────────────────

    @property
    def index_cache(self) -> Path:
        return self.cache_dir / INDEX_CACHE_FILE

    @property
    def installed_cache(self) -> Path:
        return self.cache_dir / INSTALLED_CACHE_FILE

    @property
    def updates_cache(self) -> Path:
        return self.cache_dir / UPDATES_CACHE_FILE

    @property
    def status_file(self) -> Path:
        return self.cache_dir / STATUS_FILE

    @property
    def lock_file(self) -> Path:
        return self.cache_dir / LOCK_FILE

    @property
    def timeout_seconds(self) -> int | None:
        """Timeout for external commands, or None when disabled."""
        return self.command_timeout or None
