"""
Package models — the shapes persisted to the nixup cache directory.

    installed.json        → list[InstalledPackage]
    updates.json          → UpdateReport
    status.json           → StatusRecord
    nixpkgs-versions.json → plain {name: version} map (see INDEX_ADAPTER)

Every cache file is validated on read, so a file written by an older
or broken run is treated as a cache miss instead of crashing a reader.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


def _now_local_iso() -> str:
    """Current local time as ISO string, second precision (like ``date -Iseconds``)."""
    return datetime.now().astimezone().isoformat(timespec="seconds")


class InstalledPackage(BaseModel):
    """One package parsed from the system closure."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str


class UpdateRecord(BaseModel):
    """An installed package that is older than the repository's version."""

    name: str
    installed: str
    latest: str


class UpdateReport(BaseModel):
    """Result of a full update check — serialized to updates.json."""

    count: int = 0
    checked: int = 0
    total: int = 0
    timestamp: str = Field(default_factory=_now_local_iso)
    nixpkgs_ref: str = ""
    updates: list[UpdateRecord] = Field(default_factory=list)

    @classmethod
    def build(
        cls,
        updates: list[UpdateRecord],
        checked: int,
        total: int,
        nixpkgs_ref: str = "",
    ) -> UpdateReport:
        """Create a report whose count always matches its update list."""
        return cls(
            count=len(updates),
            checked=checked,
            total=total,
            nixpkgs_ref=nixpkgs_ref,
            updates=updates,
        )

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return self.model_dump(mode="json")


class StatusRecord(BaseModel):
    """Transient progress of a running check — serialized to status.json."""

    status: Literal["busy"] = "busy"
    phase: str
    message: str = ""
    progress: int = 0
    total: int = 0
    bar: str = ""


INDEX_ADAPTER: TypeAdapter[dict[str, str]] = TypeAdapter(dict[str, str])
INSTALLED_ADAPTER: TypeAdapter[list[InstalledPackage]] = TypeAdapter(list[InstalledPackage])
