"""
Receipt model — the result contract for external package queries.

Package sources never raise: every query returns a Receipt that
carries either the captured output or the failure reason. Callers
decide what an empty or failed result means for their stage.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Receipt(BaseModel):
    """Result of one external query (``nix search``, ``nix path-info``)."""

    source: str                     # which package source produced it
    operation: str                  # "search" | "closure"
    status: Literal["ok", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the query succeeded."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        """Whether the query failed."""
        return self.status == "failed"

    @classmethod
    def success(
        cls,
        source: str,
        operation: str,
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(
            source=source,
            operation=operation,
            status="ok",
            output=output,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        source: str,
        operation: str,
        error: str,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(
            source=source,
            operation=operation,
            status="failed",
            error=error,
            **kwargs,
        )
