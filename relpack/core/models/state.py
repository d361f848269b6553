"""
RunState: what the last packaging run did.

Serialized to .state/current.json after every run, successful or not,
so an operator can see which stage a failed run reached without
digging through logs. Disposable: delete it and nothing breaks.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class StageState(BaseModel):
    stage: str
    status: str = ""                # ok, skipped, failed
    detail: str = ""


class RunState(BaseModel):
    """Root state model, serialized to .state/current.json."""

    schema_version: int = 1

    # ── Identity ─────────────────────────────────────────────────
    run_id: str = ""
    package_name: str = ""
    platform: str = ""
    architecture: str = ""
    nominal_version: str | None = None
    build_revision: str = ""
    resolved_ref: str | None = None

    # ── Timestamps ───────────────────────────────────────────────
    created_at: str = Field(default_factory=_now_iso)
    updated_at: str = Field(default_factory=_now_iso)

    # ── Outcome ──────────────────────────────────────────────────
    status: str = ""                # ok, failed
    state: str = "init"             # last pipeline state reached
    failed_stage: str | None = None
    error: str | None = None
    stages: list[StageState] = Field(default_factory=list)
    packages: list[str] = Field(default_factory=list)

    def touch(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = _now_iso()
