"""
Action and Receipt models: the collaborator contract.

The pipeline sends Actions (check out this repo, build with these
flags, package this tree); adapters answer with Receipts. A failed
clone or a non-zero ``make`` is a failed Receipt, not an exception.
What a failure means for the run is the orchestrator's call.
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


class Action(BaseModel):
    """One operation requested from one collaborator.

    ``id`` is ``<run-id>:<stage>:<operation>`` so a receipt can be traced
    back to the stage that asked for it.
    """

    id: str
    adapter: str                    # git, autotools, fpm
    stage: str = ""
    params: dict[str, Any] = Field(default_factory=dict)

    @property
    def operation(self) -> str:
        return self.params.get("operation", "")


class ReceiptStatus(str, enum.Enum):
    OK = "ok"
    SKIPPED = "skipped"
    FAILED = "failed"


class Receipt(BaseModel):
    """What an adapter reports back for one Action."""

    adapter: str
    action_id: str
    status: ReceiptStatus = ReceiptStatus.OK

    finished_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    duration_ms: int = 0

    output: str = ""                # tool stdout, or the skip reason
    error: str | None = None        # stderr tail when failed

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is ReceiptStatus.OK

    @property
    def failed(self) -> bool:
        return self.status is ReceiptStatus.FAILED

    @property
    def skipped(self) -> bool:
        return self.status is ReceiptStatus.SKIPPED

    def summary(self) -> str:
        """One-line form for logs: ``fpm run-1:packaged:package failed (fpm: ...)``."""
        text = f"{self.adapter} {self.action_id} {self.status.value}"
        if self.error:
            first_line = self.error.strip().splitlines()[0] if self.error.strip() else ""
            text += f" ({first_line})"
        return text

    @classmethod
    def success(cls, adapter: str, action_id: str, output: str = "", **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, output=output, **kwargs)

    @classmethod
    def failure(cls, adapter: str, action_id: str, error: str, **kwargs: Any) -> Receipt:
        return cls(
            adapter=adapter,
            action_id=action_id,
            status=ReceiptStatus.FAILED,
            error=error,
            **kwargs,
        )

    @classmethod
    def skip(cls, adapter: str, action_id: str, reason: str = "", **kwargs: Any) -> Receipt:
        """A no-op outcome: the work was already done (e.g. checkout exists)."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status=ReceiptStatus.SKIPPED,
            output=reason,
            **kwargs,
        )
