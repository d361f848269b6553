"""
Adapter base class.

git, the autotools toolchain and fpm are only ever driven through an
Adapter; the orchestrator never runs them directly. Each adapter
answers an Action with a Receipt and reports tool failures there
instead of raising.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from relpack.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """One Action as handed to an adapter, plus the directory to run in."""

    action: Action
    working_dir: str = "."
    params: dict[str, Any] = Field(default_factory=dict)

    @property
    def operation(self) -> str:
        return self.params.get("operation", "")

    def missing(self, *keys: str) -> list[str]:
        """Which of ``keys`` are absent or empty in params."""
        return [key for key in keys if not self.params.get(key)]


class Adapter(ABC):
    """A wrapper around one external tool."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry key: ``git``, ``autotools`` or ``fpm``."""

    @abstractmethod
    def is_available(self) -> bool:
        """True when the tool is on PATH."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Check params before anything runs; ``(False, reason)`` rejects."""

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Run the tool and describe the outcome as a Receipt."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
