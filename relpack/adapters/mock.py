"""
In-memory stand-in for the git, autotools and fpm adapters.

Tests register one per tool name. Each call is recorded; the answer is
picked in this order: a receipt canned for the exact action id, a
failure registered for the operation, whatever ``side_effect`` returns,
and finally a plain success. ``side_effect`` is also where a test
writes the files the real tool would have produced.
"""

from __future__ import annotations

from typing import Callable

from relpack.adapters.base import Adapter, ExecutionContext
from relpack.core.models.action import Receipt

SideEffect = Callable[[ExecutionContext], "Receipt | None"]


class MockAdapter(Adapter):

    def __init__(
        self,
        adapter_name: str = "mock",
        available: bool = True,
        default_output: str = "[mock] executed",
        side_effect: SideEffect | None = None,
    ):
        self._name = adapter_name
        self._available = available
        self._default_output = default_output
        self._side_effect = side_effect
        self._by_action: dict[str, Receipt] = {}
        self._failing_ops: dict[str, str] = {}
        self.call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_count(self) -> int:
        return len(self.call_log)

    def operations(self) -> list[str]:
        return [call.operation for call in self.call_log]

    def is_available(self) -> bool:
        return self._available

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    # ── Scripting ───────────────────────────────────────────────

    def set_response(self, action_id: str, receipt: Receipt) -> None:
        self._by_action[action_id] = receipt

    def set_failure(self, action_id: str, error: str = "Mock failure") -> None:
        self.set_response(action_id, Receipt.failure(adapter=self._name, action_id=action_id, error=error))

    def fail_operation(self, operation: str, error: str = "Mock failure") -> None:
        """Every later call with this ``operation`` param gets a failed receipt."""
        self._failing_ops[operation] = error

    def reset(self) -> None:
        self.call_log.clear()
        self._by_action.clear()
        self._failing_ops.clear()

    # ── Execution ───────────────────────────────────────────────

    def execute(self, context: ExecutionContext) -> Receipt:
        self.call_log.append(context)
        action_id = context.action.id

        canned = self._by_action.get(action_id)
        if canned is not None:
            return canned

        if context.operation in self._failing_ops:
            return Receipt.failure(
                adapter=self._name, action_id=action_id, error=self._failing_ops[context.operation],
            )

        if self._side_effect is not None:
            produced = self._side_effect(context)
            if produced is not None:
                return produced

        return Receipt.success(
            adapter=self._name, action_id=action_id, output=self._default_output, metadata={"mock": True},
        )
