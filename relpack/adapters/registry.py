"""
Adapter registry — where the pipeline's Actions get routed.

Adapters are keyed by name (``git``, ``autotools``, ``fpm``). Dispatch
finds the adapter, lets it validate the params, runs it, and stamps the
wall-clock duration on the receipt. Nothing escapes as an exception:
an unknown adapter, bad params or a crashing adapter all come back as
a failed Receipt.
"""

from __future__ import annotations

import logging
import time

from relpack.adapters.base import Adapter, ExecutionContext
from relpack.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Name → adapter table with a never-raising ``execute_action``."""

    def __init__(self) -> None:
        self._adapters: dict[str, Adapter] = {}

    def register(self, adapter: Adapter) -> None:
        if adapter.name in self._adapters:
            logger.warning("Replacing adapter '%s'", adapter.name)
        self._adapters[adapter.name] = adapter

    def unregister(self, name: str) -> None:
        self._adapters.pop(name, None)

    def get(self, name: str) -> Adapter | None:
        return self._adapters.get(name)

    def list_adapters(self) -> list[str]:
        return sorted(self._adapters)

    def unavailable(self) -> list[str]:
        """Names of registered adapters whose external tool is not installed."""
        missing = []
        for name, adapter in sorted(self._adapters.items()):
            try:
                if not adapter.is_available():
                    missing.append(name)
            except Exception as e:
                logger.debug("Availability check for %s raised: %s", name, e)
                missing.append(name)
        return missing

    def execute_action(self, action: Action, working_dir: str = ".") -> Receipt:
        """Run ``action`` on its adapter, in ``working_dir``."""
        started = time.monotonic()
        receipt = self._dispatch(action, working_dir)
        receipt.duration_ms = int((time.monotonic() - started) * 1000)
        log = logger.warning if receipt.failed else logger.debug
        log("%s", receipt.summary())
        return receipt

    def _dispatch(self, action: Action, working_dir: str) -> Receipt:
        adapter = self._adapters.get(action.adapter)
        if adapter is None:
            return self._reject(action, f"No adapter registered for '{action.adapter}'")

        context = ExecutionContext(action=action, working_dir=working_dir, params=action.params)

        try:
            valid, problem = adapter.validate(context)
        except Exception as e:
            return self._reject(action, f"Validation error: {e}")
        if not valid:
            return self._reject(action, f"Validation failed: {problem}")

        try:
            return adapter.execute(context)
        except Exception as e:
            logger.error("Adapter %s raised instead of returning a receipt: %s", action.adapter, e)
            return self._reject(action, f"Unexpected error: {e}")

    @staticmethod
    def _reject(action: Action, error: str) -> Receipt:
        return Receipt.failure(adapter=action.adapter, action_id=action.id, error=error)
