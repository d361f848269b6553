"""
Git adapter: the source provider.

Clones a repository locator into a local directory and checks out a
ref. Uses the git CLI. Checkout is idempotent: an existing destination
is left untouched and no network operation happens.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from relpack.adapters.base import Adapter, ExecutionContext
from relpack.core.models.action import Receipt

logger = logging.getLogger(__name__)


class GitSourceAdapter(Adapter):
    """Source checkout via git.

    Action params:
        operation (str): 'checkout'.
        locator (str): Repository URL or path.
        ref (str | None): Branch, tag or commit to check out.
        dest (str): Local directory to check out into.
    """

    @property
    def name(self) -> str:
        return "git"

    def is_available(self) -> bool:
        return shutil.which("git") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        if context.operation != "checkout":
            return False, f"Unknown operation '{context.operation}'. Valid: checkout"
        missing = context.missing("dest", "locator")
        if missing:
            return False, f"Missing required param: '{missing[0]}'"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        try:
            return self._checkout(context)
        except Exception as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Git error: {e}",
            )

    # ── Operations ──────────────────────────────────────────────

    def _checkout(self, ctx: ExecutionContext) -> Receipt:
        locator = ctx.params["locator"]
        ref = ctx.params.get("ref")
        dest = Path(ctx.params["dest"])

        if dest.exists():
            return Receipt.skip(
                adapter=self.name,
                action_id=ctx.action.id,
                reason=f"{dest} already exists, not checking out",
            )

        dest.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Cloning %s into %s", locator, dest)
        self._git(["clone", locator, str(dest)], str(dest.parent))
        if ref:
            self._git(["checkout", ref], str(dest))

        resolved = self._git(["rev-parse", "HEAD"], str(dest)).strip()
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"checked out {ref or 'default branch'} at {resolved}",
            metadata={"resolved_ref": resolved, "dest": str(dest)},
        )

    # ── Helpers ─────────────────────────────────────────────────

    def _git(self, args: list[str], cwd: str) -> str:
        """Run a git command and return stdout. Blocks until git exits."""
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
        )
        if result.returncode != 0:
            raise RuntimeError(result.stderr.strip() or f"git {args[0]} failed")
        return result.stdout
