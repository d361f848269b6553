"""
Autotools adapter: the native build toolchain.

Runs the classic out-of-tree sequence:

    <src>/bootstrap            (only when <src>/configure is missing)
    <src>/configure <flags>    (in the build dir)
    make -j<cores>
    make install DESTDIR=<dest>

Commands block until they finish; there is no timeout.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from pathlib import Path

from relpack.adapters.base import Adapter, ExecutionContext
from relpack.core.models.action import Receipt

logger = logging.getLogger(__name__)

# Lines of stderr kept in a failure receipt.
_ERROR_TAIL = 40


def default_jobs() -> int:
    """Compile job pool size: one job per detected core."""
    return os.cpu_count() or 1


class _CommandFailed(Exception):
    def __init__(self, command: list[str], returncode: int, stderr: str):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"{' '.join(command)} exited with code {returncode}")


class AutotoolsBuilderAdapter(Adapter):
    """Configure, compile and install an autotools project.

    Action params:
        operation (str): 'build' or 'install'.
        source_dir (str): Checkout root (for 'build').
        build_dir (str): Out-of-tree build directory.
        flags (list[str]): configure flags (for 'build').
        dest_dir (str): DESTDIR for 'install'.
        jobs (int): make -j value (default: CPU count).
    """

    @property
    def name(self) -> str:
        return "autotools"

    def is_available(self) -> bool:
        return shutil.which("make") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.operation
        if operation not in ("build", "install"):
            return False, f"Unknown operation '{operation}'. Valid: build, install"
        if not context.params.get("build_dir"):
            return False, "Missing required param: 'build_dir'"

        if operation == "build":
            source_dir = context.params.get("source_dir", "")
            if not source_dir or not Path(source_dir).is_dir():
                return False, f"Source directory does not exist: {source_dir}"
        else:
            if not context.params.get("dest_dir"):
                return False, "Missing required param: 'dest_dir' for install"
            if not Path(context.params["build_dir"]).is_dir():
                return False, f"Build directory does not exist: {context.params['build_dir']}"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.params["operation"]
        start = time.monotonic()
        try:
            if operation == "build":
                output = self._build(context)
            else:
                output = self._install(context)
        except _CommandFailed as e:
            tail = "\n".join(e.stderr.strip().splitlines()[-_ERROR_TAIL:])
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=tail or str(e),
                duration_ms=int((time.monotonic() - start) * 1000),
                metadata={"command": e.command, "return_code": e.returncode},
            )
        except Exception as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Build error: {e}",
            )

        return Receipt.success(
            adapter=self.name,
            action_id=context.action.id,
            output=output,
            duration_ms=int((time.monotonic() - start) * 1000),
            metadata={"operation": operation, "build_dir": context.params["build_dir"]},
        )

    # ── Operations ──────────────────────────────────────────────

    def _build(self, ctx: ExecutionContext) -> str:
        source_dir = Path(ctx.params["source_dir"]).resolve()
        build_dir = Path(ctx.params["build_dir"])
        flags = list(ctx.params.get("flags", []))
        jobs = int(ctx.params.get("jobs") or default_jobs())

        if not (source_dir / "configure").exists() and (source_dir / "bootstrap").exists():
            self._run(["./bootstrap"], source_dir)

        build_dir.mkdir(parents=True, exist_ok=True)
        self._run([str(source_dir / "configure"), *flags], build_dir)
        self._run(["make", f"-j{jobs}"], build_dir)
        return f"built {source_dir.name} in {build_dir} with -j{jobs}"

    def _install(self, ctx: ExecutionContext) -> str:
        build_dir = Path(ctx.params["build_dir"])
        dest_dir = Path(ctx.params["dest_dir"]).resolve()
        dest_dir.mkdir(parents=True, exist_ok=True)
        self._run(["make", "install", f"DESTDIR={dest_dir}"], build_dir)
        return f"installed into {dest_dir}"

    # ── Helpers ─────────────────────────────────────────────────

    def _run(self, command: list[str], cwd: Path) -> None:
        logger.info("Running: %s (cwd=%s)", " ".join(command), cwd)
        result = subprocess.run(command, cwd=cwd, capture_output=True, text=True)
        if result.returncode != 0:
            raise _CommandFailed(command, result.returncode, result.stderr)
        logger.debug("%s", result.stdout[-2000:])
