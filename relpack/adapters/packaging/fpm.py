"""
fpm adapter: the package assembler.

Turns a staged directory tree into a .deb or .rpm with fpm:

    fpm -s dir -t <deb|rpm> -C <staging> -n <name> -v <version>
        --iteration <revision> -a <arch> -p <output> -d <dep> ... .
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from pathlib import Path

from relpack.adapters.base import Adapter, ExecutionContext
from relpack.core.models.action import Receipt

logger = logging.getLogger(__name__)

_REQUIRED = ("staging_dir", "output_path", "name", "version", "revision", "arch", "format")

# Optional metadata params and their fpm flags.
_METADATA_FLAGS = (
    ("description", "--description"),
    ("maintainer", "--maintainer"),
    ("vendor", "--vendor"),
    ("url", "--url"),
    ("license", "--license"),
)


def fpm_command(params: dict) -> list[str]:
    """Build the fpm argument list for a package action."""
    cmd = [
        "fpm",
        "-s", "dir",
        "-t", params["format"],
        "-C", str(params["staging_dir"]),
        "-n", params["name"],
        "-v", params["version"],
        "--iteration", params["revision"],
        "-a", params["arch"],
        "-p", str(params["output_path"]),
    ]
    for key, flag in _METADATA_FLAGS:
        if params.get(key):
            cmd.extend([flag, params[key]])
    for dep in params.get("dependencies", []):
        cmd.extend(["-d", dep])
    for hook, path in sorted(params.get("scripts", {}).items()):
        cmd.extend([f"--{hook}", str(path)])
    cmd.append(".")
    return cmd


class FpmPackagerAdapter(Adapter):
    """Assemble a native package from a staged tree.

    Action params:
        staging_dir (str): Root of the staged filesystem tree.
        output_path (str): Package file to write.
        name, version, revision, arch (str): Package identity.
        format (str): 'deb' or 'rpm'.
        dependencies (list[str]): Runtime dependencies.
        scripts (dict[str, str]): fpm hook name → script path.
        description, maintainer, vendor, url, license (str): Optional metadata.
    """

    @property
    def name(self) -> str:
        return "fpm"

    def is_available(self) -> bool:
        return shutil.which("fpm") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        missing = context.missing(*_REQUIRED)
        if missing:
            return False, f"Missing required params: {', '.join(missing)}"
        if context.params["format"] not in ("deb", "rpm"):
            return False, f"Unsupported package format: {context.params['format']}"
        if not Path(context.params["staging_dir"]).is_dir():
            return False, f"Staging directory does not exist: {context.params['staging_dir']}"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        cmd = fpm_command(context.params)
        output_path = Path(context.params["output_path"])
        output_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info("Packaging %s", output_path.name)
        logger.debug("Executing: %s", " ".join(cmd))
        start = time.monotonic()

        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except Exception as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"fpm execution error: {e}",
                metadata={"command": cmd},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if result.returncode != 0:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=result.stderr.strip() or f"fpm exited with code {result.returncode}",
                duration_ms=elapsed_ms,
                metadata={"command": cmd, "return_code": result.returncode},
            )

        return Receipt.success(
            adapter=self.name,
            action_id=context.action.id,
            output=result.stdout.strip(),
            duration_ms=elapsed_ms,
            metadata={"package": str(output_path)},
        )
