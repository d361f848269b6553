"""
Version source: find the nominal version declared by a checkout.

Looked up in order:
    1. ``configure.ac``             AC_INIT([mesos], [0.21.0])
    2. ``<build_dir>/config.status`` PACKAGE_VERSION='0.21.0'

The second source keeps prebuilt runs working when only the build
tree is at hand.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from relpack.core.errors import InvalidVersion, VersionUnavailable
from relpack.core.services.versioning import NominalVersion, parse_nominal

logger = logging.getLogger(__name__)

_AC_INIT_RE = re.compile(r"AC_INIT\(\s*\[?[^\],]+\]?\s*,\s*\[?\s*([^\],\s)]+)\s*\]?")
_PACKAGE_VERSION_RE = re.compile(r"""^PACKAGE_VERSION=['"]?([^'"\s]+)['"]?""", re.MULTILINE)


def _read(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None


def declared_version(source_dir: Path | None, build_dir: Path | None = None) -> str | None:
    """Return the raw declared version string, or None if nothing declares one."""
    if source_dir is not None:
        text = _read(source_dir / "configure.ac")
        if text:
            match = _AC_INIT_RE.search(text)
            if match:
                logger.debug("Version %s from %s/configure.ac", match.group(1), source_dir)
                return match.group(1)

    if build_dir is not None:
        text = _read(build_dir / "config.status")
        if text:
            match = _PACKAGE_VERSION_RE.search(text)
            if match:
                logger.debug("Version %s from %s/config.status", match.group(1), build_dir)
                return match.group(1)

    return None


def resolve_nominal_version(
    override: str | None,
    source_dir: Path | None,
    build_dir: Path | None = None,
) -> NominalVersion:
    """Resolve the nominal version from an override or the checkout.

    Raises:
        InvalidVersion: If the override does not parse.
        VersionUnavailable: If the checkout declares no parseable version.
    """
    if override:
        return parse_nominal(override)

    raw = declared_version(source_dir, build_dir)
    if raw is None:
        raise VersionUnavailable(
            f"no declared version in {source_dir}/configure.ac or "
            f"{build_dir}/config.status; pass --nominal-version"
        )

    try:
        return parse_nominal(raw)
    except InvalidVersion as e:
        raise VersionUnavailable(f"declared version {raw!r} is not parseable: {e}") from e
