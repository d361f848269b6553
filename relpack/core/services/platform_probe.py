"""
Platform probe: read the raw OS identity of the build host.

Sources are consulted in a fixed priority order; the first one that
yields an OS id wins:

    1. /etc/os-release        (ID, VERSION_ID)
    2. release files          (/etc/centos-release, /etc/redhat-release, ...,
                               then /etc/debian_version)
    3. vendor tools           (lsb_release, sw_vers)

The Linux sources are read through ``distro``. Returns raw strings;
normalization is the resolver's job.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

import distro

from relpack.core.errors import UnresolvedPlatform

logger = logging.getLogger(__name__)

_HOST_ROOT = Path("/")


def _distribution(root: Path) -> distro.LinuxDistribution:
    # distro refuses subprocess sources together with root_dir
    if root == _HOST_ROOT:
        return distro.LinuxDistribution(include_lsb=False, include_uname=False, include_oslevel=False)
    return distro.LinuxDistribution(root_dir=str(root))


def probe_os_release(root: Path = _HOST_ROOT) -> tuple[str, str] | None:
    """``ID`` and ``VERSION_ID`` from os-release."""
    info = _distribution(root).os_release_info()
    os_id = info.get("id", "")
    if not os_id:
        return None
    return os_id, info.get("version_id", "")


def probe_release_files(root: Path = _HOST_ROOT) -> tuple[str, str] | None:
    """The first ``/etc/*-release`` file distro recognizes, else debian_version.

    The release-file name is reported (``CentOS``, ``Red Hat Enterprise
    Linux Server``) rather than the file's basename.
    """
    info = _distribution(root).distro_release_info()
    name = info.get("name") or info.get("id")
    if name:
        return name, info.get("version_id", "")

    # distro skips debian_version: it only holds a version number
    try:
        text = (root / "etc" / "debian_version").read_text(encoding="utf-8").strip()
    except OSError:
        return None
    if not text:
        return None
    return "debian", text.splitlines()[0].strip()


def _tool_output(args: list[str]) -> str:
    result = subprocess.run(args, capture_output=True, text=True, timeout=10)
    if result.returncode != 0:
        return ""
    return result.stdout.strip()


def probe_vendor_tools() -> tuple[str, str] | None:
    """Ask ``lsb_release`` (via distro) or ``sw_vers`` for the OS identity."""
    lsb = distro.lsb_release_info()
    if lsb.get("distributor_id"):
        return lsb["distributor_id"], lsb.get("release", "")

    if not shutil.which("sw_vers"):
        return None
    try:
        os_id = _tool_output(["sw_vers", "-productName"])
        if os_id:
            return os_id, _tool_output(["sw_vers", "-productVersion"])
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("sw_vers probe failed: %s", e)
    return None


def detect(root: Path = _HOST_ROOT) -> tuple[str, str]:
    """Return ``(raw_os_id, raw_version_id)`` from the first source that answers.

    Raises:
        UnresolvedPlatform: When no source yields an OS identity.
    """
    for source, probe in (
        ("os-release", lambda: probe_os_release(root)),
        ("release-file", lambda: probe_release_files(root)),
        ("vendor-tool", probe_vendor_tools),
    ):
        found = probe()
        if found:
            logger.debug("Platform from %s: %s %s", source, *found)
            return found

    raise UnresolvedPlatform(
        "cannot identify the build host OS (no os-release, release file, "
        "lsb_release or sw_vers); pass --os and --os-version"
    )
