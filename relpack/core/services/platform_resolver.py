"""
Platform resolution: raw OS identity to normalized ``PlatformId``.

Pure: the raw strings come from the platform probe (or CLI overrides).

    resolve("CentOS", "6.5")         → centos/6
    resolve("Mac OS X", "10.9.5")    → macosx/10.9
    resolve("Ubuntu", "14.04")       → ubuntu/14.04
"""

from __future__ import annotations

from relpack.core.errors import UnresolvedPlatform
from relpack.core.models.platform import PackageFormat, PlatformId

# Exact spellings (after lowercasing) folded to canonical family names.
_FAMILY_ALIASES: dict[str, str] = {
    "rhel": "redhat",
    "redhat": "redhat",
    "redhatenterpriseserver": "redhat",
    "centos": "centos",
    "centos linux": "centos",
    "fedora": "fedora",
    "fedora linux": "fedora",
    "debian": "debian",
    "debian gnu/linux": "debian",
    "ubuntu": "ubuntu",
    "mac os x": "macosx",
    "macos": "macosx",
    "macosx": "macosx",
    "darwin": "macosx",
}

# Families whose version is truncated to the major component.
_MAJOR_ONLY = frozenset({"redhat", "centos", "debian", "fedora"})

# Families whose version keeps major.minor, dropping the patch.
_MAJOR_MINOR = frozenset({"macosx"})


def normalize_family(raw_os_id: str) -> str:
    """Fold a vendor spelling to its canonical family name."""
    name = " ".join(raw_os_id.strip().lower().split())
    if name.startswith("red hat"):
        return "redhat"
    if name in _FAMILY_ALIASES:
        return _FAMILY_ALIASES[name]
    return name.replace(" ", "")


def truncate_version(family: str, raw_version_id: str) -> str:
    """Apply the family-dependent version truncation policy."""
    version = raw_version_id.strip().lower()
    parts = version.split(".")
    if family in _MAJOR_ONLY:
        return parts[0]
    if family in _MAJOR_MINOR:
        return ".".join(parts[:2])
    return version


def resolve(raw_os_id: str | None, raw_version_id: str | None) -> PlatformId:
    """Normalize a raw OS identity into a ``PlatformId``.

    Raises:
        UnresolvedPlatform: If no OS identity was supplied.
    """
    if not raw_os_id or not raw_os_id.strip():
        raise UnresolvedPlatform("no OS identity available (set --os/--os-version to override)")

    family = normalize_family(raw_os_id)
    major = truncate_version(family, raw_version_id or "")
    return PlatformId(family=family, major_version=major)


# ── Architecture ────────────────────────────────────────────────

_DEB_ARCH = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "i386",
    "i686": "i386",
    "armv7l": "armhf",
}

_RPM_ARCH = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
    "i386": "i686",
    "i686": "i686",
    "armv7l": "armv7hl",
}


def resolve_architecture(package_format: PackageFormat, machine: str) -> str:
    """Translate a kernel machine name into the package format's arch label.

    Unknown machine names pass through lowercased.
    """
    key = machine.strip().lower()
    table = _DEB_ARCH if package_format is PackageFormat.DEB else _RPM_ARCH
    return table.get(key, key)
