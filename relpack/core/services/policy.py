"""
Conditional policy table: version/platform rules as data.

``decide()`` maps ``(nominal version, platform)`` to a ``PolicyDecision``:
build flags, runtime dependencies, init integration, package format,
and which version-gated files get staged.

Pure and deterministic. The only impure input, which libcurl TLS
backend is installed, comes in through the injected ``tls_probe``.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict

from relpack.core.errors import UnsupportedPlatform
from relpack.core.models.platform import InitVariant, PackageFormat, PlatformId, TlsBackend
from relpack.core.services.tls_probe import TlsProbe
from relpack.core.services.versioning import NominalVersion

logger = logging.getLogger(__name__)

# ── Thresholds ──────────────────────────────────────────────────

NATIVE_BINDING_LAYOUT_SINCE = "0.18.0"
MASTER_DEFAULTS_SINCE = "0.19.0"
OPTIMIZE_SINCE = "0.21.0"
SUBVERSION_DEPS_SINCE = "0.21.0"

# ── Tables ──────────────────────────────────────────────────────

BASE_BUILD_FLAGS = ("--prefix=/usr", "--sysconfdir=/etc", "--localstatedir=/var")
OPTIMIZE_FLAG = "--enable-optimize"
DISABLE_BINDING_FLAG = "--disable-python"

# Where the build drops the language binding eggs, relative to the build dir.
LEGACY_BINDING_DIR = "src/python/dist"
NATIVE_BINDING_DIR = "src/python/native/dist"

BASE_DEPENDENCIES: dict[PackageFormat, tuple[str, ...]] = {
    PackageFormat.DEB: (
        "default-jre-headless | java7-runtime-headless | java6-runtime-headless",
        "zlib1g",
        "libsasl2-modules",
    ),
    PackageFormat.RPM: (
        "java",
        "zlib",
        "cyrus-sasl-md5",
        "libcurl",
    ),
}

SUBVERSION_DEPENDENCIES: dict[PackageFormat, tuple[str, ...]] = {
    PackageFormat.DEB: ("libsvn1", "libapr1"),
    PackageFormat.RPM: ("subversion", "apr"),
}

TLS_DEPENDENCY: dict[PackageFormat, dict[TlsBackend, str]] = {
    PackageFormat.DEB: {
        TlsBackend.OPENSSL: "libcurl3",
        TlsBackend.NSS: "libcurl3-nss",
        TlsBackend.GNUTLS: "libcurl3-gnutls",
    },
    PackageFormat.RPM: {
        TlsBackend.OPENSSL: "openssl-libs",
        TlsBackend.NSS: "nss",
        TlsBackend.GNUTLS: "gnutls",
    },
}

_FORMATS: dict[str, PackageFormat] = {
    "ubuntu": PackageFormat.DEB,
    "debian": PackageFormat.DEB,
    "centos": PackageFormat.RPM,
    "redhat": PackageFormat.RPM,
    "fedora": PackageFormat.RPM,
}


class PolicyDecision(BaseModel):
    """Everything the pipeline needs to know that depends on version or platform."""

    model_config = ConfigDict(frozen=True)

    build_flags: tuple[str, ...]
    dependencies: tuple[str, ...]
    init_variant: InitVariant
    package_format: PackageFormat
    tls_backend: TlsBackend
    write_master_defaults: bool
    binding_artifact_dir: str


def select_init_variant(platform: PlatformId) -> InitVariant:
    """Pick the init system for a platform.

    Raises:
        UnsupportedPlatform: For any family/major combination not listed.
    """
    family, major = platform.family, platform.major_version

    if family == "debian":
        return InitVariant.SYSV
    if family == "ubuntu":
        return InitVariant.UPSTART
    if family == "fedora":
        return InitVariant.SYSTEMD
    if family in ("redhat", "centos"):
        if major == "6":
            return InitVariant.UPSTART
        if major == "7":
            return InitVariant.SYSTEMD

    raise UnsupportedPlatform(f"no init integration for platform {platform}")


def select_package_format(platform: PlatformId) -> PackageFormat:
    """Pick deb or rpm for a platform family.

    Raises:
        UnsupportedPlatform: For families with no package format.
    """
    try:
        return _FORMATS[platform.family]
    except KeyError:
        raise UnsupportedPlatform(f"no package format for platform family '{platform.family}'") from None


def select_build_flags(version: NominalVersion, include_binding: bool = True) -> tuple[str, ...]:
    flags = list(BASE_BUILD_FLAGS)
    if not include_binding:
        flags.append(DISABLE_BINDING_FLAG)
    if version.at_least(OPTIMIZE_SINCE):
        flags.append(OPTIMIZE_FLAG)
    return tuple(flags)


def select_dependencies(
    version: NominalVersion,
    package_format: PackageFormat,
    tls_backend: TlsBackend,
) -> tuple[str, ...]:
    """Baseline + version-gated + exactly one TLS dependency, de-duplicated in order."""
    deps = list(BASE_DEPENDENCIES[package_format])
    if version.at_least(SUBVERSION_DEPS_SINCE):
        deps.extend(SUBVERSION_DEPENDENCIES[package_format])
    deps.append(TLS_DEPENDENCY[package_format][tls_backend])
    return tuple(dict.fromkeys(deps))


def binding_artifact_dir(version: NominalVersion) -> str:
    """Build-relative directory holding binding eggs; chosen by version only."""
    if version.before(NATIVE_BINDING_LAYOUT_SINCE):
        return LEGACY_BINDING_DIR
    return NATIVE_BINDING_DIR


def decide(
    version: NominalVersion,
    platform: PlatformId,
    tls_probe: TlsProbe,
    include_binding: bool = True,
) -> PolicyDecision:
    """Derive the full policy decision for a run.

    Raises:
        UnsupportedPlatform: If the platform has no init or format mapping.
        TlsBackendUnavailable: If the probe finds no libcurl TLS backend.
    """
    init_variant = select_init_variant(platform)
    package_format = select_package_format(platform)
    tls_backend = tls_probe(package_format)

    decision = PolicyDecision(
        build_flags=select_build_flags(version, include_binding),
        dependencies=select_dependencies(version, package_format, tls_backend),
        init_variant=init_variant,
        package_format=package_format,
        tls_backend=tls_backend,
        write_master_defaults=version.at_least(MASTER_DEFAULTS_SINCE),
        binding_artifact_dir=binding_artifact_dir(version),
    )
    logger.debug("Policy for %s on %s: %s", version, platform, decision)
    return decision


# ── Maintainer scripts ──────────────────────────────────────────

_SYSTEMD_RELOAD = """#!/bin/sh
set -e
if command -v systemctl >/dev/null 2>&1; then
  systemctl daemon-reload || true
fi
"""

_UPSTART_RELOAD = """#!/bin/sh
set -e
if command -v initctl >/dev/null 2>&1; then
  initctl reload-configuration || true
fi
"""


def maintainer_scripts(init_variant: InitVariant) -> dict[str, str]:
    """Package hook scripts for an init variant, keyed by fpm hook name."""
    if init_variant is InitVariant.SYSTEMD:
        return {"after-install": _SYSTEMD_RELOAD, "after-remove": _SYSTEMD_RELOAD}
    if init_variant is InitVariant.UPSTART:
        return {"after-install": _UPSTART_RELOAD}
    return {}


def package_filename(name: str, version: str, revision: str, arch: str, package_format: PackageFormat) -> str:
    """Deterministic package file name.

        deb: <name>_<version>-<revision>_<arch>.deb
        rpm: <name>-<version>-<revision>.<arch>.rpm
    """
    if package_format is PackageFormat.DEB:
        return f"{name}_{version}-{revision}_{arch}.deb"
    return f"{name}-{version}-{revision}.{arch}.rpm"
