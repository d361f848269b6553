"""
TLS backend probe: the one impure input to the policy table.

libcurl ships in three mutually exclusive flavours (OpenSSL, NSS,
GnuTLS). The package must depend on the runtime flavour matching the
development package the project was built against, so we ask the
host package database which one is installed.

The policy table receives a ``TlsProbe`` callable; tests pass a fake.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from typing import Protocol

from relpack.core.errors import TlsBackendUnavailable
from relpack.core.models.platform import PackageFormat, TlsBackend

logger = logging.getLogger(__name__)

# Development packages whose presence identifies the backend, in probe order.
DEV_PACKAGES: dict[PackageFormat, tuple[tuple[TlsBackend, str], ...]] = {
    PackageFormat.DEB: (
        (TlsBackend.OPENSSL, "libcurl4-openssl-dev"),
        (TlsBackend.NSS, "libcurl4-nss-dev"),
        (TlsBackend.GNUTLS, "libcurl4-gnutls-dev"),
    ),
    PackageFormat.RPM: (
        (TlsBackend.OPENSSL, "openssl-devel"),
        (TlsBackend.NSS, "nss-devel"),
        (TlsBackend.GNUTLS, "gnutls-devel"),
    ),
}


class TlsProbe(Protocol):
    def __call__(self, package_format: PackageFormat) -> TlsBackend: ...


class FixedTlsProbe:
    """Probe that always answers the same backend (``--tls-backend``, tests)."""

    def __init__(self, backend: TlsBackend):
        self.backend = backend
        self.calls = 0

    def __call__(self, package_format: PackageFormat) -> TlsBackend:
        self.calls += 1
        return self.backend


class PackageDbTlsProbe:
    """Query dpkg or rpm for the installed libcurl TLS development package."""

    def __call__(self, package_format: PackageFormat) -> TlsBackend:
        for backend, package in DEV_PACKAGES[package_format]:
            if self._installed(package_format, package):
                logger.info("TLS backend: %s (%s installed)", backend.value, package)
                return backend

        names = ", ".join(p for _, p in DEV_PACKAGES[package_format])
        raise TlsBackendUnavailable(f"none of {names} is installed on the build host")

    def _installed(self, package_format: PackageFormat, package: str) -> bool:
        if package_format is PackageFormat.DEB:
            args = ["dpkg-query", "-W", "-f=${Status}", package]
        else:
            args = ["rpm", "-q", package]

        if not shutil.which(args[0]):
            logger.debug("%s not available, cannot probe %s", args[0], package)
            return False

        try:
            result = subprocess.run(args, capture_output=True, text=True, timeout=10)
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug("Probe %s failed: %s", package, e)
            return False

        if result.returncode != 0:
            return False
        if package_format is PackageFormat.DEB:
            return "install ok installed" in result.stdout
        return True
