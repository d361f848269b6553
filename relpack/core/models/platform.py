"""
Platform identity and the tagged variants derived from it.

``PlatformId`` is the normalized ``(family, major_version)`` pair every
policy decision keys on. ``InitVariant`` and ``PackageFormat`` replace
raw-string branching at call sites.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict


class PlatformId(BaseModel):
    """Normalized platform identity, e.g. ``centos/6`` or ``macosx/10.9``."""

    model_config = ConfigDict(frozen=True)

    family: str
    major_version: str

    def __str__(self) -> str:
        return f"{self.family}/{self.major_version}"


class InitVariant(str, enum.Enum):
    """Process-supervision convention a packaged service hooks into."""

    SYSV = "sysv"
    UPSTART = "upstart"
    SYSTEMD = "systemd"
    NONE = "none"


class PackageFormat(str, enum.Enum):
    DEB = "deb"
    RPM = "rpm"


class TlsBackend(str, enum.Enum):
    """TLS library libcurl was built against on the build host."""

    OPENSSL = "openssl"
    NSS = "nss"
    GNUTLS = "gnutls"
