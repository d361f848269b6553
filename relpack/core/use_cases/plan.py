"""
Plan use case: show what a run would decide, without running it.

Resolves version and platform, asks the policy table, and reports the
flags, dependencies, init files and package names. Nothing on disk is
read or written except what the TLS probe inspects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from relpack.core.config.loader import ConfigError, load_config
from relpack.core.errors import PackagingError
from relpack.core.models.platform import PlatformId, TlsBackend
from relpack.core.services.policy import (
    PolicyDecision,
    decide,
    maintainer_scripts,
    package_filename,
)
from relpack.core.services.platform_resolver import resolve_architecture
from relpack.core.services.staging import init_files
from relpack.core.services.versioning import NominalVersion, parse_nominal
from relpack.core.use_cases.package import default_revision, resolve_platform, tls_probe_for

logger = logging.getLogger(__name__)


@dataclass
class PlanResult:
    """Result of a plan query."""

    version: NominalVersion | None = None
    platform: PlatformId | None = None
    architecture: str = ""
    policy: PolicyDecision | None = None
    init_files: list[str] = field(default_factory=list)
    hooks: list[str] = field(default_factory=list)
    packages: list[str] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "version": str(self.version),
            "platform": str(self.platform),
            "architecture": self.architecture,
            "policy": self.policy.model_dump(mode="json") if self.policy else None,
            "init_files": self.init_files,
            "hooks": self.hooks,
            "packages": self.packages,
        }


def plan_policy(
    nominal_version: str,
    os_id: str | None = None,
    os_version: str | None = None,
    tls_backend: TlsBackend | None = None,
    include_binding: bool = True,
    build_revision: str | None = None,
    machine: str = "x86_64",
    config_path: Path | None = None,
) -> PlanResult:
    """Compute the policy decision for a version on a platform."""
    result = PlanResult()

    try:
        config = load_config(config_path)
        version = parse_nominal(nominal_version)
        platform = resolve_platform(os_id, os_version)
        policy = decide(version, platform, tls_probe_for(tls_backend), include_binding=include_binding)
    except (ConfigError, PackagingError) as e:
        result.error = str(e)
        return result

    result.version = version
    result.platform = platform
    result.policy = policy
    result.architecture = resolve_architecture(policy.package_format, machine)
    result.init_files = [path for path, _, _ in init_files(policy.init_variant, config.name)]
    result.hooks = sorted(maintainer_scripts(policy.init_variant))

    revision = build_revision or default_revision()
    names = [config.name]
    if include_binding:
        names.append(config.binding_name)
    result.packages = [
        package_filename(name, version.package_version, revision, result.architecture, policy.package_format)
        for name in names
    ]
    return result
