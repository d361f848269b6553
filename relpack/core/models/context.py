"""
BuildContext: the single mutable record threaded through the pipeline.

Created once at pipeline start, owned by the orchestrator, passed by
reference to each stage. Stages must not keep a reference after they
return.

Two fields are write-once:
    - ``platform`` is fixed at construction.
    - ``nominal_version`` is set exactly once via ``resolve_version()``.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, PrivateAttr

from relpack.core.errors import ContextError
from relpack.core.models.platform import PlatformId
from relpack.core.services.versioning import NominalVersion


class RunMode(BaseModel):
    """Operator-selected skip/include switches."""

    skip_checkout: bool = False
    skip_build: bool = False
    include_language_binding: bool = True

    @classmethod
    def prebuilt(cls, include_language_binding: bool = True) -> RunMode:
        """Prebuilt mode: reuse an existing source and build tree."""
        return cls(
            skip_checkout=True,
            skip_build=True,
            include_language_binding=include_language_binding,
        )


class PackageMetadata(BaseModel):
    """Descriptive package fields copied from configuration."""

    name: str
    description: str = ""
    maintainer: str = ""
    vendor: str = ""
    url: str = ""
    license: str = ""
    binding_name: str = ""
    binding_install_dir: str = ""
    binding_description: str = ""


class BuildContext(BaseModel):
    """Everything a run knows about itself."""

    # ── Paths ────────────────────────────────────────────────────
    source_dir: Path
    build_dir: Path
    staging_root: Path
    output_dir: Path

    # ── Source ───────────────────────────────────────────────────
    repo_locator: str = ""
    ref: str | None = None
    resolved_ref: str | None = None

    # ── Identity ─────────────────────────────────────────────────
    build_revision: str
    platform: PlatformId = Field(frozen=True)
    architecture: str = ""
    version_override: str | None = None

    mode: RunMode = Field(default_factory=RunMode)
    metadata: PackageMetadata

    _nominal_version: NominalVersion | None = PrivateAttr(default=None)

    @property
    def nominal_version(self) -> NominalVersion:
        """The resolved nominal version.

        Raises:
            ContextError: If read before the version-resolution stage.
        """
        if self._nominal_version is None:
            raise ContextError("nominal version read before it was resolved")
        return self._nominal_version

    @property
    def version_resolved(self) -> bool:
        return self._nominal_version is not None

    def resolve_version(self, version: NominalVersion) -> None:
        """Set the nominal version. Allowed exactly once per run."""
        if self._nominal_version is not None:
            raise ContextError(
                f"nominal version already resolved to {self._nominal_version}; "
                f"refusing to change it to {version}"
            )
        self._nominal_version = version

    @property
    def install_image(self) -> Path:
        """DESTDIR the builder installs into, inside the build tree."""
        return self.build_dir / "dist"

    @property
    def scripts_dir(self) -> Path:
        """Maintainer scripts live beside, not inside, the staging root."""
        return self.build_dir / "pkg-scripts"

    @property
    def binding_staging_root(self) -> Path:
        return self.staging_root.with_name(self.staging_root.name + "-binding")
