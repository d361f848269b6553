"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from relpack.core.models.context import BuildContext, PackageMetadata, RunMode
from relpack.core.models.platform import PlatformId, TlsBackend
from relpack.core.services.tls_probe import FixedTlsProbe

from tests.fakes import FakeTools


@pytest.fixture
def fake_tools() -> FakeTools:
    return FakeTools()


@pytest.fixture
def openssl_probe() -> FixedTlsProbe:
    return FixedTlsProbe(TlsBackend.OPENSSL)


@pytest.fixture
def centos7() -> PlatformId:
    return PlatformId(family="centos", major_version="7")


@pytest.fixture
def make_context(tmp_path: Path):
    """Factory for a BuildContext rooted in tmp_path."""

    def _make(platform: PlatformId, mode: RunMode | None = None, **overrides) -> BuildContext:
        source_dir = tmp_path / "mesos-repo"
        build_dir = source_dir / "build"
        fields = dict(
            source_dir=source_dir,
            build_dir=build_dir,
            staging_root=build_dir / "toor",
            output_dir=tmp_path / "out",
            repo_locator="https://github.com/apache/mesos.git",
            ref="0.21.0",
            build_revision="0.1.1",
            platform=platform,
            mode=mode or RunMode(),
            metadata=PackageMetadata(
                name="mesos",
                maintainer="ops@example.com",
                binding_name="mesos-python",
                binding_install_dir="usr/share/mesos/python",
            ),
        )
        fields.update(overrides)
        return BuildContext(**fields)

    return _make
