"""
Tests for the build context and TLS probes.
"""

import subprocess

import pytest
from pydantic import ValidationError

from relpack.core.errors import ContextError, PackagingError, TlsBackendUnavailable
from relpack.core.models.context import RunMode
from relpack.core.models.platform import PackageFormat, PlatformId, TlsBackend
from relpack.core.services import tls_probe
from relpack.core.services.tls_probe import FixedTlsProbe, PackageDbTlsProbe
from relpack.core.services.versioning import parse_nominal


class TestBuildContext:
    def test_version_unset_until_resolved(self, make_context, centos7):
        ctx = make_context(centos7)
        assert not ctx.version_resolved
        with pytest.raises(ContextError):
            ctx.nominal_version

    def test_version_set_once(self, make_context, centos7):
        ctx = make_context(centos7)
        ctx.resolve_version(parse_nominal("0.21.0"))
        assert str(ctx.nominal_version) == "0.21.0"
        with pytest.raises(ContextError, match="already resolved"):
            ctx.resolve_version(parse_nominal("0.22.0"))
        assert str(ctx.nominal_version) == "0.21.0"

    def test_context_errors_are_packaging_errors(self):
        assert issubclass(ContextError, PackagingError)

    def test_platform_cannot_be_reassigned(self, make_context, centos7):
        ctx = make_context(centos7)
        with pytest.raises(ValidationError):
            ctx.platform = PlatformId(family="fedora", major_version="21")

    def test_other_fields_mutable(self, make_context, centos7):
        ctx = make_context(centos7)
        ctx.architecture = "x86_64"
        ctx.resolved_ref = "abc"
        assert ctx.architecture == "x86_64"

    def test_derived_paths(self, make_context, centos7):
        ctx = make_context(centos7)
        assert ctx.install_image == ctx.build_dir / "dist"
        assert ctx.binding_staging_root == ctx.build_dir / "toor-binding"
        assert ctx.scripts_dir.parent == ctx.build_dir

    def test_prebuilt_mode(self):
        mode = RunMode.prebuilt(include_language_binding=False)
        assert mode.skip_checkout and mode.skip_build
        assert not mode.include_language_binding


class _Completed:
    def __init__(self, returncode: int, stdout: str = ""):
        self.returncode = returncode
        self.stdout = stdout


class TestTlsProbe:
    def test_fixed_counts_calls(self):
        probe = FixedTlsProbe(TlsBackend.GNUTLS)
        assert probe(PackageFormat.DEB) is TlsBackend.GNUTLS
        assert probe.calls == 1

    def test_first_installed_wins(self, monkeypatch):
        queried = []

        def fake_run(args, **kwargs):
            queried.append(args[-1])
            return _Completed(0 if args[-1] == "nss-devel" else 1)

        monkeypatch.setattr(tls_probe.shutil, "which", lambda name: f"/usr/bin/{name}")
        monkeypatch.setattr(subprocess, "run", fake_run)

        assert PackageDbTlsProbe()(PackageFormat.RPM) is TlsBackend.NSS
        assert queried == ["openssl-devel", "nss-devel"]

    def test_dpkg_status_must_be_installed(self, monkeypatch):
        def fake_run(args, **kwargs):
            package = args[-1]
            if package == "libcurl4-openssl-dev":
                return _Completed(0, "deinstall ok config-files")
            return _Completed(0, "install ok installed")

        monkeypatch.setattr(tls_probe.shutil, "which", lambda name: f"/usr/bin/{name}")
        monkeypatch.setattr(subprocess, "run", fake_run)

        assert PackageDbTlsProbe()(PackageFormat.DEB) is TlsBackend.NSS

    def test_none_installed(self, monkeypatch):
        monkeypatch.setattr(tls_probe.shutil, "which", lambda name: None)
        with pytest.raises(TlsBackendUnavailable, match="libcurl4-openssl-dev"):
            PackageDbTlsProbe()(PackageFormat.DEB)
