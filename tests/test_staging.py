"""
Tests for the staging assembler.
"""

import os
from pathlib import Path

import pytest

from relpack.core.errors import UnsupportedPlatform
from relpack.core.models.platform import InitVariant, PlatformId
from relpack.core.services.policy import decide, maintainer_scripts
from relpack.core.services.staging import (
    assemble,
    copy_install_image,
    init_files,
    write_maintainer_scripts,
)
from relpack.core.services.versioning import parse_nominal

from tests.fakes import write_install_image, write_source_tree


def _staged(make_context, probe, family: str, major: str, version: str):
    ctx = make_context(PlatformId(family=family, major_version=major))
    write_source_tree(ctx.source_dir, version)
    nominal = parse_nominal(version)
    ctx.resolve_version(nominal)
    write_install_image(ctx.install_image, version)
    policy = decide(nominal, ctx.platform, probe)
    return ctx, assemble(ctx, policy, ctx.install_image)


class TestInitFiles:
    def test_sysv(self):
        files = init_files(InitVariant.SYSV, "mesos")
        assert [(p, m) for p, _, m in files] == [
            ("etc/init.d/mesos-master", 0o755),
            ("etc/init.d/mesos-slave", 0o755),
        ]

    def test_upstart(self):
        paths = [p for p, _, _ in init_files(InitVariant.UPSTART, "mesos")]
        assert paths == ["etc/init/mesos-master.conf", "etc/init/mesos-slave.conf"]

    def test_systemd(self):
        files = init_files(InitVariant.SYSTEMD, "mesos")
        assert files[0][0] == "usr/lib/systemd/system/mesos-master.service"
        assert "mesos-init-wrapper master" in files[0][1]

    def test_none(self):
        assert init_files(InitVariant.NONE, "mesos") == []

    def test_unknown_variant(self):
        with pytest.raises(UnsupportedPlatform):
            init_files("launchd", "mesos")


class TestAssemble:
    def test_centos7_tree(self, make_context, openssl_probe):
        ctx, tree = _staged(make_context, openssl_probe, "centos", "7", "0.21.0")
        root = ctx.staging_root
        files = tree.relative_files()

        assert "usr/lib/systemd/system/mesos-master.service" in files
        assert "usr/lib/systemd/system/mesos-slave.service" in files
        assert "etc/mesos-master/quorum" in files
        assert (root / "etc/mesos-master/quorum").read_text() == "1\n"
        assert "etc/mesos/zk" in files
        assert "usr/share/doc/mesos/LICENSE" in files
        assert not (root / "etc/init").exists()
        assert not (root / "etc/init.d").exists()

    def test_install_image_copied(self, make_context, openssl_probe):
        ctx, _ = _staged(make_context, openssl_probe, "centos", "7", "0.21.0")
        assert (ctx.staging_root / "usr/lib/libmesos-0.21.0.so").is_file()
        assert (ctx.staging_root / "usr/sbin/mesos-master").is_file()

    def test_skeleton_dirs(self, make_context, openssl_probe):
        ctx, _ = _staged(make_context, openssl_probe, "debian", "7", "0.20.0")
        for relative in ("var/log/mesos", "usr/libexec/mesos", "etc/mesos-slave"):
            assert (ctx.staging_root / relative).is_dir()

    def test_master_defaults_gated(self, make_context, openssl_probe):
        ctx, tree = _staged(make_context, openssl_probe, "ubuntu", "14.04", "0.18.5")
        assert "etc/mesos-master/quorum" not in tree.relative_files()
        assert "etc/mesos-master/work_dir" not in tree.relative_files()
        assert (ctx.staging_root / "etc/mesos-master").is_dir()

    def test_upstart_layout(self, make_context, openssl_probe):
        _, tree = _staged(make_context, openssl_probe, "ubuntu", "14.04", "0.19.0")
        files = tree.relative_files()
        assert "etc/init/mesos-master.conf" in files
        assert "etc/mesos-master/work_dir" in files

    def test_sysv_scripts_executable(self, make_context, openssl_probe):
        ctx, _ = _staged(make_context, openssl_probe, "debian", "7", "0.20.0")
        assert os.access(ctx.staging_root / "etc/init.d/mesos-slave", os.X_OK)
        assert os.access(ctx.staging_root / "usr/bin/mesos-init-wrapper", os.X_OK)


class TestCopyInstallImage:
    def test_symlinks_preserved(self, tmp_path: Path):
        image = tmp_path / "image"
        (image / "usr" / "lib").mkdir(parents=True)
        (image / "usr" / "lib" / "libfoo-1.0.so").write_bytes(b"")
        (image / "usr" / "lib" / "libfoo.so").symlink_to("libfoo-1.0.so")

        root = tmp_path / "root"
        root.mkdir()
        assert copy_install_image(image, root) == 1
        link = root / "usr" / "lib" / "libfoo.so"
        assert link.is_symlink()
        assert os.readlink(link) == "libfoo-1.0.so"

    def test_missing_image(self, tmp_path: Path):
        assert copy_install_image(tmp_path / "nope", tmp_path) == 0


class TestMaintainerScripts:
    def test_written_executable(self, tmp_path: Path):
        paths = write_maintainer_scripts(maintainer_scripts(InitVariant.SYSTEMD), tmp_path / "scripts")
        assert set(paths) == {"after-install", "after-remove"}
        assert os.access(paths["after-install"], os.X_OK)

    def test_nothing_to_write(self, tmp_path: Path):
        assert write_maintainer_scripts({}, tmp_path / "scripts") == {}
        assert not (tmp_path / "scripts").exists()
