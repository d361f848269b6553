"""
Tests for the pipeline orchestrator, run against fake tools.
"""

from pathlib import Path

import pytest

from relpack.core.engine.pipeline import Pipeline, PipelineState
from relpack.core.errors import ContextError, StageFailure, TlsBackendUnavailable, VersionUnavailable
from relpack.core.models.context import RunMode
from relpack.core.models.platform import PlatformId
from relpack.core.services.versioning import parse_nominal

from tests.fakes import write_eggs, write_source_tree


def _run(ctx, fake_tools, probe) -> Pipeline:
    pipeline = Pipeline(ctx, fake_tools.registry, probe, machine="x86_64")
    pipeline.run()
    return pipeline


def _prebuilt_tree(ctx, version: str = "0.21.0") -> None:
    write_source_tree(ctx.source_dir, version)
    ctx.build_dir.mkdir(parents=True, exist_ok=True)
    (ctx.build_dir / "config.status").write_text(f"PACKAGE_VERSION='{version}'\n")
    (ctx.build_dir / "libtool").write_text("# generated\n")
    write_eggs(ctx.build_dir, "src/python/native/dist", version=version)


# ── End to end ──────────────────────────────────────────────────


class TestFullRun:
    def test_centos7_0_21(self, make_context, centos7, fake_tools, openssl_probe):
        ctx = make_context(centos7)
        pipeline = _run(ctx, fake_tools, openssl_probe)
        report = pipeline.report

        assert report.ok
        assert report.state is PipelineState.DONE
        assert [p.name for p in report.packages] == [
            "mesos-0.21.0-0.1.1.x86_64.rpm",
            "mesos-python-0.21.0-0.1.1.x86_64.rpm",
        ]
        assert all(p.is_file() for p in report.packages)
        assert ctx.resolved_ref == "4f2a9c1"
        assert ctx.architecture == "x86_64"

        # Build flags carry the optimize flag from 0.21.0 on
        build_call = fake_tools.autotools.call_log[0]
        assert build_call.params["operation"] == "build"
        assert "--enable-optimize" in build_call.params["flags"]

        # Main package: rpm, systemd hooks, subversion deps, one TLS dep
        main_call = fake_tools.fpm.call_log[0]
        assert main_call.params["format"] == "rpm"
        deps = main_call.params["dependencies"]
        assert "subversion" in deps and "apr" in deps
        assert deps[-1] == "openssl-libs"
        assert set(main_call.params["scripts"]) == {"after-install", "after-remove"}

        # Binding package depends on the exact main package
        binding_call = fake_tools.fpm.call_log[1]
        assert binding_call.params["name"] == "mesos-python"
        assert binding_call.params["dependencies"] == ["mesos (= 0.21.0-0.1.1)"]

    def test_staged_tree(self, make_context, centos7, fake_tools, openssl_probe):
        ctx = make_context(centos7)
        report = _run(ctx, fake_tools, openssl_probe).report
        root = ctx.staging_root

        assert "usr/lib/systemd/system/mesos-master.service" in report.staged_files
        assert (root / "etc/mesos-master/quorum").is_file()
        assert not (root / "etc/init").exists()

        link = root / "usr/lib/libmesos.so"
        assert link.is_symlink()
        assert link.readlink() == Path("libmesos-0.21.0.so")
        assert (root / "usr/local/lib/libmesos.so").readlink() == Path("/usr/lib/libmesos.so")

    def test_binding_eggs_staged(self, make_context, centos7, fake_tools, openssl_probe):
        ctx = make_context(centos7)
        _run(ctx, fake_tools, openssl_probe)
        eggs = list((ctx.binding_staging_root / "usr/share/mesos/python").glob("*.egg"))
        assert len(eggs) == 1

    def test_stage_order(self, make_context, centos7, fake_tools, openssl_probe):
        report = _run(make_context(centos7), fake_tools, openssl_probe).report
        assert [s.stage for s in report.stages] == [
            "checkout", "version_resolved", "cleaned", "built", "staged",
            "symlinked", "packaged", "binding_packaged",
        ]

    def test_action_ids_trace_to_run_and_stage(self, make_context, centos7, fake_tools, openssl_probe):
        report = _run(make_context(centos7), fake_tools, openssl_probe).report
        ids = [r.action_id for r in report.receipts]
        assert ids[0] == f"{report.run_id}:checkout:checkout"
        assert all(i.startswith(report.run_id + ":") for i in ids)

    def test_package_path_has_architecture_on_first_call(self, make_context, centos7, fake_tools, openssl_probe):
        ctx = make_context(centos7)
        ctx.resolve_version(parse_nominal("0.21.0"))
        pipeline = Pipeline(ctx, fake_tools.registry, openssl_probe, machine="x86_64")

        assert pipeline.package_path().name == "mesos-0.21.0-0.1.1.x86_64.rpm"
        assert pipeline.package_path(binding=True).name == "mesos-python-0.21.0-0.1.1.x86_64.rpm"

    def test_debian_legacy_binding(self, make_context, fake_tools, openssl_probe):
        fake_tools.version = "0.17.0"
        ctx = make_context(PlatformId(family="debian", major_version="7"))
        report = _run(ctx, fake_tools, openssl_probe).report

        assert report.policy.binding_artifact_dir == "src/python/dist"
        assert report.packages[0].name == "mesos_0.17.0-0.1.1_amd64.deb"
        assert "etc/init.d/mesos-master" in report.staged_files
        assert fake_tools.fpm.call_log[0].params["scripts"] == {}


# ── Skips and modes ─────────────────────────────────────────────


class TestCheckout:
    def test_existing_source_dir_skips_checkout(self, make_context, centos7, fake_tools, openssl_probe):
        ctx = make_context(centos7)
        write_source_tree(ctx.source_dir, "0.21.0")

        report = _run(ctx, fake_tools, openssl_probe).report

        assert fake_tools.git.call_count == 0
        assert report.stage("checkout").status == "skipped"
        assert report.ok

    def test_skip_checkout_mode(self, make_context, centos7, fake_tools, openssl_probe):
        ctx = make_context(centos7, mode=RunMode(skip_checkout=True))
        write_source_tree(ctx.source_dir, "0.21.0")
        report = _run(ctx, fake_tools, openssl_probe).report
        assert fake_tools.git.call_count == 0
        assert report.stage("checkout").detail == "checkout disabled"

    def test_checkout_failure(self, make_context, centos7, fake_tools, openssl_probe):
        fake_tools.git.fail_operation("checkout", "repository not found")
        ctx = make_context(centos7)
        pipeline = Pipeline(ctx, fake_tools.registry, openssl_probe, machine="x86_64")

        with pytest.raises(StageFailure) as exc_info:
            pipeline.run()

        assert exc_info.value.stage == "checkout"
        assert "repository not found" in str(exc_info.value)


class TestPrebuilt:
    def test_preserves_build_tree(self, make_context, centos7, fake_tools, openssl_probe):
        ctx = make_context(centos7, mode=RunMode.prebuilt())
        _prebuilt_tree(ctx)

        report = _run(ctx, fake_tools, openssl_probe).report

        assert report.ok
        assert (ctx.build_dir / "libtool").is_file()
        assert fake_tools.git.call_count == 0
        assert fake_tools.autotools.operations() == ["install"]
        assert report.stage("built").status == "skipped"

    def test_symlinks_idempotent(self, make_context, centos7, fake_tools, openssl_probe):
        first = make_context(centos7, mode=RunMode.prebuilt())
        _prebuilt_tree(first)
        _run(first, fake_tools, openssl_probe)

        second = make_context(centos7, mode=RunMode.prebuilt())
        report = _run(second, fake_tools, openssl_probe).report
        assert report.stage("symlinked").detail == "0 created"

    def test_version_from_config_status(self, make_context, centos7, fake_tools, openssl_probe):
        ctx = make_context(centos7, mode=RunMode.prebuilt())
        _prebuilt_tree(ctx, "0.20.1")
        (ctx.source_dir / "configure.ac").unlink()

        _run(ctx, fake_tools, openssl_probe)
        assert str(ctx.nominal_version) == "0.20.1"

    def test_missing_eggs_fails_after_main_package(self, make_context, centos7, fake_tools, openssl_probe):
        ctx = make_context(centos7, mode=RunMode.prebuilt())
        write_source_tree(ctx.source_dir, "0.21.0")
        ctx.build_dir.mkdir(parents=True)
        pipeline = Pipeline(ctx, fake_tools.registry, openssl_probe, machine="x86_64")

        with pytest.raises(StageFailure) as exc_info:
            pipeline.run()

        assert exc_info.value.stage == "binding_packaged"
        assert len(pipeline.report.packages) == 1
        assert pipeline.report.state is PipelineState.PACKAGED


class TestWithoutBinding:
    def test_binding_skipped(self, make_context, centos7, fake_tools, openssl_probe):
        ctx = make_context(centos7, mode=RunMode(include_language_binding=False))
        report = _run(ctx, fake_tools, openssl_probe).report

        assert report.stage("binding_packaged").status == "skipped"
        assert len(report.packages) == 1
        assert "--disable-python" in fake_tools.autotools.call_log[0].params["flags"]


# ── Failures ────────────────────────────────────────────────────


class TestFailures:
    def test_build_failure_aborts(self, make_context, centos7, fake_tools, openssl_probe):
        fake_tools.autotools.fail_operation("build", "make: *** [all] Error 2")
        ctx = make_context(centos7)
        pipeline = Pipeline(ctx, fake_tools.registry, openssl_probe, machine="x86_64")

        with pytest.raises(StageFailure) as exc_info:
            pipeline.run()

        assert exc_info.value.stage == "built"
        assert pipeline.report.failed_stage == "built"
        assert pipeline.report.status == "failed"
        assert fake_tools.autotools.call_count == 1  # no retry
        assert fake_tools.fpm.call_count == 0
        assert pipeline.report.packages == []

    def test_stale_packages_removed_even_on_failure(self, make_context, centos7, fake_tools, openssl_probe):
        ctx = make_context(centos7)
        stale = ctx.output_dir / "mesos-0.21.0-0.1.1.x86_64.rpm"
        stale.parent.mkdir(parents=True)
        stale.write_bytes(b"old")
        fake_tools.fpm.fail_operation("package", "fpm: cannot write")

        with pytest.raises(StageFailure):
            Pipeline(ctx, fake_tools.registry, openssl_probe, machine="x86_64").run()

        assert not stale.exists()

    def test_stale_deb_packages_removed(self, make_context, fake_tools, openssl_probe):
        ctx = make_context(PlatformId(family="ubuntu", major_version="14.04"))
        ctx.output_dir.mkdir(parents=True)
        stale = [
            ctx.output_dir / "mesos_0.21.0-0.1.1_amd64.deb",
            ctx.output_dir / "mesos-python_0.21.0-0.1.1_amd64.deb",
        ]
        for path in stale:
            path.write_bytes(b"old")
        fake_tools.autotools.fail_operation("build", "make: *** [all] Error 2")

        with pytest.raises(StageFailure):
            Pipeline(ctx, fake_tools.registry, openssl_probe, machine="x86_64").run()

        assert not any(path.exists() for path in stale)

    def test_context_reuse_is_a_stage_failure(self, make_context, centos7, fake_tools, openssl_probe):
        ctx = make_context(centos7)
        _run(ctx, fake_tools, openssl_probe)

        second = Pipeline(ctx, fake_tools.registry, openssl_probe, machine="x86_64")
        with pytest.raises(ContextError, match="already resolved"):
            second.run()
        assert second.report.failed_stage == "version_resolved"

    def test_partial_output_left_for_inspection(self, make_context, centos7, fake_tools, openssl_probe):
        fake_tools.fpm.fail_operation("package", "fpm: cannot write")
        ctx = make_context(centos7)

        with pytest.raises(StageFailure):
            Pipeline(ctx, fake_tools.registry, openssl_probe, machine="x86_64").run()

        assert (ctx.staging_root / "etc/mesos/zk").is_file()

    def test_missing_version(self, make_context, centos7, fake_tools, openssl_probe):
        ctx = make_context(centos7, mode=RunMode(skip_checkout=True))
        ctx.source_dir.mkdir(parents=True)
        pipeline = Pipeline(ctx, fake_tools.registry, openssl_probe)

        with pytest.raises(VersionUnavailable):
            pipeline.run()
        assert pipeline.report.failed_stage == "version_resolved"

    def test_tls_backend_unavailable(self, make_context, centos7, fake_tools):
        def no_backend(package_format):
            raise TlsBackendUnavailable("no libcurl development package")

        ctx = make_context(centos7)
        pipeline = Pipeline(ctx, fake_tools.registry, no_backend)

        with pytest.raises(TlsBackendUnavailable):
            pipeline.run()
        assert pipeline.report.failed_stage == "cleaned"
        assert fake_tools.autotools.call_count == 0

    def test_unregistered_adapter(self, make_context, centos7, fake_tools, openssl_probe):
        fake_tools.registry.unregister("fpm")
        ctx = make_context(centos7)

        with pytest.raises(StageFailure, match="No adapter registered for 'fpm'"):
            Pipeline(ctx, fake_tools.registry, openssl_probe).run()
