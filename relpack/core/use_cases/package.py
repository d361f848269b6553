"""
Package use case — one full packaging run.

The vertical slice from CLI intent to persisted result: load config,
resolve the platform, build the context, run the pipeline, and record
the outcome in .state/ (state file, audit ledger, per-run log).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from relpack.adapters.registry import AdapterRegistry
from relpack.core.config.loader import ConfigError, find_config_file, load_config
from relpack.core.engine.pipeline import Pipeline, PipelineReport
from relpack.core.errors import PackagingError
from relpack.core.models.context import BuildContext, PackageMetadata, RunMode
from relpack.core.models.packaging import PackagingConfig
from relpack.core.models.platform import PlatformId, TlsBackend
from relpack.core.models.state import RunState, StageState
from relpack.core.observability.logging_config import attach_run_log, detach_run_log
from relpack.core.persistence.audit import AuditEntry, AuditWriter
from relpack.core.persistence.state_file import DEFAULT_STATE_DIR, default_state_path, save_state
from relpack.core.services import platform_probe
from relpack.core.services.platform_resolver import resolve
from relpack.core.services.tls_probe import FixedTlsProbe, PackageDbTlsProbe, TlsProbe

logger = logging.getLogger(__name__)


@dataclass
class PackageRequest:
    """Caller-supplied overrides for one run. ``None`` means "use the default"."""

    repo: str | None = None
    ref: str | None = None
    build_revision: str | None = None
    src_dir: Path | None = None
    build_dir: Path | None = None
    output_dir: Path | None = None
    prebuilt: bool = False
    skip_checkout: bool = False
    include_binding: bool = True
    nominal_version: str | None = None
    os_id: str | None = None
    os_version: str | None = None
    tls_backend: TlsBackend | None = None


@dataclass
class PackageResult:
    """Result of a packaging run."""

    report: PipelineReport | None = None
    context: BuildContext | None = None
    state_path: Path | None = None
    error: str | None = None
    failed_stage: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.report is not None and self.report.ok

    def to_dict(self) -> dict:
        result: dict = {"ok": self.ok}
        if self.error:
            result["error"] = self.error
            result["failed_stage"] = self.failed_stage
        if self.context is not None:
            ctx = self.context
            result["package"] = ctx.metadata.name
            result["platform"] = str(ctx.platform)
            result["architecture"] = ctx.architecture
            result["nominal_version"] = str(ctx.nominal_version) if ctx.version_resolved else None
            result["build_revision"] = ctx.build_revision
        if self.report is not None:
            result["report"] = self.report.to_dict()
        if self.state_path is not None:
            result["state_path"] = str(self.state_path)
        return result


def default_revision(now: datetime | None = None) -> str:
    """Timestamp-derived build revision, e.g. ``0.1.20141105163000``."""
    now = now or datetime.now(UTC)
    return f"0.1.{now.strftime('%Y%m%d%H%M%S')}"


def resolve_platform(os_id: str | None = None, os_version: str | None = None) -> PlatformId:
    """Resolve from explicit overrides, else from the host probe.

    Raises:
        UnresolvedPlatform: If neither yields an OS identity.
    """
    if os_id:
        return resolve(os_id, os_version or "")
    raw_id, raw_version = platform_probe.detect()
    return resolve(raw_id, raw_version)


def tls_probe_for(backend: TlsBackend | None) -> TlsProbe:
    return FixedTlsProbe(backend) if backend else PackageDbTlsProbe()


def build_context(
    request: PackageRequest,
    config: PackagingConfig,
    platform: PlatformId,
    cwd: Path | None = None,
) -> BuildContext:
    """Create the run's BuildContext from config defaults and request overrides."""
    cwd = cwd or Path.cwd()
    source_dir = (request.src_dir or cwd / f"{config.name}-repo").resolve()
    build_dir = (request.build_dir or source_dir / "build").resolve()
    output_dir = (request.output_dir or cwd).resolve()

    if request.prebuilt:
        mode = RunMode.prebuilt(include_language_binding=request.include_binding)
    else:
        mode = RunMode(
            skip_checkout=request.skip_checkout,
            include_language_binding=request.include_binding,
        )

    return BuildContext(
        source_dir=source_dir,
        build_dir=build_dir,
        staging_root=build_dir / "toor",
        output_dir=output_dir,
        repo_locator=request.repo or config.repo,
        ref=request.ref or config.ref,
        build_revision=request.build_revision or default_revision(),
        platform=platform,
        version_override=request.nominal_version,
        mode=mode,
        metadata=PackageMetadata(
            name=config.name,
            description=config.description,
            maintainer=config.maintainer,
            vendor=config.vendor,
            url=config.url,
            license=config.license,
            binding_name=config.binding_name,
            binding_install_dir=config.binding_install_dir,
            binding_description=config.binding.description,
        ),
    )


def default_registry() -> AdapterRegistry:
    """Registry wired to the real git, autotools and fpm tools."""
    from relpack.adapters.build.autotools import AutotoolsBuilderAdapter
    from relpack.adapters.packaging.fpm import FpmPackagerAdapter
    from relpack.adapters.vcs.git import GitSourceAdapter

    registry = AdapterRegistry()
    registry.register(GitSourceAdapter())
    registry.register(AutotoolsBuilderAdapter())
    registry.register(FpmPackagerAdapter())
    return registry


def run_package(
    request: PackageRequest,
    config_path: Path | None = None,
    registry: AdapterRegistry | None = None,
    tls_probe: TlsProbe | None = None,
    machine: str | None = None,
    cwd: Path | None = None,
    persist: bool = True,
) -> PackageResult:
    """Run the packaging pipeline end to end.

    Args:
        request: Overrides from the caller.
        config_path: Explicit packaging.yml; searched upward when None.
        registry: Pre-configured adapters (tests pass mocks).
        tls_probe: TLS backend probe; defaults from ``request.tls_backend``.
        machine: Kernel machine name for architecture mapping.
        cwd: Base directory for defaults and .state/ (default: cwd).
        persist: Write state file, audit entry and run log.

    Returns:
        PackageResult; ``error`` is set when the run failed.
    """
    result = PackageResult()
    cwd = cwd or Path.cwd()

    # ── Config ───────────────────────────────────────────────────
    try:
        if config_path is None:
            config_path = find_config_file(cwd)
        config = load_config(config_path, search=False)
    except ConfigError as e:
        result.error = str(e)
        result.failed_stage = "init"
        return result

    state_root = config_path.parent.resolve() if config_path else cwd.resolve()

    # ── Platform (exactly once, before any policy decision) ─────
    try:
        platform = resolve_platform(request.os_id, request.os_version)
    except PackagingError as e:
        result.error = str(e)
        result.failed_stage = "init"
        return result

    context = build_context(request, config, platform, cwd=cwd)
    result.context = context

    pipeline = Pipeline(
        context,
        registry or default_registry(),
        tls_probe or tls_probe_for(request.tls_backend),
        machine=machine,
    )
    result.report = pipeline.report

    run_log = None
    if persist:
        log_path = state_root / DEFAULT_STATE_DIR / "logs" / f"{pipeline.report.run_id}.log"
        run_log = attach_run_log(log_path)

    for name in pipeline.registry.unavailable():
        logger.warning("Tool for adapter '%s' not found on PATH; its stage will fail", name)

    start = time.monotonic()
    try:
        pipeline.run()
    except PackagingError as e:
        result.error = str(e)
        result.failed_stage = pipeline.report.failed_stage
    finally:
        duration_ms = int((time.monotonic() - start) * 1000)
        if persist:
            result.state_path = default_state_path(state_root)
            _persist(result, state_root, duration_ms)
        if run_log is not None:
            detach_run_log(run_log)

    return result


def _persist(result: PackageResult, state_root: Path, duration_ms: int) -> None:
    """Write the state file and append the audit entry for a finished run."""
    report, ctx = result.report, result.context
    assert report is not None and ctx is not None

    version = str(ctx.nominal_version) if ctx.version_resolved else None
    state = RunState(
        run_id=report.run_id,
        package_name=ctx.metadata.name,
        platform=str(ctx.platform),
        architecture=ctx.architecture,
        nominal_version=version,
        build_revision=ctx.build_revision,
        resolved_ref=ctx.resolved_ref,
        status=report.status,
        state=report.state.value,
        failed_stage=report.failed_stage,
        error=report.error,
        stages=[StageState(**s.to_dict()) for s in report.stages],
        packages=[str(p) for p in report.packages],
    )
    assert result.state_path is not None
    try:
        save_state(state, result.state_path)
    except OSError as e:
        logger.error("Could not save run state: %s", e)

    AuditWriter(project_root=state_root).write(AuditEntry(
        run_id=report.run_id,
        package_name=ctx.metadata.name,
        nominal_version=version,
        build_revision=ctx.build_revision,
        platform=str(ctx.platform),
        status=report.status,
        failed_stage=report.failed_stage,
        stages_completed=[s.stage for s in report.stages if s.status != "failed"],
        packages=[str(p) for p in report.packages],
        duration_ms=duration_ms,
        errors=[report.error] if report.error else [],
    ))
