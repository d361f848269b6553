"""
Pipeline orchestrator — the packaging state machine.

    INIT → CHECKOUT → VERSION_RESOLVED → CLEANED → BUILT → STAGED
         → SYMLINKED → PACKAGED → BINDING_PACKAGED → DONE

Stages run strictly in order, each consuming the filesystem output of
the previous one. Checkout and build may be SKIPPED (existing source
dir, ``skip_checkout``, prebuilt mode).

Every collaborator call goes through the adapter registry as an Action
and comes back as a Receipt. A failed receipt aborts the run with a
``StageFailure`` tagged with the stage; nothing is retried and partial
output is left on disk for inspection. The next successful run's
CLEANED stage removes it.
"""

from __future__ import annotations

import enum
import logging
import platform as _host
import shutil
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Callable

from relpack.adapters.registry import AdapterRegistry
from relpack.core.errors import PackagingError, StageFailure
from relpack.core.models.action import Action, Receipt
from relpack.core.models.context import BuildContext
from relpack.core.services import staging
from relpack.core.services.platform_resolver import resolve_architecture
from relpack.core.services.policy import (
    PolicyDecision,
    decide,
    maintainer_scripts,
    package_filename,
)
from relpack.core.services.tls_probe import TlsProbe
from relpack.core.services.version_source import resolve_nominal_version

logger = logging.getLogger(__name__)


class PipelineState(str, enum.Enum):
    INIT = "init"
    CHECKOUT = "checkout"
    VERSION_RESOLVED = "version_resolved"
    CLEANED = "cleaned"
    BUILT = "built"
    STAGED = "staged"
    SYMLINKED = "symlinked"
    PACKAGED = "packaged"
    BINDING_PACKAGED = "binding_packaged"
    DONE = "done"


@dataclass
class StageRecord:
    """What happened in one stage."""

    stage: str
    status: str = "ok"          # ok, skipped, failed
    detail: str = ""

    def to_dict(self) -> dict:
        return {"stage": self.stage, "status": self.status, "detail": self.detail}


@dataclass
class PipelineReport:
    """Everything a run produced, successful or not."""

    run_id: str = ""
    state: PipelineState = PipelineState.INIT
    stages: list[StageRecord] = field(default_factory=list)
    receipts: list[Receipt] = field(default_factory=list)
    policy: PolicyDecision | None = None
    staged_files: list[str] = field(default_factory=list)
    packages: list[Path] = field(default_factory=list)
    failed_stage: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.state is PipelineState.DONE

    @property
    def status(self) -> str:
        if self.ok:
            return "ok"
        return "failed" if self.error else "incomplete"

    def stage(self, name: str) -> StageRecord | None:
        for record in self.stages:
            if record.stage == name:
                return record
        return None

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "status": self.status,
            "state": self.state.value,
            "failed_stage": self.failed_stage,
            "error": self.error,
            "stages": [s.to_dict() for s in self.stages],
            "policy": self.policy.model_dump(mode="json") if self.policy else None,
            "staged_files": self.staged_files,
            "packages": [str(p) for p in self.packages],
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


def generate_run_id() -> str:
    """Generate a unique run ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"run-{now}-{short}"


class Pipeline:
    """Drives one packaging run over a ``BuildContext``.

    Args:
        context: The run's context; owned by this pipeline for the run.
        registry: Adapters for ``git``, ``autotools`` and ``fpm``.
        tls_probe: Injected TLS backend probe for the policy table.
        machine: Kernel machine name for architecture mapping
            (default: the host's).
    """

    def __init__(
        self,
        context: BuildContext,
        registry: AdapterRegistry,
        tls_probe: TlsProbe,
        machine: str | None = None,
        run_id: str | None = None,
    ):
        self.context = context
        self.registry = registry
        self.tls_probe = tls_probe
        self.machine = machine or _host.machine()
        self.report = PipelineReport(run_id=run_id or generate_run_id())
        self._policy: PolicyDecision | None = None

    # ── Driver ──────────────────────────────────────────────────

    def stages(self) -> list[tuple[PipelineState, Callable[[BuildContext], None]]]:
        return [
            (PipelineState.CHECKOUT, self._checkout),
            (PipelineState.VERSION_RESOLVED, self._resolve_version),
            (PipelineState.CLEANED, self._clean),
            (PipelineState.BUILT, self._build),
            (PipelineState.STAGED, self._stage),
            (PipelineState.SYMLINKED, self._symlink),
            (PipelineState.PACKAGED, self._package),
            (PipelineState.BINDING_PACKAGED, self._package_binding),
        ]

    def run(self) -> PipelineReport:
        """Run every stage in order.

        Raises:
            PackagingError: From the first stage that fails. ``self.report``
                records the failing stage and everything before it.
        """
        ctx = self.context
        logger.info(
            "Run %s: %s on %s (revision %s)",
            self.report.run_id, ctx.metadata.name, ctx.platform, ctx.build_revision,
        )

        for state, stage_fn in self.stages():
            try:
                stage_fn(ctx)
            except PackagingError as e:
                self._fail(state, str(e))
                raise
            except OSError as e:
                self._fail(state, str(e))
                raise StageFailure(state.value, str(e)) from e
            self.report.state = state

        self.report.state = PipelineState.DONE
        logger.info("Run %s done: %s", self.report.run_id, ", ".join(p.name for p in self.report.packages))
        return self.report

    def _fail(self, state: PipelineState, error: str) -> None:
        self.report.failed_stage = state.value
        self.report.error = error
        self.report.stages.append(StageRecord(stage=state.value, status="failed", detail=error))
        logger.error("Stage %s failed: %s", state.value, error)

    def _record(self, state: PipelineState, status: str = "ok", detail: str = "") -> None:
        self.report.stages.append(StageRecord(stage=state.value, status=status, detail=detail))
        logger.info("%s %s%s", "⊘" if status == "skipped" else "✓", state.value, f" ({detail})" if detail else "")

    def _dispatch(
        self,
        state: PipelineState,
        adapter: str,
        operation: str,
        working_dir: Path,
        **params: Any,
    ) -> Receipt:
        action = Action(
            id=f"{self.report.run_id}:{state.value}:{operation}",
            adapter=adapter,
            stage=state.value,
            params={"operation": operation, **params},
        )
        receipt = self.registry.execute_action(action, working_dir=str(working_dir))
        self.report.receipts.append(receipt)
        if receipt.failed:
            raise StageFailure(state.value, receipt.error or f"{adapter} {operation} failed")
        return receipt

    # ── Policy ──────────────────────────────────────────────────

    @property
    def policy(self) -> PolicyDecision:
        """Policy decision, derived the first time a stage needs it."""
        if self._policy is None:
            ctx = self.context
            self._policy = decide(
                ctx.nominal_version,
                ctx.platform,
                self.tls_probe,
                include_binding=ctx.mode.include_language_binding,
            )
            if not ctx.architecture:
                ctx.architecture = resolve_architecture(self._policy.package_format, self.machine)
            self.report.policy = self._policy
        return self._policy

    def package_path(self, binding: bool = False) -> Path:
        # deriving the policy also fills in ctx.architecture
        policy = self.policy
        ctx = self.context
        name = ctx.metadata.binding_name if binding else ctx.metadata.name
        filename = package_filename(
            name,
            ctx.nominal_version.package_version,
            ctx.build_revision,
            ctx.architecture,
            policy.package_format,
        )
        return ctx.output_dir / filename

    # ── Stages ──────────────────────────────────────────────────

    def _checkout(self, ctx: BuildContext) -> None:
        state = PipelineState.CHECKOUT
        if ctx.mode.skip_checkout:
            self._record(state, "skipped", "checkout disabled")
            return
        if ctx.source_dir.exists():
            logger.warning("Source directory %s exists, skipping checkout", ctx.source_dir)
            self._record(state, "skipped", f"{ctx.source_dir} exists")
            return

        receipt = self._dispatch(
            state, "git", "checkout", ctx.source_dir.parent,
            locator=ctx.repo_locator,
            ref=ctx.ref,
            dest=str(ctx.source_dir),
        )
        ctx.resolved_ref = receipt.metadata.get("resolved_ref") or ctx.ref
        self._record(state, detail=f"{ctx.repo_locator}@{ctx.resolved_ref}")

    def _resolve_version(self, ctx: BuildContext) -> None:
        version = resolve_nominal_version(ctx.version_override, ctx.source_dir, ctx.build_dir)
        ctx.resolve_version(version)
        self._record(PipelineState.VERSION_RESOLVED, detail=str(version))

    def _clean(self, ctx: BuildContext) -> None:
        state = PipelineState.CLEANED
        removed: list[str] = []

        if not ctx.mode.skip_build:
            for path in (ctx.build_dir, ctx.staging_root, ctx.binding_staging_root):
                if path.exists():
                    shutil.rmtree(path)
                    removed.append(str(path))
        else:
            logger.info("Prebuilt mode: keeping %s", ctx.build_dir)

        stale = [self.package_path()]
        if ctx.mode.include_language_binding:
            stale.append(self.package_path(binding=True))
        for package in stale:
            if package.exists():
                package.unlink()
                removed.append(str(package))

        for path in removed:
            logger.debug("Removed %s", path)
        self._record(state, detail=f"removed {len(removed)} paths")

    def _build(self, ctx: BuildContext) -> None:
        state = PipelineState.BUILT
        if ctx.mode.skip_build:
            self._record(state, "skipped", "prebuilt")
            return

        flags = list(self.policy.build_flags)
        ctx.build_dir.mkdir(parents=True, exist_ok=True)
        self._dispatch(
            state, "autotools", "build", ctx.build_dir,
            source_dir=str(ctx.source_dir),
            build_dir=str(ctx.build_dir),
            flags=flags,
        )
        self._record(state, detail=" ".join(flags))

    def _stage(self, ctx: BuildContext) -> None:
        state = PipelineState.STAGED
        self._dispatch(
            state, "autotools", "install", ctx.build_dir,
            build_dir=str(ctx.build_dir),
            dest_dir=str(ctx.install_image),
        )

        tree = staging.assemble(ctx, self.policy, ctx.install_image)
        self.report.staged_files = tree.relative_files()
        self._record(state, detail=f"{len(tree.files)} files, {self.policy.init_variant.value}")

    def _symlink(self, ctx: BuildContext) -> None:
        state = PipelineState.SYMLINKED
        name = ctx.metadata.name
        unversioned = f"lib{name}.so"
        versioned = f"lib{name}-{ctx.nominal_version}.so"
        created = 0

        lib_dir = ctx.staging_root / "usr" / "lib"
        lib_dir.mkdir(parents=True, exist_ok=True)
        if not (lib_dir / versioned).exists():
            logger.warning("%s not found in staged usr/lib", versioned)

        link = lib_dir / unversioned
        if not (link.exists() or link.is_symlink()):
            link.symlink_to(versioned)
            created += 1

        compat_dir = ctx.staging_root / "usr" / "local" / "lib"
        compat_dir.mkdir(parents=True, exist_ok=True)
        compat = compat_dir / unversioned
        if not (compat.exists() or compat.is_symlink()):
            compat.symlink_to(f"/usr/lib/{unversioned}")
            created += 1

        self._record(state, detail=f"{created} created")

    def _package(self, ctx: BuildContext) -> None:
        state = PipelineState.PACKAGED
        policy = self.policy
        meta = ctx.metadata
        output = self.package_path()

        scripts = staging.write_maintainer_scripts(
            maintainer_scripts(policy.init_variant), ctx.scripts_dir,
        )
        self._dispatch(
            state, "fpm", "package", ctx.output_dir,
            staging_dir=str(ctx.staging_root),
            output_path=str(output),
            name=meta.name,
            version=ctx.nominal_version.package_version,
            revision=ctx.build_revision,
            arch=ctx.architecture,
            format=policy.package_format.value,
            dependencies=list(policy.dependencies),
            scripts=scripts,
            description=meta.description,
            maintainer=meta.maintainer,
            vendor=meta.vendor,
            url=meta.url,
            license=meta.license,
        )
        self.report.packages.append(output)
        self._record(state, detail=output.name)

    def _package_binding(self, ctx: BuildContext) -> None:
        state = PipelineState.BINDING_PACKAGED
        if not ctx.mode.include_language_binding:
            self._record(state, "skipped", "binding excluded")
            return

        policy = self.policy
        meta = ctx.metadata
        artifacts_dir = ctx.build_dir / policy.binding_artifact_dir
        eggs = sorted(artifacts_dir.glob("*.egg")) if artifacts_dir.is_dir() else []
        if not eggs:
            raise StageFailure(state.value, f"no binding artifacts (*.egg) in {artifacts_dir}")

        root = ctx.binding_staging_root
        if root.exists():
            shutil.rmtree(root)
        target = root / meta.binding_install_dir
        target.mkdir(parents=True)
        for egg in eggs:
            if egg.is_dir():
                shutil.copytree(egg, target / egg.name, symlinks=True)
            else:
                shutil.copy2(egg, target / egg.name)

        version = ctx.nominal_version.package_version
        output = self.package_path(binding=True)
        self._dispatch(
            state, "fpm", "package", ctx.output_dir,
            staging_dir=str(root),
            output_path=str(output),
            name=meta.binding_name,
            version=version,
            revision=ctx.build_revision,
            arch=ctx.architecture,
            format=policy.package_format.value,
            dependencies=[f"{meta.name} (= {version}-{ctx.build_revision})"],
            description=meta.binding_description,
            maintainer=meta.maintainer,
            vendor=meta.vendor,
            url=meta.url,
            license=meta.license,
        )
        self.report.packages.append(output)
        self._record(state, detail=f"{output.name} ({len(eggs)} eggs)")
