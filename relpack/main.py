"""
relpack — CLI entrypoint.

Usage:
    relpack --help
    relpack build --ref 0.21.0 --build-version 0.1.1
    relpack plan 0.21.0 --os centos --os-version 7
    relpack status
    relpack platform
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from relpack import __version__
from relpack.core.models.platform import TlsBackend
from relpack.core.observability.logging_config import setup_logging

_TLS_CHOICE = click.Choice([b.value for b in TlsBackend])


def _fail(error: str, stage: str | None = None, state_path: Path | None = None) -> None:
    """Diagnostic to stderr, then exit 1. JSON output on stdout is left alone."""
    prefix = f" [{stage}]" if stage else ""
    click.secho(f"❌{prefix} {error}", fg="red", err=True)
    if state_path:
        click.echo(f"   State: {state_path}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="relpack")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to packaging.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """relpack — build deb/rpm packages from an autotools source tree."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("RELPACK_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("RELPACK_LOG_FILE"),
        log_file_level=os.environ.get("RELPACK_LOG_FILE_LEVEL"),
    )


@cli.command()
@click.option("--repo", default=None, help="Repository to check out (default: from config).")
@click.option("--ref", default=None, help="Branch, tag or commit to build.")
@click.option("--build-version", "build_revision", default=None, help="Package revision (default: timestamp).")
@click.option("--src-dir", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Source checkout directory.")
@click.option("--build-dir", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Build directory (default: <src-dir>/build).")
@click.option("--output-dir", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Where package files are written (default: cwd).")
@click.option("--prebuilt", is_flag=True, help="Reuse an existing source and build tree.")
@click.option("--skip-checkout", is_flag=True, help="Never clone; use --src-dir as is.")
@click.option("--without-binding", is_flag=True, help="Do not build or package the Python binding.")
@click.option("--nominal-version", default=None, help="Override the version read from the source.")
@click.option("--os", "os_id", default=None, help="OS id override (skips host detection).")
@click.option("--os-version", default=None, help="OS version override.")
@click.option("--tls-backend", type=_TLS_CHOICE, default=None, help="libcurl TLS backend (default: probe).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def build(
    ctx: click.Context,
    repo: str | None,
    ref: str | None,
    build_revision: str | None,
    src_dir: Path | None,
    build_dir: Path | None,
    output_dir: Path | None,
    prebuilt: bool,
    skip_checkout: bool,
    without_binding: bool,
    nominal_version: str | None,
    os_id: str | None,
    os_version: str | None,
    tls_backend: str | None,
    as_json: bool,
) -> None:
    """Check out, build, stage and package."""
    from relpack.core.use_cases.package import PackageRequest, run_package

    request = PackageRequest(
        repo=repo,
        ref=ref,
        build_revision=build_revision,
        src_dir=src_dir,
        build_dir=build_dir,
        output_dir=output_dir,
        prebuilt=prebuilt,
        skip_checkout=skip_checkout,
        include_binding=not without_binding,
        nominal_version=nominal_version,
        os_id=os_id,
        os_version=os_version,
        tls_backend=TlsBackend(tls_backend) if tls_backend else None,
    )
    result = run_package(request, config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))

    if result.error:
        _fail(result.error, result.failed_stage, result.state_path)
    if as_json:
        return

    report = result.report
    context = result.context
    assert report is not None and context is not None

    if not ctx.obj.get("quiet"):
        click.secho(
            f"\n📦 {context.metadata.name} {context.nominal_version}"
            f" ({context.platform}, {context.architecture})",
            fg="cyan", bold=True,
        )
        for record in report.stages:
            if record.status == "skipped":
                click.secho(f"   ⊘ {record.stage}", fg="yellow", nl=False)
            else:
                click.secho(f"   ✓ {record.stage}", fg="green", nl=False)
            click.echo(f"  {record.detail}" if record.detail else "")
        click.echo()

    for package in report.packages:
        click.echo(str(package))


@cli.command()
@click.argument("nominal_version")
@click.option("--os", "os_id", default=None, help="OS id (default: detect host).")
@click.option("--os-version", default=None, help="OS version.")
@click.option("--tls-backend", type=_TLS_CHOICE, default=None, help="libcurl TLS backend (default: probe).")
@click.option("--without-binding", is_flag=True, help="Plan without the Python binding.")
@click.option("--arch", "machine", default="x86_64", show_default=True, help="Machine name.")
@click.option("--build-version", "build_revision", default=None, help="Package revision.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def plan(
    ctx: click.Context,
    nominal_version: str,
    os_id: str | None,
    os_version: str | None,
    tls_backend: str | None,
    without_binding: bool,
    machine: str,
    build_revision: str | None,
    as_json: bool,
) -> None:
    """Show the build and packaging decisions for a version."""
    from relpack.core.use_cases.plan import plan_policy

    result = plan_policy(
        nominal_version,
        os_id=os_id,
        os_version=os_version,
        tls_backend=TlsBackend(tls_backend) if tls_backend else None,
        include_binding=not without_binding,
        build_revision=build_revision,
        machine=machine,
        config_path=ctx.obj.get("config_path"),
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    if result.error:
        _fail(result.error)
    if as_json:
        return

    policy = result.policy
    assert policy is not None

    click.secho(f"\n🧭 {result.version} on {result.platform}", fg="cyan", bold=True)
    click.echo(f"   Format:       {policy.package_format.value} ({result.architecture})")
    click.echo(f"   Init:         {policy.init_variant.value}")
    click.echo(f"   TLS backend:  {policy.tls_backend.value}")
    click.echo(f"   Flags:        {' '.join(policy.build_flags)}")
    click.echo(f"   Master files: {'yes' if policy.write_master_defaults else 'no'}")
    click.echo(f"   Binding dir:  {policy.binding_artifact_dir}")

    click.secho("   Dependencies:", fg="white", bold=True)
    for dep in policy.dependencies:
        click.echo(f"     • {dep}")

    if result.init_files:
        click.secho("   Init files:", fg="white", bold=True)
        for path in result.init_files:
            click.echo(f"     • {path}")

    if result.hooks:
        click.echo(f"   Hooks:        {', '.join(result.hooks)}")

    click.secho("   Packages:", fg="white", bold=True)
    for name in result.packages:
        click.echo(f"     • {name}")
    click.echo()


@cli.command()
@click.option("--limit", "-n", default=10, show_default=True, help="History entries to show.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, limit: int, as_json: bool) -> None:
    """Show the last run and recent run history."""
    from relpack.core.use_cases.status import get_status

    result = get_status(config_path=ctx.obj.get("config_path"), limit=limit)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    if result.error:
        _fail(result.error)
    if as_json:
        return

    if not result.has_runs:
        click.echo(f"No runs recorded under {result.state_root}")
        return

    last = result.state
    assert last is not None
    color = "green" if last.status == "ok" else "red"
    click.secho(f"\n📋 {last.package_name} {last.nominal_version or '?'} ({last.platform})", fg="cyan", bold=True)
    click.echo(f"   Run:      {last.run_id}")
    click.echo("   Status:   ", nl=False)
    click.secho(last.status, fg=color)
    if last.failed_stage:
        click.echo(f"   Failed:   [{last.failed_stage}] {last.error}")
    for package in last.packages:
        click.echo(f"     • {package}")
    click.echo(f"   Updated:  {last.updated_at}")

    if result.history:
        click.echo()
        click.secho("   History:", fg="white", bold=True)
        for entry in reversed(result.history):
            where = f" [{entry.failed_stage}]" if entry.failed_stage else ""
            click.echo(f"     {entry.timestamp}  {entry.run_id}  {entry.status}{where}")
    click.echo()


@cli.command("platform")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def platform_cmd(as_json: bool) -> None:
    """Show the detected build host platform."""
    from relpack.core.errors import PackagingError
    from relpack.core.services.platform_probe import detect
    from relpack.core.services.platform_resolver import resolve

    try:
        raw_id, raw_version = detect()
        platform = resolve(raw_id, raw_version)
    except PackagingError as e:
        if as_json:
            click.echo(json.dumps({"error": str(e)}, indent=2))
        _fail(str(e))

    if as_json:
        click.echo(json.dumps({
            "raw_os_id": raw_id,
            "raw_version_id": raw_version,
            "family": platform.family,
            "major_version": platform.major_version,
        }, indent=2))
        return

    click.echo(str(platform))


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
