from __future__ import annotations

import signal
from pathlib import Path
from types import FrameType

import typer

from semrel.cli.commands._helpers import exit_on_error, exit_with_code
from semrel.cli.context import CLIContext, build_context
from semrel.core.errors import ErrorCode
from semrel.core.result import Result
from semrel.git.repository import Repository
from semrel.output.console import Style
from semrel.output.report import print_report, report_exit_code
from semrel.services.release.channels import Channel
from semrel.services.release.coordinator import ReleaseCoordinator
from semrel.services.release.errors import ReleaseError
from semrel.services.release.history import GitHistory
from semrel.services.release.lock import RunLock, acquire_lock
from semrel.services.release.pipeline import RunControl
from semrel.services.release.steps import StepEnv


def _coordinator(
    ctx: CLIContext,
    *,
    branch: str | None,
    timeout: float | None,
    dry_run: bool,
    plan_only: bool,
    control: RunControl | None = None,
    use_lock: bool = True,
) -> ReleaseCoordinator:
    run_timeout = timeout if timeout is not None else ctx.config.timeout_seconds
    repo = Repository(ctx.repo_root, timeout=run_timeout)

    def lock(channel: Channel) -> Result[RunLock, ReleaseError]:
        return acquire_lock(ctx.repo_root, channel.name)

    return ReleaseCoordinator(
        config=ctx.config,
        history=GitHistory(repo, branch_override=branch),
        env=StepEnv(repo_root=ctx.repo_root, console=ctx.console, timeout=run_timeout),
        dry_run=dry_run,
        plan_only=plan_only,
        control=control,
        lock=lock if use_lock else None,
    )


def release(
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Compute and render everything, but write nothing."
    ),
    branch: str | None = typer.Option(
        None,
        "--branch",
        help="Release as if on this branch. Must be the checked out branch unless --dry-run.",
    ),
    config: Path | None = typer.Option(None, "--config", help="Path to a semrel TOML file."),
    timeout: float | None = typer.Option(
        None, "--timeout", min=1.0, help="Bound in seconds for each external command."
    ),
    no_lock: bool = typer.Option(False, "--no-lock", help="Skip the per-channel run lock."),
) -> None:
    """Compute the next version and run the release steps."""
    ctx = build_context(config_path=config)
    if branch is not None and not dry_run:
        current = Repository(ctx.repo_root).current_branch()
        if branch != current:
            ctx.console.error(
                f"--branch {branch} does not match the checked out branch "
                f"({current or 'detached HEAD'})"
            )
            ctx.console.print(
                "hint: check out the release branch, or add --dry-run to preview", Style.DIM
            )
            exit_with_code(int(ErrorCode.USER_ERROR))
    control = RunControl()

    def on_interrupt(signum: int, frame: FrameType | None) -> None:
        del signum, frame
        if control.request_cancel():
            ctx.console.warning("cancel requested; stopping before the next step")
        else:
            ctx.console.warning("publish already started; cancel refused")

    previous = signal.signal(signal.SIGINT, on_interrupt)
    try:
        coordinator = _coordinator(
            ctx,
            branch=branch,
            timeout=timeout,
            dry_run=dry_run,
            plan_only=False,
            control=control,
            use_lock=not no_lock and not dry_run,
        )
        report = exit_on_error(coordinator.run(), ctx)
    finally:
        signal.signal(signal.SIGINT, previous)

    print_report(report, ctx.console)
    exit_with_code(report_exit_code(report))


def next_version(
    branch: str | None = typer.Option(
        None, "--branch", help="Compute for this branch (default: current branch)."
    ),
    config: Path | None = typer.Option(None, "--config", help="Path to a semrel TOML file."),
) -> None:
    """Print the version the next release would get (nothing if no release is due)."""
    ctx = build_context(config_path=config)
    coordinator = _coordinator(ctx, branch=branch, timeout=None, dry_run=True, plan_only=True)
    report = exit_on_error(coordinator.run(), ctx)
    if report.status == "skipped":
        # stdout carries only the version, so scripts can capture it.
        typer.echo(f"no release: {report.reason}", err=True)
        exit_with_code(int(ErrorCode.OK))
    assert report.version is not None
    typer.echo(str(report.version))


def show_config(
    config: Path | None = typer.Option(None, "--config", help="Path to a semrel TOML file."),
) -> None:
    """Validate configuration and print the resolved branches and steps."""
    ctx = build_context(config_path=config)
    cfg = ctx.config
    source = str(cfg.path) if cfg.path else "built-in defaults"
    ctx.console.header(f"Configuration ({source})")
    fmt = cfg.tag_format
    ctx.console.print(f"tag format: {fmt.prefix}{{{{version}}}}{fmt.suffix}")
    ctx.console.print(f"timeout: {cfg.timeout_seconds:g}s")

    ctx.console.header("Branches")
    for rule in cfg.branches:
        channel = f"prerelease ({rule.prerelease})" if rule.prerelease else "stable"
        ctx.console.print(f"{rule.name}: {channel}")

    ctx.console.header("Steps")
    for step in cfg.steps:
        phases = ", ".join(p for p in ("verify", "prepare", "publish") if p in step.phases)
        ctx.console.print(f"{step.name} ({step.kind}): {phases}")
    ctx.console.success("configuration is valid")
