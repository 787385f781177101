"""Presentation of release run reports and errors."""

from __future__ import annotations

from typing import TYPE_CHECKING

from semrel.core.errors import ErrorCode
from semrel.output.console import Style

if TYPE_CHECKING:
    from semrel.output.console import ConsoleProtocol
    from semrel.services.release.coordinator import ReleaseReport
    from semrel.services.release.errors import ReleaseError

__all__ = ["print_release_error", "print_report", "release_error_exit_code", "report_exit_code"]

_OUTCOME_STYLE = {
    "ok": Style.SUCCESS,
    "skipped": Style.DIM,
    "failed": Style.ERROR,
}


def print_report(report: ReleaseReport, console: ConsoleProtocol) -> None:
    """Print the run log in execution order followed by the run summary."""
    if report.log:
        console.header("Run log")
        for r in report.log:
            line = f"{r.phase:<8} {r.step_name:<16} {r.outcome}"
            if r.reason:
                line += f" ({r.reason})"
            console.print(line, _OUTCOME_STYLE[r.outcome])
            for artifact in r.artifacts:
                console.print(f"    {artifact}", Style.DIM)

    ctx = report.context
    console.newline()
    match report.status:
        case "skipped":
            console.info(f"no release: {report.reason}")
        case "planned":
            assert ctx is not None
            console.print(str(ctx.version))
        case "succeeded":
            assert ctx is not None
            prefix = "dry-run: would release" if ctx.dry_run else "released"
            console.success(f"{prefix} {ctx.tag} on {ctx.channel.name}")
        case "cancelled":
            console.warning("run cancelled before publish; no release was made")
        case "failed":
            assert report.error is not None
            console.error(f"release failed at step {report.error.step}: {report.error.message}")
            if report.released_version is not None:
                console.warning(
                    f"tag for {report.released_version} was already written; "
                    "later steps must be completed manually"
                )


def print_release_error(error: ReleaseError, console: ConsoleProtocol) -> None:
    console.error(error.message if error.step is None else f"{error.step}: {error.message}")
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)


def release_error_exit_code(error: ReleaseError) -> int:
    match error.kind:
        case "config_error":
            return int(ErrorCode.USER_ERROR)
        case "git_failed" | "locked":
            return int(ErrorCode.ENV_ERROR)
        case "version_inconsistent" | "step_failed":
            return int(ErrorCode.RELEASE_ERROR)


def report_exit_code(report: ReleaseReport) -> int:
    if report.status == "failed":
        return int(ErrorCode.RELEASE_ERROR)
    if report.status == "cancelled":
        return int(ErrorCode.USER_ERROR)
    return int(ErrorCode.OK)
