from __future__ import annotations

from semrel.core.errors import ErrorCode
from semrel.output.console import MockConsole, Style
from semrel.output.report import (
    print_release_error,
    print_report,
    release_error_exit_code,
    report_exit_code,
)
from semrel.services.release.channels import Channel
from semrel.services.release.context import CommitRange, ReleaseContext
from semrel.services.release.coordinator import ReleaseReport
from semrel.services.release.errors import ReleaseError
from semrel.services.release.semver import Version
from semrel.services.release.steps import StepResult

CTX = ReleaseContext(
    version=Version(1, 2, 4),
    channel=Channel("master"),
    tag="v1.2.4",
    notes="",
    commit_range=CommitRange(start="v1.2.3", end="abc"),
)


def _report(**kwargs: object) -> ReleaseReport:
    fields: dict[str, object] = {
        "status": "succeeded",
        "branch": "master",
        "channel": CTX.channel,
        "delta": None,
        "context": CTX,
        "log": (),
        "states": (),
    }
    fields.update(kwargs)
    return ReleaseReport(**fields)  # type: ignore[arg-type]


def test_failed_report_lists_log_and_warns_about_tag() -> None:
    console = MockConsole()
    report = _report(
        status="failed",
        log=(
            StepResult("git", "publish", "ok", artifacts=("v1.2.4",)),
            StepResult("deploy", "publish", "failed", reason="deploy.sh exited with 1: boom"),
        ),
        error=ReleaseError(kind="step_failed", message="deploy.sh exited with 1: boom", step="deploy"),
        released_version=Version(1, 2, 4),
    )
    print_report(report, console)
    assert console.find("    v1.2.4")
    failed = console.find("deploy.sh exited with 1: boom")
    assert failed[0].style == Style.ERROR
    assert console.find("error: release failed at step deploy")
    assert console.find("tag for 1.2.4 was already written")
    assert report_exit_code(report) == ErrorCode.RELEASE_ERROR


def test_skipped_and_cancelled_reports() -> None:
    console = MockConsole()
    skipped = _report(status="skipped", context=None, reason="no commits since v1.2.3")
    print_report(skipped, console)
    assert console.messages[-1] == "info: no release: no commits since v1.2.3"
    assert report_exit_code(skipped) == ErrorCode.OK
    assert report_exit_code(_report(status="cancelled")) == ErrorCode.USER_ERROR


def test_release_error_exit_codes() -> None:
    assert release_error_exit_code(ReleaseError("config_error", "x")) == ErrorCode.USER_ERROR
    assert release_error_exit_code(ReleaseError("locked", "x")) == ErrorCode.ENV_ERROR
    assert release_error_exit_code(ReleaseError("git_failed", "x")) == ErrorCode.ENV_ERROR
    assert release_error_exit_code(ReleaseError("version_inconsistent", "x")) == ErrorCode.RELEASE_ERROR


def test_print_release_error_with_hint() -> None:
    console = MockConsole()
    print_release_error(ReleaseError("locked", "channel busy", hint="remove the lock"), console)
    assert console.messages == ["error: channel busy", "hint: remove the lock"]
    assert console.has_error()
