from __future__ import annotations

from pathlib import Path

import pytest

from semrel.core.result import Err, Ok
from semrel.output.console import MockConsole
from semrel.services.release.channels import Channel
from semrel.services.release.context import CommitRange, ReleaseContext
from semrel.services.release.semver import Version
from semrel.services.release.steps import ChangelogStep, StepEnv, StepResult

NOTES = "## 1.3.0 (2024-06-01)\n\n### Features\n\n* export (abcdef12)\n"


def _ctx(*, dry_run: bool = False) -> ReleaseContext:
    return ReleaseContext(
        version=Version(1, 3, 0),
        channel=Channel("master"),
        tag="v1.3.0",
        notes=NOTES,
        commit_range=CommitRange(start="v1.2.0", end="abc"),
        dry_run=dry_run,
    )


def _step(**table: object) -> ChangelogStep:
    result = ChangelogStep.from_config(table, name="changelog", declared=None)
    assert isinstance(result, Ok)
    return result.value


def _prepare(step: ChangelogStep, root: Path, *, dry_run: bool = False) -> StepResult:
    ctx = _ctx(dry_run=dry_run)
    plan = step.render(ctx)
    assert isinstance(plan, Ok)
    env = StepEnv(repo_root=root, console=MockConsole(), timeout=5.0)
    return step.prepare(plan.value, ctx, env)


def test_creates_changelog(tmp_path: Path) -> None:
    result = _prepare(_step(), tmp_path)
    assert result.outcome == "ok"
    assert result.artifacts == ("CHANGELOG.md",)
    assert (tmp_path / "CHANGELOG.md").read_text(encoding="utf-8") == f"# Changelog\n\n{NOTES}"


def test_rerun_is_idempotent(tmp_path: Path) -> None:
    step = _step()
    _prepare(step, tmp_path)
    first = (tmp_path / "CHANGELOG.md").read_text(encoding="utf-8")
    result = _prepare(step, tmp_path)
    assert result.outcome == "ok"
    assert (tmp_path / "CHANGELOG.md").read_text(encoding="utf-8") == first


def test_custom_path_and_title(tmp_path: Path) -> None:
    step = _step(path="docs/HISTORY.md", title="# History")
    result = _prepare(step, tmp_path)
    assert result.artifacts == ("docs/HISTORY.md",)
    assert (tmp_path / "docs" / "HISTORY.md").read_text(encoding="utf-8").startswith("# History\n\n## 1.3.0")


def test_dry_run_does_not_write(tmp_path: Path) -> None:
    result = _prepare(_step(), tmp_path, dry_run=True)
    assert result.outcome == "ok"
    assert result.artifacts == ("CHANGELOG.md",)
    assert not (tmp_path / "CHANGELOG.md").exists()


@pytest.mark.parametrize("path", ["/etc/CHANGELOG.md", "../CHANGELOG.md", "docs/../../x.md"])
def test_rejects_paths_outside_repo(path: str) -> None:
    result = ChangelogStep.from_config({"path": path}, name="changelog", declared=None)
    assert isinstance(result, Err)
