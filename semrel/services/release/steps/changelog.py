from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import ClassVar

import structlog

from semrel.core.result import Err, Ok, Result
from semrel.core.structured import get_str
from semrel.output.console import Style
from semrel.platform.files import atomic_write_text, read_text_or_empty
from semrel.services.release.context import ReleaseContext
from semrel.services.release.errors import ReleaseError, config_error
from semrel.services.release.notes import CHANGELOG_TITLE, update_changelog
from semrel.services.release.steps.base import Phase, Step, StepEnv, StepKind, StepResult, check_phases

log = structlog.get_logger(__name__)

DEFAULT_CHANGELOG_PATH = "CHANGELOG.md"


@dataclass(frozen=True, slots=True)
class ChangelogPlan:
    path: str
    title: str


@dataclass(frozen=True, slots=True)
class ChangelogStep(Step[ChangelogPlan]):
    """Prepends the release notes to a changelog file."""

    kind: ClassVar[StepKind] = "changelog"
    supported_phases: ClassVar[frozenset[Phase]] = frozenset({"prepare"})

    name: str
    phases: frozenset[Phase]
    path: str = DEFAULT_CHANGELOG_PATH
    title: str = CHANGELOG_TITLE

    @classmethod
    def from_config(
        cls, table: Mapping[str, object], *, name: str, declared: list[str] | None
    ) -> Result[ChangelogStep, ReleaseError]:
        phases = check_phases(
            kind=cls.kind, name=name, declared=declared, supported=cls.supported_phases
        )
        if isinstance(phases, Err):
            return phases
        path = get_str(table, "path") or DEFAULT_CHANGELOG_PATH
        if path.startswith("/") or ".." in path.split("/"):
            return Err(config_error(f"step {name}: changelog path must stay inside the repo"))
        title = get_str(table, "title") or CHANGELOG_TITLE
        return Ok(cls(name=name, phases=phases.value, path=path, title=title))

    def render(self, ctx: ReleaseContext) -> Result[ChangelogPlan, ReleaseError]:
        return Ok(ChangelogPlan(path=self.path, title=self.title))

    def prepare(self, plan: ChangelogPlan, ctx: ReleaseContext, env: StepEnv) -> StepResult:
        target = env.repo_root / plan.path
        try:
            existing = read_text_or_empty(target)
        except OSError as e:
            return self.failed("prepare", f"failed to read {plan.path}: {e}")

        updated = update_changelog(existing, notes=ctx.notes, version=ctx.version, title=plan.title)
        if updated == existing:
            env.console.print(f"{plan.path} already up to date", Style.DIM)
            return self.ok("prepare", artifacts=[plan.path])

        env.console.print(f"update {plan.path}", Style.DIM)
        if ctx.dry_run:
            return self.ok("prepare", artifacts=[plan.path])

        try:
            atomic_write_text(target, updated)
        except OSError as e:
            return self.failed("prepare", f"failed to write {plan.path}: {e}")
        log.info("changelog.written", path=plan.path, version=str(ctx.version))
        return self.ok("prepare", artifacts=[plan.path])
