from __future__ import annotations

import shutil
from collections.abc import Mapping
from dataclasses import dataclass
from typing import ClassVar

import structlog

from semrel.core.result import Err, Ok, Result
from semrel.core.structured import get_bool, get_raw_str, get_str, get_str_list
from semrel.output.console import Style
from semrel.platform.process import run as run_process
from semrel.services.release.context import ReleaseContext
from semrel.services.release.errors import ReleaseError, config_error
from semrel.services.release.steps.base import Phase, Step, StepEnv, StepKind, StepResult, check_phases
from semrel.services.release.template import Template, compile_template
from semrel.services.release.timeouts import GH_TIMEOUT_SECONDS

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class GitHubPlan:
    tag: str
    title: str
    notes: str
    prerelease: bool
    assets: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class GitHubReleaseStep(Step[GitHubPlan]):
    """Publishes a hosted release for the tag through the GitHub CLI."""

    kind: ClassVar[StepKind] = "github"
    supported_phases: ClassVar[frozenset[Phase]] = frozenset({"verify", "publish"})

    name: str
    phases: frozenset[Phase]
    title: Template
    assets: tuple[str, ...] = ()
    repo: str | None = None
    draft: bool = False

    @classmethod
    def from_config(
        cls, table: Mapping[str, object], *, name: str, declared: list[str] | None
    ) -> Result[GitHubReleaseStep, ReleaseError]:
        phases = check_phases(
            kind=cls.kind, name=name, declared=declared, supported=cls.supported_phases
        )
        if isinstance(phases, Err):
            return phases

        title = compile_template(get_raw_str(table, "title") or "{{tag}}")
        if isinstance(title, Err):
            return title

        assets: list[str] = []
        if "assets" in table:
            listed = get_str_list(table, "assets")
            if listed is None:
                return Err(config_error(f"step {name}: assets must be a list of strings"))
            assets = listed

        return Ok(
            cls(
                name=name,
                phases=phases.value,
                title=title.value,
                assets=tuple(assets),
                repo=get_str(table, "repo"),
                draft=bool(get_bool(table, "draft")),
            )
        )

    def render(self, ctx: ReleaseContext) -> Result[GitHubPlan, ReleaseError]:
        title = self.title.render(ctx.template_values()).strip()
        if not title:
            return Err(config_error(f"step {self.name}: release title renders empty"))
        return Ok(
            GitHubPlan(
                tag=ctx.tag,
                title=title,
                notes=ctx.notes,
                prerelease=ctx.channel.is_prerelease,
                assets=self.assets,
            )
        )

    def _repo_args(self) -> list[str]:
        return ["--repo", self.repo] if self.repo else []

    def verify(self, plan: GitHubPlan, ctx: ReleaseContext, env: StepEnv) -> StepResult:
        if shutil.which("gh") is None:
            return self.failed("verify", "gh: missing (install GitHub CLI: https://cli.github.com/)")
        env.console.print("gh auth status", Style.DIM)
        auth = run_process(
            ["gh", "auth", "status"],
            cwd=env.repo_root,
            timeout=min(env.timeout, GH_TIMEOUT_SECONDS),
        )
        if isinstance(auth, Err):
            return self.failed("verify", "gh auth required (run: gh auth login)")
        for asset in plan.assets:
            if not (env.repo_root / asset).is_file():
                return self.failed("verify", f"release asset not found: {asset}")
        return self.ok("verify")

    def publish(self, plan: GitHubPlan, ctx: ReleaseContext, env: StepEnv) -> StepResult:
        cmd = [
            "gh",
            "release",
            "create",
            plan.tag,
            "--verify-tag",
            "--title",
            plan.title,
            "--notes",
            plan.notes,
            *self._repo_args(),
        ]
        if plan.prerelease:
            cmd.append("--prerelease")
        if self.draft:
            cmd.append("--draft")
        cmd.extend(plan.assets)

        env.console.print(f"gh release create {plan.tag} ...", Style.DIM)
        artifacts = [plan.tag, *plan.assets]
        if ctx.dry_run:
            return self.ok("publish", artifacts=artifacts)

        result = run_process(cmd, cwd=env.repo_root, timeout=env.timeout)
        if isinstance(result, Err):
            return self.failed("publish", f"gh release create failed: {result.error.detail}")
        url = result.value.strip()
        log.info("github.released", tag=plan.tag, url=url)
        return self.ok("publish", artifacts=artifacts, output=url)
