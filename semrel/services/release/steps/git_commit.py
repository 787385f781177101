from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import ClassVar

import structlog

from semrel.core.result import Err, Ok, Result
from semrel.core.structured import get_bool, get_raw_str, get_str, get_str_list
from semrel.git.repository import Repository
from semrel.output.console import Style
from semrel.services.release.context import ReleaseContext
from semrel.services.release.errors import ReleaseError, config_error
from semrel.services.release.steps.base import Phase, Step, StepEnv, StepKind, StepResult, check_phases
from semrel.services.release.template import Template, compile_template

log = structlog.get_logger(__name__)

DEFAULT_MESSAGE = "chore(release): {{version}} [skip ci]\n\n{{notes}}"
DEFAULT_ASSETS = ("CHANGELOG.md",)


@dataclass(frozen=True, slots=True)
class GitPlan:
    tag: str
    message: str
    assets: tuple[str, ...]
    push_refs: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class GitStep(Step[GitPlan]):
    """Commits release assets and creates the annotated release tag.

    The tag written here is the durable record that a version was released.
    """

    kind: ClassVar[StepKind] = "git"
    supported_phases: ClassVar[frozenset[Phase]] = frozenset({"verify", "publish"})

    name: str
    phases: frozenset[Phase]
    message: Template
    assets: tuple[str, ...] = DEFAULT_ASSETS
    remote: str = "origin"
    push: bool = True

    @classmethod
    def from_config(
        cls, table: Mapping[str, object], *, name: str, declared: list[str] | None
    ) -> Result[GitStep, ReleaseError]:
        phases = check_phases(
            kind=cls.kind, name=name, declared=declared, supported=cls.supported_phases
        )
        if isinstance(phases, Err):
            return phases

        message = compile_template(get_raw_str(table, "message") or DEFAULT_MESSAGE)
        if isinstance(message, Err):
            return message

        if "assets" in table:
            assets = get_str_list(table, "assets")
            if assets is None:
                return Err(config_error(f"step {name}: assets must be a list of strings"))
        else:
            assets = list(DEFAULT_ASSETS)

        push = get_bool(table, "push")
        return Ok(
            cls(
                name=name,
                phases=phases.value,
                message=message.value,
                assets=tuple(assets),
                remote=get_str(table, "remote") or "origin",
                push=True if push is None else push,
            )
        )

    def render(self, ctx: ReleaseContext) -> Result[GitPlan, ReleaseError]:
        message = self.message.render(ctx.template_values()).strip()
        if not message:
            return Err(config_error(f"step {self.name}: commit message renders empty"))
        push_refs: tuple[str, ...] = ()
        if self.push:
            push_refs = (f"HEAD:refs/heads/{ctx.channel.branch}", f"refs/tags/{ctx.tag}")
        return Ok(GitPlan(tag=ctx.tag, message=message, assets=self.assets, push_refs=push_refs))

    def _repo(self, env: StepEnv) -> Repository:
        return Repository(env.repo_root, timeout=env.timeout)

    def verify(self, plan: GitPlan, ctx: ReleaseContext, env: StepEnv) -> StepResult:
        repo = self._repo(env)
        if not repo.exists():
            return self.failed("verify", f"not a git repository: {env.repo_root}")
        tags = repo.tags()
        if isinstance(tags, Err):
            return self.failed("verify", f"git tag failed: {tags.error.message}")
        if plan.tag in tags.value:
            return self.failed("verify", f"tag already exists: {plan.tag}")
        return self.ok("verify")

    def publish(self, plan: GitPlan, ctx: ReleaseContext, env: StepEnv) -> StepResult:
        repo = self._repo(env)
        present = [a for a in plan.assets if (env.repo_root / a).exists()]
        for asset in plan.assets:
            if asset not in present:
                env.console.warning(f"asset not found, not committed: {asset}")

        if present:
            env.console.print(f"git add -- {' '.join(present)}", Style.DIM)
        env.console.print(f"git commit -m {plan.message.splitlines()[0]}", Style.DIM)
        env.console.print(f"git tag -a {plan.tag}", Style.DIM)
        if plan.push_refs:
            env.console.print(f"git push {self.remote} {' '.join(plan.push_refs)}", Style.DIM)

        if ctx.dry_run:
            return self.ok("publish", artifacts=[plan.tag])

        if present:
            added = repo.add(present)
            if isinstance(added, Err):
                return self.failed("publish", f"git add failed: {added.error.message}")

        committed = False
        if repo.has_staged_changes():
            commit = repo.commit(plan.message)
            if isinstance(commit, Err):
                return self.failed("publish", f"git commit failed: {commit.error.message}")
            committed = True

        tagged = repo.tag_annotated(plan.tag, plan.message)
        if isinstance(tagged, Err):
            return self.failed("publish", f"git tag failed: {tagged.error.message}")
        log.info("git.tagged", tag=plan.tag, committed=committed)

        if plan.push_refs:
            pushed = repo.push(self.remote, list(plan.push_refs))
            if isinstance(pushed, Err):
                return self.failed("publish", f"git push failed: {pushed.error.message}")

        return self.ok(
            "publish",
            artifacts=[plan.tag],
            output="commit + tag" if committed else "tag only",
        )
