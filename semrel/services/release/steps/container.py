from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import ClassVar

import structlog

from semrel.core.result import Err, Ok, Result
from semrel.core.structured import get_bool, get_str, get_str_list
from semrel.output.console import Style
from semrel.platform.process import run as run_process
from semrel.services.release.context import ReleaseContext
from semrel.services.release.errors import ReleaseError, config_error
from semrel.services.release.steps.base import Phase, Step, StepEnv, StepKind, StepResult, check_phases
from semrel.services.release.template import Template, compile_template, compile_templates

log = structlog.get_logger(__name__)

_DOCKER_TAG_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$")

DEFAULT_TAGS = ("{{version}}", "{{#if channel}}{{channel}}{{else}}latest{{/if}}")


@dataclass(frozen=True, slots=True)
class ContainerPlan:
    source: str
    refs: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ContainerStep(Step[ContainerPlan]):
    """Tags a previously built image and pushes the tags to a registry.

    ``source`` names the local image produced by the build; every rendered
    entry of ``tags`` becomes ``<registry>/<image>:<tag>``.
    """

    kind: ClassVar[StepKind] = "container"
    supported_phases: ClassVar[frozenset[Phase]] = frozenset({"verify", "prepare", "publish"})

    name: str
    phases: frozenset[Phase]
    image: str
    source: Template
    tags: tuple[Template, ...]
    registry: str | None = None
    executable: str = "docker"

    @classmethod
    def from_config(
        cls, table: Mapping[str, object], *, name: str, declared: list[str] | None
    ) -> Result[ContainerStep, ReleaseError]:
        phases = check_phases(
            kind=cls.kind, name=name, declared=declared, supported=cls.supported_phases
        )
        if isinstance(phases, Err):
            return phases

        image = get_str(table, "image")
        if image is None:
            return Err(config_error(f"step {name}: container steps require image"))

        if "tags" in table:
            tag_sources = get_str_list(table, "tags")
            if not tag_sources:
                return Err(config_error(f"step {name}: tags must be a non-empty list of strings"))
        else:
            tag_sources = list(DEFAULT_TAGS)
        tags = compile_templates(tag_sources)
        if isinstance(tags, Err):
            return tags

        source = compile_template(get_str(table, "source") or image)
        if isinstance(source, Err):
            return source

        executable = get_str(table, "executable") or "docker"
        if get_bool(table, "podman"):
            executable = "podman"

        return Ok(
            cls(
                name=name,
                phases=phases.value,
                image=image,
                source=source.value,
                tags=tags.value,
                registry=get_str(table, "registry"),
                executable=executable,
            )
        )

    @property
    def repository(self) -> str:
        if self.registry:
            return f"{self.registry.rstrip('/')}/{self.image}"
        return self.image

    def render(self, ctx: ReleaseContext) -> Result[ContainerPlan, ReleaseError]:
        values = ctx.template_values()
        refs: list[str] = []
        for template in self.tags:
            tag = template.render(values)
            if not _DOCKER_TAG_RE.match(tag):
                return Err(
                    config_error(
                        f"step {self.name}: template {template.source!r} renders invalid "
                        f"image tag {tag!r}",
                    )
                )
            ref = f"{self.repository}:{tag}"
            if ref not in refs:
                refs.append(ref)
        return Ok(ContainerPlan(source=self.source.render(values), refs=tuple(refs)))

    def verify(self, plan: ContainerPlan, ctx: ReleaseContext, env: StepEnv) -> StepResult:
        cmd = [self.executable, "image", "inspect", "--format", "{{.Id}}", plan.source]
        env.console.print(" ".join(cmd), Style.DIM)
        result = run_process(cmd, cwd=env.repo_root, timeout=env.timeout)
        if isinstance(result, Err):
            return self.failed("verify", f"source image not available: {plan.source}")
        return self.ok("verify", artifacts=[plan.source], output=result.value.strip())

    def prepare(self, plan: ContainerPlan, ctx: ReleaseContext, env: StepEnv) -> StepResult:
        return self._each(
            "prepare", plan, ctx, env, lambda ref: [self.executable, "tag", plan.source, ref]
        )

    def publish(self, plan: ContainerPlan, ctx: ReleaseContext, env: StepEnv) -> StepResult:
        return self._each("publish", plan, ctx, env, lambda ref: [self.executable, "push", ref])

    def _each(
        self,
        phase: Phase,
        plan: ContainerPlan,
        ctx: ReleaseContext,
        env: StepEnv,
        build: Callable[[str], list[str]],
    ) -> StepResult:
        for ref in plan.refs:
            cmd = build(ref)
            env.console.print(" ".join(cmd), Style.DIM)
            if ctx.dry_run:
                continue
            result = run_process(cmd, cwd=env.repo_root, timeout=env.timeout)
            if isinstance(result, Err):
                log.warning("container.failed", step=self.name, phase=phase, ref=ref)
                return self.failed(phase, f"{cmd[1]} {ref} failed: {result.error.detail}")
        return self.ok(phase, artifacts=plan.refs)
