from __future__ import annotations

import os
import shlex
from collections.abc import Mapping
from dataclasses import dataclass
from typing import ClassVar

import structlog

from semrel.core.result import Err, Ok, Result
from semrel.core.structured import get_raw_str, get_str
from semrel.output.console import Style
from semrel.platform.process import run as run_process
from semrel.services.release.context import ReleaseContext
from semrel.services.release.errors import ReleaseError, config_error
from semrel.services.release.steps.base import (
    PHASE_ORDER,
    Phase,
    Step,
    StepEnv,
    StepKind,
    StepResult,
    check_phases,
)
from semrel.services.release.template import Template, compile_template

log = structlog.get_logger(__name__)

_OUTPUT_LIMIT = 4000


@dataclass(frozen=True, slots=True)
class ExecPlan:
    commands: tuple[tuple[Phase, tuple[str, ...]], ...]

    def argv(self, phase: Phase) -> tuple[str, ...]:
        for p, argv in self.commands:
            if p == phase:
                return argv
        raise KeyError(phase)


@dataclass(frozen=True, slots=True)
class ExecStep(Step[ExecPlan]):
    """Runs user-supplied commands, one per phase (``verify_cmd``, ``prepare_cmd``, ``publish_cmd``).

    Commands are split with shell quoting rules but never run through a shell.
    The child also sees ``SEMREL_VERSION``, ``SEMREL_TAG`` and ``SEMREL_CHANNEL``.
    """

    kind: ClassVar[StepKind] = "exec"
    supported_phases: ClassVar[frozenset[Phase]] = frozenset(PHASE_ORDER)

    name: str
    phases: frozenset[Phase]
    commands: tuple[tuple[Phase, Template], ...]
    cwd: str | None = None

    @classmethod
    def from_config(
        cls, table: Mapping[str, object], *, name: str, declared: list[str] | None
    ) -> Result[ExecStep, ReleaseError]:
        commands: list[tuple[Phase, Template]] = []
        for phase in PHASE_ORDER:
            source = get_raw_str(table, f"{phase}_cmd")
            if source is None or not source.strip():
                continue
            compiled = compile_template(source)
            if isinstance(compiled, Err):
                return compiled
            commands.append((phase, compiled.value))

        if not commands:
            return Err(
                config_error(
                    f"step {name}: exec steps need at least one command",
                    hint="Set verify_cmd, prepare_cmd or publish_cmd.",
                )
            )

        configured = frozenset(p for p, _ in commands)
        phases = check_phases(
            kind=cls.kind,
            name=name,
            declared=declared,
            supported=cls.supported_phases,
            default=configured,
        )
        if isinstance(phases, Err):
            return phases
        missing = phases.value - configured
        if missing:
            return Err(
                config_error(
                    f"step {name}: no command for phase {', '.join(sorted(missing))}",
                )
            )
        return Ok(
            cls(
                name=name,
                phases=phases.value,
                commands=tuple(commands),
                cwd=get_str(table, "cwd"),
            )
        )

    def render(self, ctx: ReleaseContext) -> Result[ExecPlan, ReleaseError]:
        values = ctx.template_values()
        out: list[tuple[Phase, tuple[str, ...]]] = []
        for phase, template in self.commands:
            if phase not in self.phases:
                continue
            rendered = template.render(values)
            try:
                argv = tuple(shlex.split(rendered))
            except ValueError as e:
                return Err(config_error(f"step {self.name}: cannot parse {phase}_cmd: {e}"))
            if not argv:
                return Err(config_error(f"step {self.name}: {phase}_cmd renders empty"))
            out.append((phase, argv))
        return Ok(ExecPlan(commands=tuple(out)))

    def verify(self, plan: ExecPlan, ctx: ReleaseContext, env: StepEnv) -> StepResult:
        return self._run("verify", plan, ctx, env)

    def prepare(self, plan: ExecPlan, ctx: ReleaseContext, env: StepEnv) -> StepResult:
        return self._run("prepare", plan, ctx, env)

    def publish(self, plan: ExecPlan, ctx: ReleaseContext, env: StepEnv) -> StepResult:
        return self._run("publish", plan, ctx, env)

    def _run(self, phase: Phase, plan: ExecPlan, ctx: ReleaseContext, env: StepEnv) -> StepResult:
        argv = list(plan.argv(phase))
        env.console.print(shlex.join(argv), Style.DIM)
        # verify commands are read-only checks and still run in dry-run mode.
        if ctx.dry_run and phase != "verify":
            return self.ok(phase)

        child_env = dict(os.environ)
        child_env.update(
            {
                "SEMREL_VERSION": str(ctx.version),
                "SEMREL_TAG": ctx.tag,
                "SEMREL_CHANNEL": ctx.channel.name,
            }
        )
        cwd = env.repo_root / self.cwd if self.cwd else env.repo_root
        result = run_process(argv, cwd=cwd, env=child_env, timeout=env.timeout)
        if isinstance(result, Err):
            e = result.error
            log.warning("exec.failed", step=self.name, phase=phase, returncode=e.returncode)
            return self.failed(
                phase,
                f"{argv[0]} exited with {e.returncode}: {e.detail}",
                output=e.stdout[-_OUTPUT_LIMIT:],
            )
        return self.ok(phase, output=result.value[-_OUTPUT_LIMIT:])
