from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, Literal, cast

from semrel.core.result import Err, Ok, Result
from semrel.output.console import ConsoleProtocol
from semrel.services.release.context import ReleaseContext
from semrel.services.release.errors import ReleaseError, config_error

Phase = Literal["verify", "prepare", "publish"]
StepKind = Literal["changelog", "exec", "container", "git", "github"]
Outcome = Literal["ok", "skipped", "failed"]

PHASE_ORDER: tuple[Phase, ...] = ("verify", "prepare", "publish")


@dataclass(frozen=True, slots=True)
class StepResult:
    step_name: str
    phase: Phase
    outcome: Outcome
    reason: str | None = None
    artifacts: tuple[str, ...] = ()
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome != "failed"


@dataclass(frozen=True, slots=True)
class StepEnv:
    """Per-run environment handed to every step invocation."""

    repo_root: Path
    console: ConsoleProtocol
    timeout: float


class Step[P](ABC):
    """A pipeline step kind.

    Subclasses declare the phases they can run in ``supported_phases`` and
    override the matching ``verify``/``prepare``/``publish`` methods. Each
    invocation receives the plan produced by :meth:`render`, so templates are
    expanded once per run before anything executes.
    """

    kind: ClassVar[StepKind]
    supported_phases: ClassVar[frozenset[Phase]]

    name: str
    phases: frozenset[Phase]

    @abstractmethod
    def render(self, ctx: ReleaseContext) -> Result[P, ReleaseError]: ...

    def verify(self, plan: P, ctx: ReleaseContext, env: StepEnv) -> StepResult:
        raise NotImplementedError(f"{self.kind} has no verify phase")

    def prepare(self, plan: P, ctx: ReleaseContext, env: StepEnv) -> StepResult:
        raise NotImplementedError(f"{self.kind} has no prepare phase")

    def publish(self, plan: P, ctx: ReleaseContext, env: StepEnv) -> StepResult:
        raise NotImplementedError(f"{self.kind} has no publish phase")

    def invoke(self, phase: Phase, plan: P, ctx: ReleaseContext, env: StepEnv) -> StepResult:
        match phase:
            case "verify":
                return self.verify(plan, ctx, env)
            case "prepare":
                return self.prepare(plan, ctx, env)
            case "publish":
                return self.publish(plan, ctx, env)

    # Result helpers

    def ok(
        self,
        phase: Phase,
        *,
        artifacts: Sequence[str] = (),
        output: str = "",
    ) -> StepResult:
        return StepResult(
            step_name=self.name,
            phase=phase,
            outcome="ok",
            artifacts=tuple(artifacts),
            output=output,
        )

    def failed(self, phase: Phase, reason: str, *, output: str = "") -> StepResult:
        return StepResult(
            step_name=self.name,
            phase=phase,
            outcome="failed",
            reason=reason,
            output=output,
        )

    def skipped(self, phase: Phase, reason: str) -> StepResult:
        return StepResult(step_name=self.name, phase=phase, outcome="skipped", reason=reason)


def check_phases(
    *,
    kind: str,
    name: str,
    declared: Sequence[str] | None,
    supported: frozenset[Phase],
    default: frozenset[Phase] | None = None,
) -> Result[frozenset[Phase], ReleaseError]:
    """Validate a declaration's ``phases`` against what its kind supports."""
    if declared is None:
        return Ok(default if default is not None else supported)

    out: set[Phase] = set()
    for phase in declared:
        if phase not in PHASE_ORDER:
            return Err(config_error(f"step {name}: unknown phase {phase!r}"))
        if phase not in supported:
            allowed = ", ".join(p for p in PHASE_ORDER if p in supported)
            return Err(
                config_error(
                    f"step {name}: {kind} steps do not support the {phase} phase",
                    hint=f"Supported: {allowed}",
                )
            )
        out.add(cast(Phase, phase))
    if not out:
        return Err(config_error(f"step {name}: phases must not be empty"))
    return Ok(frozenset(out))
