"""Ordered execution of release steps across the verify/prepare/publish barrier."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

import structlog

from semrel.core.result import Err, Ok, Result
from semrel.output.console import Style
from semrel.services.release.context import ReleaseContext
from semrel.services.release.errors import ReleaseError
from semrel.services.release.steps import PHASE_ORDER, Step, StepEnv, StepResult

log = structlog.get_logger(__name__)

PipelineStatus = Literal["succeeded", "failed", "cancelled"]


class RunControl:
    """Cancellation handshake between an operator and a running pipeline.

    Cancelling is accepted until the publish phase begins; after that the
    request is refused because publish steps have externally visible effects.
    """

    def __init__(self) -> None:
        self._cancel_requested = False
        self._publishing = False

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    @property
    def publishing(self) -> bool:
        return self._publishing

    def request_cancel(self) -> bool:
        if self._publishing:
            return False
        self._cancel_requested = True
        return True

    def begin_publish(self) -> bool:
        if self._cancel_requested:
            return False
        self._publishing = True
        return True


@dataclass(frozen=True, slots=True)
class BoundStep[P]:
    step: Step[P]
    plan: P


@dataclass(frozen=True, slots=True)
class PipelineOutcome:
    status: PipelineStatus
    log: tuple[StepResult, ...]
    failed: StepResult | None = None


def bind_steps(
    steps: Sequence[Step[object]], ctx: ReleaseContext
) -> Result[tuple[BoundStep[object], ...], ReleaseError]:
    """Render every step against the context before anything runs."""
    bound: list[BoundStep[object]] = []
    for step in steps:
        plan = step.render(ctx)
        if isinstance(plan, Err):
            return plan
        bound.append(BoundStep(step=step, plan=plan.value))
    return Ok(tuple(bound))


def run_pipeline(
    *,
    bound: Sequence[BoundStep[object]],
    ctx: ReleaseContext,
    env: StepEnv,
    control: RunControl,
) -> PipelineOutcome:
    results: list[StepResult] = []

    for phase in PHASE_ORDER:
        if phase == "publish" and not control.begin_publish():
            log.info("pipeline.cancelled", before="publish")
            return PipelineOutcome(status="cancelled", log=tuple(results))

        for b in bound:
            if phase not in b.step.phases:
                continue
            if control.cancel_requested and not control.publishing:
                log.info("pipeline.cancelled", before=f"{phase}:{b.step.name}")
                return PipelineOutcome(status="cancelled", log=tuple(results))

            env.console.print(f"[{phase}] {b.step.name}", Style.BOLD)
            result = b.step.invoke(phase, b.plan, ctx, env)
            results.append(result)
            log.info(
                "step.finished",
                step=result.step_name,
                phase=phase,
                outcome=result.outcome,
                dry_run=ctx.dry_run,
            )
            if result.outcome == "failed":
                return PipelineOutcome(status="failed", log=tuple(results), failed=result)

    return PipelineOutcome(status="succeeded", log=tuple(results))
