"""Run coordinator: from commit history to a published release.

A run moves through ``idle -> classifying -> resolving -> versioning`` and
then either stops as ``skipped`` or executes the step pipeline, ending as
``succeeded``, ``failed`` or ``cancelled``.

Configuration and version-consistency errors abort the run before any step
executes and are returned as ``Err``. Step failures are part of a normal
report: the run log is kept and the failing step is named. Completed publish
steps are never undone; the release tag is the only record that a version
was released.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace

import structlog

from semrel.core.result import Err, Ok, Result
from semrel.services.release.channels import Channel, resolve_channel
from semrel.services.release.commits import CommitDelta, ParsedCommit, classify, summarize
from semrel.services.release.config import ReleaseConfig
from semrel.services.release.context import CommitRange, ReleaseContext
from semrel.services.release.errors import ReleaseError
from semrel.services.release.fsm import RunState, RunStatus, run_state_machine
from semrel.services.release.history import HistorySource
from semrel.services.release.lock import RunLock
from semrel.services.release.notes import render_notes
from semrel.services.release.pipeline import RunControl, bind_steps, run_pipeline
from semrel.services.release.planner import (
    check_consistency,
    compute_history,
    latest_release_tag,
    next_version,
)
from semrel.services.release.semver import Version
from semrel.services.release.steps import StepEnv, StepResult

log = structlog.get_logger(__name__)

LockFactory = Callable[[Channel], Result[RunLock, ReleaseError]]


@dataclass(frozen=True, slots=True)
class RunSession:
    state: RunState
    branch: str | None = None
    previous_tag: str | None = None
    commits: tuple[ParsedCommit, ...] = ()
    delta: CommitDelta | None = None
    channel: Channel | None = None
    context: ReleaseContext | None = None
    skip_reason: str | None = None
    log: tuple[StepResult, ...] = ()
    failure: ReleaseError | None = None
    released_version: Version | None = None


@dataclass(frozen=True, slots=True)
class ReleaseReport:
    status: RunStatus
    branch: str | None
    channel: Channel | None
    delta: CommitDelta | None
    context: ReleaseContext | None
    log: tuple[StepResult, ...]
    states: tuple[RunState, ...]
    reason: str | None = None
    error: ReleaseError | None = None
    released_version: Version | None = None

    @property
    def version(self) -> Version | None:
        return self.context.version if self.context is not None else None

    @property
    def failed_step(self) -> str | None:
        return self.error.step if self.error is not None else None


def _git_error(action: str, message: str) -> ReleaseError:
    return ReleaseError(kind="git_failed", message=f"{action}: {message}")


class ReleaseCoordinator:
    """Drives one release run for one repository."""

    def __init__(
        self,
        *,
        config: ReleaseConfig,
        history: HistorySource,
        env: StepEnv,
        dry_run: bool = False,
        plan_only: bool = False,
        control: RunControl | None = None,
        lock: LockFactory | None = None,
    ) -> None:
        self.config = config
        self.history = history
        self.env = env
        self.dry_run = dry_run
        self.plan_only = plan_only
        self.control = control or RunControl()
        self.lock = lock
        self._held: RunLock | None = None
        self._states: list[RunState] = []

    def run(self) -> Result[ReleaseReport, ReleaseError]:
        self._states = ["idle"]
        log.info("run.started", dry_run=self.dry_run, plan_only=self.plan_only)
        try:
            final = run_state_machine(
                initial=RunSession(state="idle"),
                handlers={
                    "idle": self._idle,
                    "classifying": self._classifying,
                    "resolving": self._resolving,
                    "versioning": self._versioning,
                    "pipeline": self._pipeline,
                },
                on_transition=self._on_transition,
            )
        finally:
            if self._held is not None:
                self._held.release()
                self._held = None

        if isinstance(final, Err):
            log.warning("run.aborted", kind=final.error.kind, message=final.error.message)
            return final
        return Ok(self._report(final.value))

    def _on_transition(self, session: RunSession) -> None:
        self._states.append(session.state)
        log.info("run.transition", state=session.state, branch=session.branch)

    def _report(self, s: RunSession) -> ReleaseReport:
        status: RunStatus
        match s.state:
            case "planned" | "skipped" | "succeeded" | "failed" | "cancelled":
                status = s.state
            case _:
                raise AssertionError(f"run ended in non-terminal state: {s.state}")
        return ReleaseReport(
            status=status,
            branch=s.branch,
            channel=s.channel,
            delta=s.delta,
            context=s.context,
            log=s.log,
            states=tuple(self._states),
            reason=s.skip_reason,
            error=s.failure,
            released_version=s.released_version,
        )

    # Handlers

    def _idle(self, session: RunSession) -> Result[RunSession, ReleaseError]:
        return Ok(replace(session, state="classifying"))

    def _classifying(self, session: RunSession) -> Result[RunSession, ReleaseError]:
        branch = self.history.current_branch()
        tags = self.history.list_tags(merged_only=True)
        if isinstance(tags, Err):
            return Err(_git_error("failed to list tags", tags.error.message))

        # The range starts at the last release the branch's channel builds on;
        # prerelease tags merged in from another channel are not a base.
        last = latest_release_tag(
            tags.value,
            self.config.tag_format,
            channel=resolve_channel(branch, self.config.branches),
        )
        previous_tag = last[0] if last is not None else None
        commits = self.history.list_commits(since=previous_tag, branch=branch or "HEAD")
        if isinstance(commits, Err):
            return Err(_git_error("failed to read commits", commits.error.message))

        parsed = classify(commits.value)
        delta = summarize(parsed)
        log.info(
            "commits.classified",
            since=previous_tag,
            count=len(parsed),
            breaking=delta.breaking,
            features=delta.features,
            fixes=delta.fixes,
            other=delta.other,
        )
        session = replace(
            session,
            branch=branch,
            previous_tag=previous_tag,
            commits=parsed,
            delta=delta,
        )
        if delta.total == 0:
            since = previous_tag or "the first commit"
            return Ok(replace(session, state="skipped", skip_reason=f"no commits since {since}"))
        return Ok(replace(session, state="resolving"))

    def _resolving(self, session: RunSession) -> Result[RunSession, ReleaseError]:
        channel = resolve_channel(session.branch, self.config.branches)
        if channel is None:
            label = session.branch or "detached HEAD"
            return Ok(
                replace(
                    session,
                    state="skipped",
                    skip_reason=f"{label} is not a release branch",
                )
            )
        return Ok(replace(session, state="versioning", channel=channel))

    def _versioning(self, session: RunSession) -> Result[RunSession, ReleaseError]:
        channel = session.channel
        delta = session.delta
        assert channel is not None and delta is not None

        if delta.bump is None:
            return Ok(
                replace(
                    session,
                    state="skipped",
                    skip_reason="no feature, fix or breaking commits since last release",
                )
            )

        fmt = self.config.tag_format
        tags = self.history.list_tags()
        if isinstance(tags, Err):
            return Err(_git_error("failed to list tags", tags.error.message))
        version = next_version(delta=delta, channel=channel, history=compute_history(tags.value, fmt))
        assert version is not None

        # Tags are read again under the channel lock: a concurrent run may
        # have released between the first read and acquiring the lock.
        if self.lock is not None and not self.plan_only:
            held = self.lock(channel)
            if isinstance(held, Err):
                return held
            self._held = held.value
        fresh = self.history.list_tags()
        if isinstance(fresh, Err):
            return Err(_git_error("failed to list tags", fresh.error.message))
        consistent = check_consistency(
            version=version,
            channel=channel,
            history=compute_history(fresh.value, fmt),
            tag_format=fmt,
        )
        if isinstance(consistent, Err):
            return consistent

        head = self.history.head_sha()
        if isinstance(head, Err):
            return Err(_git_error("failed to resolve HEAD", head.error.message))

        tag = fmt.format(version)
        notes = render_notes(
            version=version,
            tag=tag,
            previous_tag=session.previous_tag,
            commits=session.commits,
            repository_url=self.config.repository_url,
        )
        ctx = ReleaseContext(
            version=version,
            channel=channel,
            tag=tag,
            notes=notes,
            commit_range=CommitRange(start=session.previous_tag, end=head.value),
            commits=session.commits,
            dry_run=self.dry_run,
        )
        log.info("version.computed", version=str(version), channel=channel.name, tag=tag)
        next_state: RunState = "planned" if self.plan_only else "pipeline"
        return Ok(replace(session, state=next_state, context=ctx))

    def _pipeline(self, session: RunSession) -> Result[RunSession, ReleaseError]:
        ctx = session.context
        assert ctx is not None

        bound = bind_steps(self.config.steps, ctx)
        if isinstance(bound, Err):
            return bound

        outcome = run_pipeline(bound=bound.value, ctx=ctx, env=self.env, control=self.control)

        released: Version | None = None
        if not ctx.dry_run:
            git_steps = {s.name for s in self.config.steps if s.kind == "git"}
            if any(
                r.step_name in git_steps and r.phase == "publish" and r.outcome == "ok"
                for r in outcome.log
            ):
                released = ctx.version

        failure: ReleaseError | None = None
        if outcome.failed is not None:
            failure = ReleaseError(
                kind="step_failed",
                message=outcome.failed.reason or f"{outcome.failed.phase} failed",
                step=outcome.failed.step_name,
            )

        return Ok(
            replace(
                session,
                state=outcome.status,
                log=outcome.log,
                failure=failure,
                released_version=released,
            )
        )
