"""Pipeline step kinds.

The set of kinds is closed: configuration can only name the kinds listed in
``STEP_KINDS``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping

from semrel.core.result import Result
from semrel.services.release.errors import ReleaseError
from semrel.services.release.steps.base import (
    PHASE_ORDER,
    Phase,
    Step,
    StepEnv,
    StepKind,
    StepResult,
)
from semrel.services.release.steps.changelog import ChangelogStep
from semrel.services.release.steps.container import ContainerStep
from semrel.services.release.steps.exec_step import ExecStep
from semrel.services.release.steps.git_commit import GitStep
from semrel.services.release.steps.github import GitHubReleaseStep

type AnyStep = ChangelogStep | ExecStep | ContainerStep | GitStep | GitHubReleaseStep
type StepParser = Callable[..., Result[AnyStep, ReleaseError]]

STEP_KINDS: Mapping[str, StepParser] = {
    "changelog": ChangelogStep.from_config,
    "exec": ExecStep.from_config,
    "container": ContainerStep.from_config,
    "git": GitStep.from_config,
    "github": GitHubReleaseStep.from_config,
}

__all__ = [
    "PHASE_ORDER",
    "STEP_KINDS",
    "AnyStep",
    "ChangelogStep",
    "ContainerStep",
    "ExecStep",
    "GitHubReleaseStep",
    "GitStep",
    "Phase",
    "Step",
    "StepEnv",
    "StepKind",
    "StepResult",
]
