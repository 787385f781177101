from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    "config_error",
    "version_inconsistent",
    "step_failed",
    "git_failed",
    "locked",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Canonical release error payload.

    ``step`` names the failing pipeline step for ``step_failed`` errors.
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None
    step: str | None = None


def config_error(message: str, hint: str | None = None) -> ReleaseError:
    return ReleaseError(kind="config_error", message=message, hint=hint)
