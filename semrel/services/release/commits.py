"""Conventional-commit classification.

Each commit message is parsed by its leading token (``type(scope)!: subject``)
and folded into a :class:`CommitDelta` that drives the version bump.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from semrel.services.release.semver import ReleaseBump

CommitKind = Literal["breaking", "feature", "fix", "other"]

_HEADER_RE = re.compile(
    r"^(?P<type>[A-Za-z]+)(?:\((?P<scope>[^()\r\n]*)\))?(?P<bang>!)?: (?P<subject>\S.*)$"
)
_BREAKING_FOOTER_RE = re.compile(r"^BREAKING[ -]CHANGE: ?(?P<text>.*)$", re.MULTILINE)

_FEATURE_TYPES = frozenset({"feat"})
_FIX_TYPES = frozenset({"fix", "perf"})
_SKIP_MARKERS = ("[skip release]", "[release skip]")


@dataclass(frozen=True, slots=True)
class Commit:
    sha: str
    message: str
    authored_at: str
    branch: str

    @property
    def short_sha(self) -> str:
        return self.sha[:8]

    @property
    def subject(self) -> str:
        lines = self.message.strip().splitlines()
        return lines[0].strip() if lines else ""


@dataclass(frozen=True, slots=True)
class ParsedCommit:
    commit: Commit
    kind: CommitKind
    type: str | None
    scope: str | None
    description: str
    breaking_note: str | None = None


@dataclass(frozen=True, slots=True)
class CommitDelta:
    breaking: bool = False
    features: int = 0
    fixes: int = 0
    other: int = 0

    @property
    def total(self) -> int:
        return int(self.breaking) + self.features + self.fixes + self.other

    @property
    def bump(self) -> ReleaseBump | None:
        """Highest-precedence bump present; categories do not accumulate."""
        if self.breaking:
            return "major"
        if self.features:
            return "minor"
        if self.fixes:
            return "patch"
        return None


def is_skipped(commit: Commit) -> bool:
    lowered = commit.message.lower()
    return any(marker in lowered for marker in _SKIP_MARKERS)


def parse_commit(commit: Commit) -> ParsedCommit:
    subject = commit.subject
    m = _HEADER_RE.match(subject)
    if m is None:
        return ParsedCommit(commit=commit, kind="other", type=None, scope=None, description=subject)

    ctype = m.group("type").lower()
    scope = m.group("scope") or None
    description = m.group("subject").strip()

    footer = _BREAKING_FOOTER_RE.search(commit.message)
    if m.group("bang") or footer is not None:
        note = footer.group("text").strip() if footer is not None else ""
        return ParsedCommit(
            commit=commit,
            kind="breaking",
            type=ctype,
            scope=scope,
            description=description,
            breaking_note=note or description,
        )

    if ctype in _FEATURE_TYPES:
        kind: CommitKind = "feature"
    elif ctype in _FIX_TYPES:
        kind = "fix"
    else:
        kind = "other"
    return ParsedCommit(commit=commit, kind=kind, type=ctype, scope=scope, description=description)


def classify(commits: Iterable[Commit]) -> tuple[ParsedCommit, ...]:
    """Parse every commit in range, dropping those marked to skip release."""
    return tuple(parse_commit(c) for c in commits if not is_skipped(c))


def summarize(parsed: Iterable[ParsedCommit]) -> CommitDelta:
    breaking = False
    features = fixes = other = 0
    for p in parsed:
        match p.kind:
            case "breaking":
                breaking = True
            case "feature":
                features += 1
            case "fix":
                fixes += 1
            case "other":
                other += 1
    return CommitDelta(breaking=breaking, features=features, fixes=fixes, other=other)
