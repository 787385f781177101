from __future__ import annotations

from dataclasses import dataclass

from semrel.services.release.channels import Channel
from semrel.services.release.commits import ParsedCommit
from semrel.services.release.semver import Version


@dataclass(frozen=True, slots=True)
class CommitRange:
    """Commits after ``start`` (previous release tag, None for first release) up to ``end``."""

    start: str | None
    end: str

    def __str__(self) -> str:
        if self.start is None:
            return self.end
        return f"{self.start}..{self.end}"


@dataclass(frozen=True, slots=True)
class ReleaseContext:
    """Everything downstream steps know about the release being cut.

    Created once per run after the version is computed and shared read-only
    with every step.
    """

    version: Version
    channel: Channel
    tag: str
    notes: str
    commit_range: CommitRange
    commits: tuple[ParsedCommit, ...] = ()
    dry_run: bool = False

    @property
    def previous_tag(self) -> str | None:
        return self.commit_range.start

    def template_values(self) -> dict[str, str]:
        v = self.version
        prerelease = f"{v.qualifier}.{v.sequence}" if v.is_prerelease else ""
        return {
            "version": str(v),
            "tag": self.tag,
            "channel": self.channel.template_name,
            "major": str(v.major),
            "minor": str(v.minor),
            "patch": str(v.patch),
            "prerelease": prerelease,
            "branch": self.channel.branch,
            "notes": self.notes,
            "previous_tag": self.previous_tag or "",
        }
