from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from semrel.core.result import Err, Ok, Result
from semrel.services.release.channels import Channel
from semrel.services.release.commits import CommitDelta
from semrel.services.release.errors import ReleaseError
from semrel.services.release.semver import ZERO, TagFormat, Version, channel_newer


@dataclass(frozen=True, slots=True)
class ReleaseHistory:
    latest_stable: Version | None = None
    # qualifier -> core version -> highest sequence released on that core
    prerelease_max: dict[str, dict[Version, int]] = field(default_factory=dict)
    existing_tags: frozenset[str] = frozenset()

    def latest_prerelease(self, qualifier: str) -> Version | None:
        by_core = self.prerelease_max.get(qualifier)
        if not by_core:
            return None
        core = max(by_core, key=Version.precedence)
        return core.with_prerelease(qualifier, by_core[core])

    def latest_on(self, channel: Channel) -> Version | None:
        if channel.qualifier is None:
            return self.latest_stable
        return self.latest_prerelease(channel.qualifier)


def compute_history(tags: Iterable[str], tag_format: TagFormat) -> ReleaseHistory:
    stable: list[Version] = []
    pre: dict[str, dict[Version, int]] = {}
    existing: set[str] = set()

    for tag in tags:
        existing.add(tag)
        v = tag_format.parse(tag)
        if v is None:
            continue
        if v.qualifier is None:
            stable.append(v)
            continue
        by_core = pre.setdefault(v.qualifier, {})
        prev = by_core.get(v.core, 0)
        by_core[v.core] = max(prev, v.sequence or 0)

    return ReleaseHistory(
        latest_stable=max(stable, key=Version.precedence) if stable else None,
        prerelease_max=pre,
        existing_tags=frozenset(existing),
    )


def latest_release_tag(
    tags: Iterable[str], tag_format: TagFormat, *, channel: Channel | None = None
) -> tuple[str, Version] | None:
    """Highest release tag by semver precedence.

    With ``channel``, only tags that channel builds on count: stable tags, plus
    the channel's own prerelease tags. A stable branch that merged a prerelease
    branch therefore still measures its range from the last stable release.
    """
    best: tuple[str, Version] | None = None
    for tag in tags:
        v = tag_format.parse(tag)
        if v is None:
            continue
        if channel is not None and v.qualifier not in (None, channel.qualifier):
            continue
        if best is None or v.precedence() > best[1].precedence():
            best = (tag, v)
    return best


def next_version(
    *,
    delta: CommitDelta,
    channel: Channel,
    history: ReleaseHistory,
) -> Version | None:
    """Compute the next version on ``channel``, or None when nothing warrants a release."""
    bump = delta.bump
    if bump is None:
        return None

    baseline = history.latest_stable or ZERO
    candidate = baseline.bump(bump)
    if channel.qualifier is None:
        return candidate

    # A lower-precedence bump continues the channel's current core instead of
    # cutting a smaller one; a higher bump starts a new core at sequence 1.
    by_core = history.prerelease_max.get(channel.qualifier, {})
    current = max(by_core, key=Version.precedence) if by_core else None
    core = candidate
    if current is not None and current.precedence() > candidate.precedence():
        core = current
    sequence = by_core.get(core, 0) + 1
    return core.with_prerelease(channel.qualifier, sequence)


def check_consistency(
    *,
    version: Version,
    channel: Channel,
    history: ReleaseHistory,
    tag_format: TagFormat,
) -> Result[None, ReleaseError]:
    if version.qualifier != channel.qualifier:
        return Err(
            ReleaseError(
                kind="version_inconsistent",
                message=f"version {version} does not belong to channel {channel.name}",
            )
        )

    tag = tag_format.format(version)
    if tag in history.existing_tags:
        return Err(
            ReleaseError(
                kind="version_inconsistent",
                message=f"tag already exists: {tag}",
                hint="Another run may have released concurrently; fetch tags and retry.",
            )
        )

    prior = history.latest_on(channel)
    if prior is not None and not channel_newer(version, prior):
        return Err(
            ReleaseError(
                kind="version_inconsistent",
                message=f"version {version} does not exceed {prior} on channel {channel.name}",
                hint="Check for concurrent runs or tags created outside semrel.",
            )
        )

    if version.is_prerelease and history.latest_stable is not None:
        if version.core.precedence() <= history.latest_stable.precedence():
            return Err(
                ReleaseError(
                    kind="version_inconsistent",
                    message=(
                        f"prerelease core {version.core} must exceed latest stable "
                        f"{history.latest_stable}"
                    ),
                )
            )
    return Ok(None)
