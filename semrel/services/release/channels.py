from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from semrel.core.result import Err, Ok, Result
from semrel.services.release.errors import ReleaseError, config_error
from semrel.services.release.semver import is_valid_qualifier


@dataclass(frozen=True, slots=True)
class BranchRule:
    """Static branch -> channel mapping. ``prerelease`` is the qualifier, if any."""

    name: str
    prerelease: str | None = None


@dataclass(frozen=True, slots=True)
class Channel:
    branch: str
    qualifier: str | None = None

    @property
    def is_prerelease(self) -> bool:
        return self.qualifier is not None

    @property
    def name(self) -> str:
        return self.qualifier if self.qualifier is not None else "stable"

    @property
    def template_name(self) -> str:
        # Empty on stable so `{{#if channel}}` selects the stable branch of a template.
        return self.qualifier or ""


def validate_rules(rules: Sequence[BranchRule]) -> Result[tuple[BranchRule, ...], ReleaseError]:
    if not rules:
        return Err(config_error("no release branches configured"))

    seen: set[str] = set()
    qualifiers: set[str] = set()
    stable: list[str] = []
    for rule in rules:
        if not rule.name:
            return Err(config_error("branch name must not be empty"))
        if rule.name in seen:
            return Err(config_error(f"duplicate branch: {rule.name}"))
        seen.add(rule.name)

        if rule.prerelease is None:
            stable.append(rule.name)
            continue
        if not is_valid_qualifier(rule.prerelease):
            return Err(
                config_error(
                    f"invalid prerelease qualifier for {rule.name}: {rule.prerelease!r}",
                    hint="Use letters, digits and '-' (not only digits).",
                )
            )
        if rule.prerelease in qualifiers:
            return Err(config_error(f"duplicate prerelease qualifier: {rule.prerelease}"))
        qualifiers.add(rule.prerelease)

    if len(stable) > 1:
        return Err(
            config_error(
                f"only one stable branch is allowed: {', '.join(stable)}",
                hint="Mark the others with prerelease = true.",
            )
        )
    return Ok(tuple(rules))


def resolve_channel(branch: str | None, rules: Sequence[BranchRule]) -> Channel | None:
    """Map a branch to its channel by exact name; None means ineligible."""
    if branch is None:
        return None
    for rule in rules:
        if rule.name == branch:
            return Channel(branch=branch, qualifier=rule.prerelease)
    return None
