from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

from semrel.core.result import Err, Ok, Result
from semrel.services.release.errors import ReleaseError, config_error

ReleaseBump = Literal["major", "minor", "patch"]

_VERSION_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)(?:-([0-9A-Za-z-]+)\.(0|[1-9]\d*))?$"
)
_QUALIFIER_RE = re.compile(r"^[0-9A-Za-z-]+$")
_VERSION_FIELD = "{{version}}"


def is_valid_qualifier(text: str) -> bool:
    """A qualifier is a single semver identifier that is not purely numeric."""
    return bool(_QUALIFIER_RE.match(text)) and not text.isdigit()


@dataclass(frozen=True, slots=True)
class Version:
    """A semantic version, optionally carrying ``-qualifier.sequence``.

    Stable versions never carry a qualifier; prerelease versions always carry
    both a qualifier and a sequence number >= 1.
    """

    major: int
    minor: int
    patch: int
    qualifier: str | None = None
    sequence: int | None = None

    def __post_init__(self) -> None:
        if (self.qualifier is None) != (self.sequence is None):
            raise ValueError("qualifier and sequence must be set together")
        if self.sequence is not None and self.sequence < 1:
            raise ValueError(f"prerelease sequence must be >= 1: {self.sequence}")

    @property
    def is_prerelease(self) -> bool:
        return self.qualifier is not None

    @property
    def core(self) -> Version:
        return Version(self.major, self.minor, self.patch)

    def bump(self, kind: ReleaseBump) -> Version:
        match kind:
            case "major":
                return Version(self.major + 1, 0, 0)
            case "minor":
                return Version(self.major, self.minor + 1, 0)
            case "patch":
                return Version(self.major, self.minor, self.patch + 1)
            case _:
                raise AssertionError(f"unexpected bump kind: {kind}")

    def with_prerelease(self, qualifier: str, sequence: int) -> Version:
        return Version(self.major, self.minor, self.patch, qualifier, sequence)

    def precedence(self) -> tuple[int, int, int, int, str, int]:
        """Sort key implementing semver precedence (a prerelease sorts before its core)."""
        if self.qualifier is None:
            return (self.major, self.minor, self.patch, 1, "", 0)
        return (self.major, self.minor, self.patch, 0, self.qualifier, self.sequence or 0)

    def __str__(self) -> str:
        core = f"{self.major}.{self.minor}.{self.patch}"
        if self.qualifier is None:
            return core
        return f"{core}-{self.qualifier}.{self.sequence}"

    @classmethod
    def parse(cls, text: str) -> Version | None:
        m = _VERSION_RE.match(text)
        if m is None:
            return None
        major, minor, patch = int(m.group(1)), int(m.group(2)), int(m.group(3))
        qualifier = m.group(4)
        if qualifier is None:
            return cls(major, minor, patch)
        if not is_valid_qualifier(qualifier):
            return None
        sequence = int(m.group(5))
        if sequence < 1:
            return None
        return cls(major, minor, patch, qualifier, sequence)


ZERO = Version(0, 0, 0)


def channel_newer(candidate: Version, prior: Version) -> bool | None:
    """Return whether ``candidate`` follows ``prior`` on the same channel.

    Stable versions compare by core. Prereleases compare by (core, sequence)
    only when they share a qualifier. Any other pairing is incomparable and
    returns None.
    """
    if candidate.qualifier != prior.qualifier:
        return None
    a = (candidate.major, candidate.minor, candidate.patch, candidate.sequence or 0)
    b = (prior.major, prior.minor, prior.patch, prior.sequence or 0)
    return a > b


@dataclass(frozen=True, slots=True)
class TagFormat:
    """Maps versions to VCS tag names, e.g. ``v{{version}}`` -> ``v1.2.3``."""

    prefix: str
    suffix: str

    @classmethod
    def from_template(cls, template: str) -> Result[TagFormat, ReleaseError]:
        if template.count(_VERSION_FIELD) != 1:
            return Err(
                config_error(
                    f"tag_format must contain {_VERSION_FIELD} exactly once: {template!r}"
                )
            )
        prefix, suffix = template.split(_VERSION_FIELD)
        if "{{" in prefix or "{{" in suffix:
            return Err(
                config_error(
                    f"tag_format only supports {_VERSION_FIELD}: {template!r}",
                    hint='Example: tag_format = "v{{version}}"',
                )
            )
        if any(ch.isspace() for ch in prefix + suffix):
            return Err(config_error(f"tag_format must not contain whitespace: {template!r}"))
        return Ok(cls(prefix=prefix, suffix=suffix))

    def format(self, version: Version) -> str:
        return f"{self.prefix}{version}{self.suffix}"

    def parse(self, tag: str) -> Version | None:
        if not tag.startswith(self.prefix) or not tag.endswith(self.suffix):
            return None
        end = len(tag) - len(self.suffix)
        if end < len(self.prefix):
            return None
        return Version.parse(tag[len(self.prefix) : end])


DEFAULT_TAG_FORMAT = TagFormat(prefix="v", suffix="")
