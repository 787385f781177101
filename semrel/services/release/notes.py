"""Release notes and changelog rendering."""

from __future__ import annotations

import re
from collections.abc import Sequence

from semrel.services.release.commits import ParsedCommit
from semrel.services.release.semver import Version

CHANGELOG_TITLE = "# Changelog"

_SECTION_VERSION_RE = re.compile(r"^## \[?([0-9A-Za-z.+-]+)\]?")

_GROUPS: tuple[tuple[str, str], ...] = (
    ("feature", "Features"),
    ("fix", "Bug Fixes"),
)


def _commit_line(p: ParsedCommit, repository_url: str | None) -> str:
    scope = f"**{p.scope}:** " if p.scope else ""
    if repository_url:
        ref = f"[{p.commit.short_sha}]({repository_url}/commit/{p.commit.sha})"
    else:
        ref = p.commit.short_sha
    return f"* {scope}{p.description} ({ref})"


def _heading(
    *,
    version: Version,
    tag: str,
    previous_tag: str | None,
    date: str | None,
    repository_url: str | None,
) -> str:
    title = str(version)
    if repository_url and previous_tag:
        title = f"[{version}]({repository_url}/compare/{previous_tag}...{tag})"
    suffix = f" ({date})" if date else ""
    return f"## {title}{suffix}"


def render_notes(
    *,
    version: Version,
    tag: str,
    previous_tag: str | None,
    commits: Sequence[ParsedCommit],
    repository_url: str | None = None,
) -> str:
    """Render markdown notes for one release.

    The date is taken from the newest commit so that rendering the same
    commit range twice yields identical text.
    """
    date = commits[-1].commit.authored_at[:10] if commits else None
    lines: list[str] = [
        _heading(
            version=version,
            tag=tag,
            previous_tag=previous_tag,
            date=date,
            repository_url=repository_url,
        )
    ]

    breaking = [p for p in commits if p.kind == "breaking"]
    if breaking:
        lines.append("")
        lines.append("### ⚠ BREAKING CHANGES")
        lines.append("")
        for p in breaking:
            scope = f"**{p.scope}:** " if p.scope else ""
            lines.append(f"* {scope}{p.breaking_note or p.description}")

    for kind, title in _GROUPS:
        group = [p for p in commits if p.kind == kind]
        if not group:
            continue
        lines.append("")
        lines.append(f"### {title}")
        lines.append("")
        lines.extend(_commit_line(p, repository_url) for p in group)

    return "\n".join(lines).rstrip() + "\n"


def _split_sections(body: str) -> tuple[str, list[str]]:
    preamble: list[str] = []
    sections: list[str] = []
    current: list[str] | None = None
    for line in body.splitlines(keepends=True):
        if line.startswith("## "):
            if current is not None:
                sections.append("".join(current))
            current = [line]
        elif current is None:
            preamble.append(line)
        else:
            current.append(line)
    if current is not None:
        sections.append("".join(current))
    return ("".join(preamble), sections)


def section_version(section: str) -> str | None:
    m = _SECTION_VERSION_RE.match(section)
    return m.group(1) if m else None


def update_changelog(
    existing: str,
    *,
    notes: str,
    version: Version,
    title: str = CHANGELOG_TITLE,
) -> str:
    """Insert ``notes`` as the newest section, replacing a section for the same version."""
    body = existing
    if body.startswith(title):
        body = body[len(title) :]
    preamble, sections = _split_sections(body.lstrip("\n"))

    new = notes.rstrip("\n") + "\n"
    target = str(version)
    out: list[str] = []
    replaced = False
    for section in sections:
        if section_version(section) == target:
            if not replaced:
                out.append(new)
                replaced = True
            continue
        out.append(section.rstrip("\n") + "\n")
    if not replaced:
        out.insert(0, new)

    head = f"{title}\n\n"
    if preamble.strip():
        head += preamble.strip("\n") + "\n\n"
    return head + "\n".join(out)
