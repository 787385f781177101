from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from semrel.core.config import find_config
from semrel.core.result import Err, Ok, Result
from semrel.core.structured import (
    as_str_dict,
    get_list,
    get_number,
    get_raw_str,
    get_str,
    get_str_list,
)
from semrel.services.release.channels import BranchRule, validate_rules
from semrel.services.release.errors import ReleaseError, config_error
from semrel.services.release.semver import TagFormat
from semrel.services.release.steps import STEP_KINDS, AnyStep
from semrel.services.release.timeouts import STEP_TIMEOUT_SECONDS

DEFAULT_TAG_FORMAT = "v{{version}}"

DEFAULT_BRANCHES: tuple[BranchRule, ...] = (
    BranchRule(name="master"),
    BranchRule(name="dev", prerelease="dev"),
)

DEFAULT_STEPS: tuple[dict[str, object], ...] = (
    {"kind": "changelog"},
    {"kind": "git"},
)


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    branches: tuple[BranchRule, ...]
    steps: tuple[AnyStep, ...]
    tag_format: TagFormat
    timeout_seconds: float = STEP_TIMEOUT_SECONDS
    repository_url: str | None = None
    path: Path | None = None


def _parse_branch(item: object) -> Result[BranchRule, ReleaseError]:
    if isinstance(item, str):
        return Ok(BranchRule(name=item.strip()))

    table = as_str_dict(item)
    if table is None:
        return Err(config_error(f"invalid branch entry: {item!r}"))
    name = get_str(table, "name")
    if name is None:
        return Err(config_error("branch entry requires name"))

    prerelease = table.get("prerelease")
    match prerelease:
        case None | False:
            return Ok(BranchRule(name=name))
        case True:
            return Ok(BranchRule(name=name, prerelease=name))
        case str() if prerelease.strip():
            return Ok(BranchRule(name=name, prerelease=prerelease.strip()))
        case _:
            return Err(
                config_error(
                    f"branch {name}: prerelease must be true or a qualifier string",
                )
            )


def _parse_branches(data: Mapping[str, object]) -> Result[tuple[BranchRule, ...], ReleaseError]:
    if "branches" not in data:
        return Ok(DEFAULT_BRANCHES)
    items = get_list(data, "branches")
    if items is None:
        return Err(config_error("branches must be a list"))

    rules: list[BranchRule] = []
    for item in items:
        rule = _parse_branch(item)
        if isinstance(rule, Err):
            return rule
        rules.append(rule.value)
    return validate_rules(rules)


def _parse_step(table: Mapping[str, object], seen: set[str]) -> Result[AnyStep, ReleaseError]:
    kind = get_str(table, "kind")
    if kind is None:
        return Err(config_error("step entry requires kind"))
    parser = STEP_KINDS.get(kind)
    if parser is None:
        return Err(
            config_error(
                f"unknown step kind: {kind}",
                hint=f"Supported kinds: {', '.join(STEP_KINDS)}",
            )
        )

    name = get_str(table, "name") or kind
    if name in seen:
        return Err(
            config_error(
                f"duplicate step name: {name}",
                hint="Give repeated step kinds distinct names.",
            )
        )
    seen.add(name)

    declared: list[str] | None = None
    if "phases" in table:
        declared = get_str_list(table, "phases")
        if declared is None:
            return Err(config_error(f"step {name}: phases must be a list of strings"))

    return parser(table, name=name, declared=declared)


def _parse_steps(data: Mapping[str, object]) -> Result[tuple[AnyStep, ...], ReleaseError]:
    tables: list[Mapping[str, object]] = []
    if "steps" not in data:
        tables.extend(DEFAULT_STEPS)
    else:
        items = get_list(data, "steps")
        if items is None:
            return Err(config_error("steps must be a list of tables"))
        for item in items:
            table = as_str_dict(item)
            if table is None:
                return Err(config_error(f"invalid step entry: {item!r}"))
            tables.append(table)

    seen: set[str] = set()
    steps: list[AnyStep] = []
    for table in tables:
        step = _parse_step(table, seen)
        if isinstance(step, Err):
            return step
        steps.append(step.value)
    return Ok(tuple(steps))


def parse_release_config(
    data: Mapping[str, object], *, path: Path | None = None
) -> Result[ReleaseConfig, ReleaseError]:
    """Build a validated ReleaseConfig from a parsed TOML table.

    All templates are compiled here, so placeholder errors surface before a
    run starts.
    """
    tag_format = TagFormat.from_template(get_raw_str(data, "tag_format") or DEFAULT_TAG_FORMAT)
    if isinstance(tag_format, Err):
        return tag_format

    branches = _parse_branches(data)
    if isinstance(branches, Err):
        return branches

    steps = _parse_steps(data)
    if isinstance(steps, Err):
        return steps

    timeout = STEP_TIMEOUT_SECONDS
    if "timeout_seconds" in data:
        value = get_number(data, "timeout_seconds")
        if value is None or value <= 0:
            return Err(config_error("timeout_seconds must be a positive number"))
        timeout = value

    repository_url = get_str(data, "repository_url")
    return Ok(
        ReleaseConfig(
            branches=branches.value,
            steps=steps.value,
            tag_format=tag_format.value,
            timeout_seconds=timeout,
            repository_url=repository_url.rstrip("/") if repository_url else None,
            path=path,
        )
    )


def load_release_config(
    repo_root: Path, explicit: Path | None = None
) -> Result[ReleaseConfig, ReleaseError]:
    source = find_config(repo_root, explicit)
    if isinstance(source, Err):
        e = source.error
        return Err(config_error(e.message, hint=str(e.path) if e.path else None))
    return parse_release_config(source.value.data, path=source.value.path)
