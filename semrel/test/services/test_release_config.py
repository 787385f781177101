"""Tests for release configuration parsing and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from semrel.core.result import Err, Ok
from semrel.services.release.channels import BranchRule
from semrel.services.release.config import (
    DEFAULT_BRANCHES,
    ReleaseConfig,
    load_release_config,
    parse_release_config,
)
from semrel.services.release.semver import Version
from semrel.services.release.steps import ChangelogStep, ContainerStep, ExecStep, GitStep


def _ok(data: dict[str, object]) -> ReleaseConfig:
    result = parse_release_config(data)
    assert isinstance(result, Ok), result
    return result.value


def _err(data: dict[str, object]) -> str:
    result = parse_release_config(data)
    assert isinstance(result, Err), result
    assert result.error.kind == "config_error"
    return result.error.message


class TestDefaults:
    def test_empty_table_uses_defaults(self) -> None:
        config = _ok({})
        assert config.branches == DEFAULT_BRANCHES
        assert [s.kind for s in config.steps] == ["changelog", "git"]
        assert config.tag_format.format(Version(1, 0, 0)) == "v1.0.0"
        assert config.timeout_seconds == 300
        assert config.repository_url is None

    def test_load_without_config_file(self, tmp_path: Path) -> None:
        result = load_release_config(tmp_path)
        assert isinstance(result, Ok)
        assert result.value.path is None


class TestBranches:
    def test_string_and_table_entries(self) -> None:
        config = _ok(
            {
                "branches": [
                    "main",
                    {"name": "dev", "prerelease": True},
                    {"name": "next", "prerelease": "beta"},
                ]
            }
        )
        assert config.branches[:3] == (
            BranchRule("main"),
            BranchRule("dev", "dev"),
            BranchRule("next", "beta"),
        )

    def test_two_stable_branches_rejected(self) -> None:
        message = _err({"branches": ["main", {"name": "lts", "prerelease": False}]})
        assert "only one stable branch" in message

    def test_bad_prerelease_value(self) -> None:
        assert "prerelease must be" in _err({"branches": [{"name": "dev", "prerelease": 1}]})

    def test_branch_requires_name(self) -> None:
        assert "requires name" in _err({"branches": [{"prerelease": True}]})

    def test_branches_must_be_list(self) -> None:
        assert "must be a list" in _err({"branches": "master"})


class TestSteps:
    def test_all_kinds(self) -> None:
        config = _ok(
            {
                "steps": [
                    {"kind": "changelog", "path": "docs/CHANGES.md"},
                    {"kind": "exec", "name": "readme", "prepare_cmd": "node bump.js {{version}}"},
                    {"kind": "container", "image": "owner/app", "registry": "ghcr.io"},
                    {"kind": "git", "assets": ["docs/CHANGES.md", "README.md"]},
                    {"kind": "github", "assets": ["dist/app.tar.gz"]},
                ]
            }
        )
        changelog, readme, container, git, github = config.steps
        assert isinstance(changelog, ChangelogStep)
        assert changelog.path == "docs/CHANGES.md"
        assert isinstance(readme, ExecStep)
        assert readme.name == "readme"
        assert readme.phases == frozenset({"prepare"})
        assert isinstance(container, ContainerStep)
        assert container.repository == "ghcr.io/owner/app"
        assert container.phases == frozenset({"verify", "prepare", "publish"})
        assert isinstance(git, GitStep)
        assert git.assets == ("docs/CHANGES.md", "README.md")
        assert github.name == "github"

    @pytest.mark.parametrize(
        ("step", "message"),
        [
            ({"name": "x"}, "requires kind"),
            ({"kind": "npm"}, "unknown step kind"),
            ({"kind": "changelog", "phases": ["publish"]}, "do not support the publish phase"),
            ({"kind": "git", "phases": ["deploy"]}, "unknown phase"),
            ({"kind": "git", "phases": []}, "must not be empty"),
            ({"kind": "exec"}, "at least one command"),
            ({"kind": "exec", "prepare_cmd": "x", "phases": ["publish"]}, "no command for phase"),
            ({"kind": "exec", "prepare_cmd": "echo {{vresion}}"}, "unknown template placeholder"),
            ({"kind": "container"}, "require image"),
            ({"kind": "container", "image": "a", "tags": []}, "non-empty list"),
            ({"kind": "changelog", "path": "../CHANGELOG.md"}, "inside the repo"),
            ({"kind": "git", "message": "{{#if channel}}x"}, "missing {{/if}}"),
            ({"kind": "github", "assets": "a.zip"}, "list of strings"),
        ],
    )
    def test_invalid_step(self, step: dict[str, object], message: str) -> None:
        assert message in _err({"steps": [step]})

    def test_duplicate_names(self) -> None:
        message = _err({"steps": [{"kind": "exec", "verify_cmd": "a"}, {"kind": "exec", "verify_cmd": "b"}]})
        assert "duplicate step name: exec" in message

    def test_repeated_kind_with_distinct_names(self) -> None:
        config = _ok(
            {
                "steps": [
                    {"kind": "exec", "name": "lint", "verify_cmd": "ruff check"},
                    {"kind": "exec", "name": "test", "verify_cmd": "pytest"},
                ]
            }
        )
        assert [s.name for s in config.steps] == ["lint", "test"]


class TestTopLevel:
    def test_tag_format(self) -> None:
        config = _ok({"tag_format": "release-{{version}}"})
        assert config.tag_format.format(Version(2, 0, 0)) == "release-2.0.0"
        assert "exactly once" in _err({"tag_format": "release"})

    def test_timeout(self) -> None:
        assert _ok({"timeout_seconds": 12.5}).timeout_seconds == 12.5
        assert "positive" in _err({"timeout_seconds": 0})
        assert "positive" in _err({"timeout_seconds": True})

    def test_repository_url_trailing_slash(self) -> None:
        config = _ok({"repository_url": "https://github.com/acme/tool/"})
        assert config.repository_url == "https://github.com/acme/tool"

    def test_load_from_file(self, tmp_path: Path) -> None:
        (tmp_path / ".semrel.toml").write_text(
            '[[branches]]\nname = "main"\n\n[[steps]]\nkind = "git"\npush = false\n',
            encoding="utf-8",
        )
        result = load_release_config(tmp_path)
        assert isinstance(result, Ok)
        assert result.value.branches == (BranchRule("main"),)
        step = result.value.steps[0]
        assert isinstance(step, GitStep)
        assert step.push is False
        assert result.value.path == tmp_path / ".semrel.toml"

    def test_load_reports_toml_errors_as_config_errors(self, tmp_path: Path) -> None:
        (tmp_path / ".semrel.toml").write_text("steps = [", encoding="utf-8")
        result = load_release_config(tmp_path)
        assert isinstance(result, Err)
        assert result.error.kind == "config_error"
