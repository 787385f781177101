from __future__ import annotations

import pytest

from semrel.core.result import Err, Ok
from semrel.services.release.channels import Channel
from semrel.services.release.context import CommitRange, ReleaseContext
from semrel.services.release.semver import Version
from semrel.services.release.template import (
    Field,
    IfBlock,
    Template,
    Text,
    compile_template,
    compile_templates,
    render_all,
)


def _context(version: Version, channel: Channel, previous: str | None = "v1.2.3") -> ReleaseContext:
    return ReleaseContext(
        version=version,
        channel=channel,
        tag=f"v{version}",
        notes="## notes\n",
        commit_range=CommitRange(start=previous, end="abc123"),
    )


DEV_CONTEXT = _context(Version(1, 3, 0, "dev", 1), Channel("dev", "dev"))
STABLE_CONTEXT = _context(Version(1, 2, 4), Channel("master"))


def _compile(source: str) -> Template:
    result = compile_template(source)
    assert isinstance(result, Ok), result
    return result.value


class TestCompile:
    def test_tree_shape(self) -> None:
        template = _compile("v{{major}}{{#if channel}}-{{channel}}{{else}}{{/if}}")
        assert template.nodes == (
            Text("v"),
            Field("major"),
            IfBlock(name="channel", then=(Text("-"), Field("channel")), otherwise=()),
        )

    def test_whitespace_inside_braces(self) -> None:
        assert _compile("{{ version }}").nodes == (Field("version"),)

    @pytest.mark.parametrize(
        ("source", "message"),
        [
            ("{{nope}}", "unknown template placeholder"),
            ("{{#if nope}}x{{/if}}", "unknown template placeholder"),
            ("{{#if channel}}x", "missing {{/if}}"),
            ("x{{/if}}", "unexpected {{/if}}"),
            ("{{else}}", "unexpected {{else}}"),
            ("{{#if channel}}a{{else}}b{{else}}c{{/if}}", "unexpected {{else}}"),
            ("{{version", "unterminated"),
            ("{{version-1}}", "invalid template expression"),
        ],
    )
    def test_errors(self, source: str, message: str) -> None:
        result = compile_template(source)
        assert isinstance(result, Err)
        assert result.error.kind == "config_error"
        assert message in result.error.message

    def test_compile_templates_stops_at_first_error(self) -> None:
        assert isinstance(compile_templates(["{{version}}", "{{bad}}"]), Err)
        ok = compile_templates(["{{version}}", "{{tag}}"])
        assert isinstance(ok, Ok)
        assert len(ok.value) == 2


class TestRender:
    def test_container_tags_on_prerelease_context(self) -> None:
        templates = [_compile("{{version}}"), _compile("{{major}}-{{channel}}")]
        assert render_all(templates, DEV_CONTEXT.template_values()) == ["1.3.0-dev.1", "1-dev"]

    def test_conditional_selects_by_channel(self) -> None:
        template = _compile("{{#if channel}}{{channel}}{{else}}latest{{/if}}")
        assert template.render(DEV_CONTEXT.template_values()) == "dev"
        assert template.render(STABLE_CONTEXT.template_values()) == "latest"

    def test_nested_conditionals(self) -> None:
        template = _compile(
            "{{#if channel}}{{#if previous_tag}}after {{previous_tag}}{{else}}first{{/if}}{{/if}}"
        )
        assert template.render(DEV_CONTEXT.template_values()) == "after v1.2.3"
        first = _context(Version(0, 1, 0, "dev", 1), Channel("dev", "dev"), previous=None)
        assert template.render(first.template_values()) == "first"
        assert template.render(STABLE_CONTEXT.template_values()) == ""

    def test_deterministic(self) -> None:
        template = _compile("{{tag}} on {{branch}} ({{prerelease}})")
        values = DEV_CONTEXT.template_values()
        assert template.render(values) == template.render(values) == "v1.3.0-dev.1 on dev (dev.1)"

    def test_multiline_message(self) -> None:
        template = _compile("chore(release): {{version}} [skip ci]\n\n{{notes}}")
        assert template.render(STABLE_CONTEXT.template_values()) == (
            "chore(release): 1.2.4 [skip ci]\n\n## notes\n"
        )


def test_context_values() -> None:
    values = STABLE_CONTEXT.template_values()
    assert values["channel"] == ""
    assert values["prerelease"] == ""
    assert values["minor"] == "2"
    assert values["patch"] == "4"
    assert STABLE_CONTEXT.previous_tag == "v1.2.3"
    assert str(STABLE_CONTEXT.commit_range) == "v1.2.3..abc123"
    assert str(CommitRange(start=None, end="abc123")) == "abc123"
