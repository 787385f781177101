"""Step template expansion.

Templates use a small mustache-like syntax:

    {{version}}                                  placeholder
    {{#if channel}}{{channel}}{{else}}latest{{/if}}   conditional

Templates are parsed once, when configuration is loaded, into a tree of
:class:`Text`, :class:`Field` and :class:`IfBlock` nodes. Rendering walks the
tree and is a pure function of the template and the placeholder values.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from semrel.core.result import Err, Ok, Result
from semrel.services.release.errors import ReleaseError, config_error

TEMPLATE_FIELDS = frozenset(
    {
        "version",
        "tag",
        "channel",
        "major",
        "minor",
        "patch",
        "prerelease",
        "branch",
        "notes",
        "previous_tag",
    }
)

_TOKEN_RE = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)
_NAME_RE = re.compile(r"^[a-z_]+$")
_IF_RE = re.compile(r"^#if\s+([a-z_]+)$")


@dataclass(frozen=True, slots=True)
class Text:
    value: str


@dataclass(frozen=True, slots=True)
class Field:
    name: str


@dataclass(frozen=True, slots=True)
class IfBlock:
    name: str
    then: tuple[Node, ...]
    otherwise: tuple[Node, ...] = ()


type Node = Text | Field | IfBlock


@dataclass(frozen=True, slots=True)
class Template:
    source: str
    nodes: tuple[Node, ...]

    def render(self, values: Mapping[str, str]) -> str:
        return _render_nodes(self.nodes, values)


def _render_nodes(nodes: Sequence[Node], values: Mapping[str, str]) -> str:
    out: list[str] = []
    for node in nodes:
        match node:
            case Text(value=value):
                out.append(value)
            case Field(name=name):
                out.append(values[name])
            case IfBlock(name=name, then=then, otherwise=otherwise):
                branch = then if values[name] else otherwise
                out.append(_render_nodes(branch, values))
    return "".join(out)


@dataclass(slots=True)
class _Frame:
    name: str | None
    then: list[Node]
    otherwise: list[Node] | None = None

    def append(self, node: Node) -> None:
        if self.otherwise is not None:
            self.otherwise.append(node)
        else:
            self.then.append(node)


def _field_name(name: str, source: str) -> Result[str, ReleaseError]:
    if name not in TEMPLATE_FIELDS:
        return Err(
            config_error(
                f"unknown template placeholder {{{{{name}}}}} in {source!r}",
                hint=f"Known placeholders: {', '.join(sorted(TEMPLATE_FIELDS))}",
            )
        )
    return Ok(name)


def _append_text(frame: _Frame, text: str, source: str) -> Result[None, ReleaseError]:
    if "{{" in text:
        return Err(config_error(f"unterminated '{{{{' in template {source!r}"))
    if text:
        frame.append(Text(text))
    return Ok(None)


def compile_template(source: str) -> Result[Template, ReleaseError]:
    stack: list[_Frame] = [_Frame(name=None, then=[])]
    pos = 0

    for m in _TOKEN_RE.finditer(source):
        appended = _append_text(stack[-1], source[pos : m.start()], source)
        if isinstance(appended, Err):
            return appended
        pos = m.end()

        token = m.group(1).strip()
        if_match = _IF_RE.match(token)
        if if_match is not None:
            name = _field_name(if_match.group(1), source)
            if isinstance(name, Err):
                return name
            stack.append(_Frame(name=name.value, then=[]))
        elif token == "else":
            frame = stack[-1]
            if frame.name is None or frame.otherwise is not None:
                return Err(config_error(f"unexpected {{{{else}}}} in template {source!r}"))
            frame.otherwise = []
        elif token == "/if":
            if len(stack) == 1:
                return Err(config_error(f"unexpected {{{{/if}}}} in template {source!r}"))
            frame = stack.pop()
            assert frame.name is not None
            stack[-1].append(
                IfBlock(
                    name=frame.name,
                    then=tuple(frame.then),
                    otherwise=tuple(frame.otherwise or ()),
                )
            )
        elif _NAME_RE.match(token):
            name = _field_name(token, source)
            if isinstance(name, Err):
                return name
            stack[-1].append(Field(name.value))
        else:
            return Err(config_error(f"invalid template expression {{{{{token}}}}} in {source!r}"))

    appended = _append_text(stack[-1], source[pos:], source)
    if isinstance(appended, Err):
        return appended

    if len(stack) != 1:
        return Err(config_error(f"missing {{{{/if}}}} in template {source!r}"))
    return Ok(Template(source=source, nodes=tuple(stack[0].then)))


def compile_templates(sources: Sequence[str]) -> Result[tuple[Template, ...], ReleaseError]:
    out: list[Template] = []
    for source in sources:
        compiled = compile_template(source)
        if isinstance(compiled, Err):
            return compiled
        out.append(compiled.value)
    return Ok(tuple(out))


def render_all(templates: Sequence[Template], values: Mapping[str, str]) -> list[str]:
    """Render each template independently, preserving order."""
    return [t.render(values) for t in templates]
