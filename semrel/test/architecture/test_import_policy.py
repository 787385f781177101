"""Layering rules: external processes and Rich each live behind one module."""

from __future__ import annotations

import ast
from pathlib import Path

import pytest


def _package_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _source_files() -> list[Path]:
    root = _package_root()
    files: list[Path] = []
    for path in sorted(root.rglob("*.py")):
        rel = path.relative_to(root)
        if rel.parts[0] == "test" or "__pycache__" in rel.parts:
            continue
        files.append(path)
    return files


def _imports(path: Path) -> list[tuple[str, int]]:
    tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
    found: list[tuple[str, int]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            found.extend((alias.name, node.lineno) for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.level == 0 and node.module:
            found.append((node.module, node.lineno))
    return found


def _offenders(top: str, allowed: set[str]) -> list[str]:
    root = _package_root()
    out: list[str] = []
    for path in _source_files():
        rel = path.relative_to(root).as_posix()
        if rel in allowed:
            continue
        for module, line in _imports(path):
            if module == top or module.startswith(top + "."):
                out.append(f"{rel}:{line}: imports {module}")
    return out


def test_subprocess_only_in_process_module() -> None:
    offenders = _offenders("subprocess", {"platform/process.py"})
    assert not offenders, "subprocess used outside platform/process.py:\n" + "\n".join(offenders)


def test_rich_only_in_console_module() -> None:
    offenders = _offenders("rich", {"output/console.py"})
    assert not offenders, "rich used outside output/console.py:\n" + "\n".join(offenders)


@pytest.mark.parametrize("layer", ["core", "platform", "git"])
def test_lower_layers_do_not_import_services(layer: str) -> None:
    root = _package_root()
    offenders = [
        f"{path.relative_to(root).as_posix()}:{line}: imports {module}"
        for path in _source_files()
        if path.relative_to(root).parts[0] == layer
        for module, line in _imports(path)
        if module.startswith(("semrel.services", "semrel.cli"))
    ]
    assert not offenders, f"{layer} depends on upper layers:\n" + "\n".join(offenders)
