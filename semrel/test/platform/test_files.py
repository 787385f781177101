from __future__ import annotations

from pathlib import Path

from semrel.platform.files import atomic_write_text, read_text_or_empty


def test_atomic_write_creates_parents_and_leaves_no_temp(tmp_path: Path) -> None:
    target = tmp_path / "docs" / "CHANGELOG.md"
    atomic_write_text(target, "# Changelog\n")
    assert target.read_text(encoding="utf-8") == "# Changelog\n"
    assert [p.name for p in target.parent.iterdir()] == ["CHANGELOG.md"]


def test_atomic_write_replaces(tmp_path: Path) -> None:
    target = tmp_path / "a.txt"
    target.write_text("old", encoding="utf-8")
    atomic_write_text(target, "new")
    assert target.read_text(encoding="utf-8") == "new"


def test_read_text_or_empty(tmp_path: Path) -> None:
    assert read_text_or_empty(tmp_path / "missing.md") == ""
    (tmp_path / "x.md").write_text("x", encoding="utf-8")
    assert read_text_or_empty(tmp_path / "x.md") == "x"
