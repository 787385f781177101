"""Configuration file discovery and TOML parsing.

Release configuration is read from, in order:
1. an explicit path (``--config``)
2. ``.semrel.toml`` in the repository root
3. the ``[tool.semrel]`` table of ``pyproject.toml``

When none exists, callers fall back to built-in defaults.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_table

__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "ConfigSource",
    "find_config",
    "parse_toml",
]

CONFIG_FILENAME = ".semrel.toml"
PYPROJECT_FILENAME = "pyproject.toml"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ConfigSource:
    """A located configuration table. ``path`` is None for built-in defaults."""

    data: StrDict
    path: Path | None


def parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and syntax errors."""
    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def find_config(repo_root: Path, explicit: Path | None = None) -> Result[ConfigSource, ConfigError]:
    """Locate and parse release configuration for ``repo_root``."""
    if explicit is not None:
        parsed = parse_toml(explicit)
        if isinstance(parsed, Err):
            return parsed
        return Ok(ConfigSource(data=parsed.value, path=explicit))

    dedicated = repo_root / CONFIG_FILENAME
    if dedicated.is_file():
        parsed = parse_toml(dedicated)
        if isinstance(parsed, Err):
            return parsed
        return Ok(ConfigSource(data=parsed.value, path=dedicated))

    pyproject = repo_root / PYPROJECT_FILENAME
    if pyproject.is_file():
        parsed = parse_toml(pyproject)
        if isinstance(parsed, Err):
            return parsed
        tool = get_table(parsed.value, "tool") or {}
        table = get_table(tool, "semrel")
        if table is not None:
            return Ok(ConfigSource(data=table, path=pyproject))

    return Ok(ConfigSource(data={}, path=None))
