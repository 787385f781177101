from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from semrel.core.errors import ErrorCode
from semrel.core.result import Err
from semrel.output.console import ConsoleProtocol, RichConsole
from semrel.output.report import print_release_error
from semrel.services.release.config import ReleaseConfig, load_release_config

REPO_ENV = "SEMREL_REPO"


@dataclass(frozen=True, slots=True)
class CLIContext:
    repo_root: Path
    config: ReleaseConfig
    console: ConsoleProtocol


def detect_repo_root() -> Path | None:
    env = os.environ.get(REPO_ENV)
    if env:
        p = Path(env).expanduser().resolve()
        return p if p.is_dir() else None

    cwd = Path.cwd().resolve()
    for parent in (cwd, *cwd.parents):
        if (parent / ".git").exists():
            return parent
    return None


def build_context(*, config_path: Path | None = None) -> CLIContext:
    console = RichConsole()
    root = detect_repo_root()
    if root is None:
        typer.echo("error: not inside a git repository (use --repo)", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    config = load_release_config(root, config_path)
    if isinstance(config, Err):
        print_release_error(config.error, console)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(repo_root=root, config=config.value, console=console)
