"""Subprocess execution with Result-based error handling.

Every external command a release touches (git, docker, gh, user-supplied
exec commands) goes through :func:`run`, which bounds the call with a
timeout and converts failures into :class:`ProcessError` values:

    result = run(["git", "tag", "--list"], cwd=repo_root, timeout=30.0)
    match result:
        case Ok(stdout):
            tags = stdout.splitlines()
        case Err(error):
            console.error(str(error))
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path

import structlog

from semrel.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run"]

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that failed to start, timed out or exited non-zero (returncode -1 for the first two)."""

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        shown = " ".join(self.command[:3]) + (" ..." if len(self.command) > 3 else "")
        return f"{shown} failed (exit {self.returncode})"

    @property
    def detail(self) -> str:
        """Best available diagnostic text."""
        return self.stderr.strip() or self.stdout.strip() or str(self)


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Run ``cmd`` (no shell) in ``cwd`` and return its stdout.

    ``env`` replaces the child environment when given. A command that cannot
    be started or outlives ``timeout`` fails with returncode -1.

    The child runs in its own session: a terminal Ctrl-C reaches semrel only,
    which decides whether the run stops. An in-flight push is never cut short.
    """
    argv = tuple(cmd)
    log.debug("process.run", command=cmd, cwd=str(cwd), timeout=timeout)
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
            start_new_session=True,
        )
    except subprocess.TimeoutExpired as e:
        partial = e.stdout if isinstance(e.stdout, str) else ""
        return Err(ProcessError(argv, -1, partial, f"Command timed out after {timeout}s"))
    except OSError as e:
        return Err(ProcessError(argv, -1, "", str(e)))

    if proc.returncode != 0:
        log.debug("process.failed", command=cmd, returncode=proc.returncode)
        return Err(ProcessError(argv, proc.returncode, proc.stdout, proc.stderr))
    return Ok(proc.stdout)
