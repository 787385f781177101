"""Git repository abstraction.

Thin wrapper over the git CLI covering what a release needs: branch and tag
lookup, commit log, and the stage/commit/tag/push sequence. All operations
return Result types.

Usage:
    repo = Repository(Path("."))
    match repo.log(since="v1.2.3"):
        case Ok(entries):
            for entry in entries:
                print(entry.sha, entry.message)
        case Err(e):
            print(f"git failed: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from semrel.core.result import Err, Ok, Result
from semrel.platform.process import ProcessError
from semrel.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

# Separators unlikely to appear in commit messages.
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"

__all__ = ["GitError", "LogEntry", "Repository"]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class LogEntry:
    sha: str
    authored_at: str
    message: str


class Repository:
    """Git repository at ``path``.

    ``timeout`` overrides the default bound for local commands; network
    commands (push, fetch) always use the longer network bound unless a
    larger timeout is given.
    """

    def __init__(self, path: Path, *, timeout: float | None = None) -> None:
        self.path = path
        self.timeout = timeout

    def exists(self) -> bool:
        """Check if this is a git work tree (.git may be a dir or a file)."""
        return (self.path / ".git").exists()

    def current_branch(self) -> str | None:
        """Current branch name, None on detached HEAD or error."""
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"])
        match result:
            case Ok(stdout):
                branch = stdout.strip()
                return None if branch in ("", "HEAD") else branch
            case Err(_):
                return None

    def head_sha(self) -> Result[str, GitError]:
        return self._simple(["rev-parse", "HEAD"], "rev-parse HEAD")

    def tags(self, *, merged: bool = False) -> Result[list[str], GitError]:
        """List tags; with ``merged`` only those reachable from HEAD."""
        args = ["tag", "--list"]
        if merged:
            args += ["--merged", "HEAD"]
        result = self._simple(args, "tag --list")
        if isinstance(result, Err):
            return result
        return Ok([ln.strip() for ln in result.value.splitlines() if ln.strip()])

    def log(self, *, since: str | None = None) -> Result[list[LogEntry], GitError]:
        """Commits reachable from HEAD and not from ``since``, oldest first."""
        rev = f"{since}..HEAD" if since else "HEAD"
        fmt = f"--format=%H{_FIELD_SEP}%aI{_FIELD_SEP}%B{_RECORD_SEP}"
        result = self._simple(["log", "--reverse", fmt, rev], "log")
        if isinstance(result, Err):
            return result
        return Ok(self._parse_log(result.value))

    def add(self, paths: list[str]) -> Result[None, GitError]:
        result = self._simple(["add", "--", *paths], "add")
        return Ok(None) if isinstance(result, Ok) else result

    def has_staged_changes(self) -> bool:
        # `diff --cached --quiet` exits 1 when something is staged.
        result = self._run(["diff", "--cached", "--quiet"])
        return isinstance(result, Err) and result.error.returncode == 1

    def commit(self, message: str) -> Result[None, GitError]:
        result = self._simple(["commit", "-m", message], "commit")
        if isinstance(result, Err):
            hint = result.error.message or "Configure git user.name/user.email, then retry."
            return Err(GitError(command="commit", message=hint, returncode=result.error.returncode))
        return Ok(None)

    def tag_annotated(self, tag: str, message: str) -> Result[None, GitError]:
        result = self._simple(["tag", "-a", tag, "-m", message], "tag -a")
        return Ok(None) if isinstance(result, Ok) else result

    def push(self, remote: str, refs: list[str]) -> Result[None, GitError]:
        result = self._simple(["push", remote, *refs], "push")
        return Ok(None) if isinstance(result, Ok) else result

    def _simple(self, args: list[str], command: str) -> Result[str, GitError]:
        result = self._run(args)
        match result:
            case Err(e):
                return Err(
                    GitError(
                        command=command,
                        message=e.stderr.strip() or e.stdout.strip() or f"git {command} failed",
                        returncode=e.returncode,
                    )
                )
            case Ok(stdout):
                return Ok(stdout)

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        if command in {"fetch", "pull", "push", "clone"}:
            timeout = max(_GIT_NETWORK_TIMEOUT_SECONDS, self.timeout or 0.0)
        else:
            timeout = self.timeout or _GIT_TIMEOUT_SECONDS
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)

    def _parse_log(self, output: str) -> list[LogEntry]:
        entries: list[LogEntry] = []
        for record in output.split(_RECORD_SEP):
            record = record.strip("\n")
            if not record.strip():
                continue
            parts = record.split(_FIELD_SEP, 2)
            if len(parts) != 3:
                continue
            sha, authored_at, message = parts
            entries.append(
                LogEntry(sha=sha.strip(), authored_at=authored_at.strip(), message=message.strip())
            )
        return entries
