"""Read-only access to the commit/tag history a release is computed from."""

from __future__ import annotations

from typing import Protocol

from semrel.core.result import Err, Ok, Result
from semrel.git.repository import GitError, Repository
from semrel.services.release.commits import Commit


class HistorySource(Protocol):
    def current_branch(self) -> str | None: ...

    def head_sha(self) -> Result[str, GitError]: ...

    def list_tags(self, *, merged_only: bool = False) -> Result[list[str], GitError]: ...

    def list_commits(self, *, since: str | None, branch: str) -> Result[list[Commit], GitError]: ...


class GitHistory:
    """HistorySource backed by a local git repository."""

    def __init__(self, repo: Repository, *, branch_override: str | None = None) -> None:
        self.repo = repo
        self.branch_override = branch_override

    def current_branch(self) -> str | None:
        if self.branch_override:
            return self.branch_override
        return self.repo.current_branch()

    def head_sha(self) -> Result[str, GitError]:
        result = self.repo.head_sha()
        if isinstance(result, Err):
            return result
        return Ok(result.value.strip())

    def list_tags(self, *, merged_only: bool = False) -> Result[list[str], GitError]:
        return self.repo.tags(merged=merged_only)

    def list_commits(self, *, since: str | None, branch: str) -> Result[list[Commit], GitError]:
        result = self.repo.log(since=since)
        if isinstance(result, Err):
            return result
        return Ok(
            [
                Commit(sha=e.sha, message=e.message, authored_at=e.authored_at, branch=branch)
                for e in result.value
            ]
        )
