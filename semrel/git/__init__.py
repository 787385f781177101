"""Git operations used by release steps and history lookup."""

from semrel.git.repository import GitError, LogEntry, Repository

__all__ = ["GitError", "LogEntry", "Repository"]
