from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import structlog

from semrel.core.result import Err, Ok, Result
from semrel.services.release.errors import ReleaseError

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class RunLock:
    """Exclusive marker that a release run owns a channel."""

    path: Path

    def release(self) -> None:
        self.path.unlink(missing_ok=True)
        log.debug("lock.released", path=str(self.path))


def lock_path(repo_root: Path, channel_name: str) -> Path:
    git_dir = repo_root / ".git"
    base = git_dir if git_dir.is_dir() else repo_root
    return base / f"semrel-{channel_name}.lock"


def acquire_lock(repo_root: Path, channel_name: str) -> Result[RunLock, ReleaseError]:
    """Create the channel lock file, failing if another run holds it."""
    path = lock_path(repo_root, channel_name)
    try:
        fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
    except FileExistsError:
        return Err(
            ReleaseError(
                kind="locked",
                message=f"another release run holds the {channel_name} channel",
                hint=f"If no run is active, remove {path}",
            )
        )
    except OSError as e:
        return Err(
            ReleaseError(
                kind="locked",
                message=f"cannot create run lock: {e}",
                hint=str(path),
            )
        )

    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(f"{os.getpid()}\n")
    log.debug("lock.acquired", path=str(path))
    return Ok(RunLock(path=path))
