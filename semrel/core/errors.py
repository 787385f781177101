"""Process exit codes for the ``semrel`` CLI.

- 0: success, including runs that find no release to make
- 1: user error (invalid configuration, bad arguments, cancelled run)
- 2: environment error (not a git repository, git unusable, run lock held)
- 3: release error (a step failed, version consistency violated)
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    RELEASE_ERROR = 3
