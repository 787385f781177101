"""semrel: release orchestration from conventional commit history."""

__version__ = "0.1.0"
