"""Platform abstraction layer."""

from .files import atomic_write_text, read_text_or_empty
from .process import ProcessError, run

__all__ = [
    "ProcessError",
    "atomic_write_text",
    "read_text_or_empty",
    "run",
]
