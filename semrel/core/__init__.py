"""Core types shared across semrel."""

from .config import ConfigError, ConfigSource, find_config, parse_toml
from .errors import ErrorCode
from .result import Err, Ok, Result

__all__ = [
    "ConfigError",
    "ConfigSource",
    "ErrorCode",
    "Err",
    "Ok",
    "Result",
    "find_config",
    "parse_toml",
]
