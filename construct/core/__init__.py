"""Core functionality for Construct: configuration, logging, errors, and paths."""

from construct.core.config import Config, load_config
from construct.core.errors import ConstructError

__all__ = [
    "Config",
    "ConstructError",
    "load_config",
]
