"""Configuration loading.

Reads the YAML config file, loads a sibling `.env` into the environment,
expands `${VAR}` references and validates the result against `Config`.
"""

import os
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from construct.core.config.models import Config

_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _walk_strings(obj: Any, visit: Callable[[str], Any]) -> Any:
    """Rebuild nested dicts and lists with `visit` applied to every string."""
    if isinstance(obj, dict):
        return {key: _walk_strings(value, visit) for key, value in obj.items()}
    if isinstance(obj, list):
        return [_walk_strings(item, visit) for item in obj]
    if isinstance(obj, str):
        return visit(obj)
    return obj


def expand_env_vars(value: str) -> str:
    """Replace `${VAR}` patterns with values from the environment.

    Unknown variables are left as written so they can be reported later.

    Examples:
        >>> os.environ['API_KEY'] = 'secret123'
        >>> expand_env_vars('Token: ${API_KEY}')
        'Token: secret123'
    """
    return _VAR_PATTERN.sub(lambda match: os.environ.get(match.group(1), match.group(0)), value)


def expand_env_vars_recursive(obj: Any) -> Any:
    """Expand environment variables in every string of a nested structure."""
    return _walk_strings(obj, expand_env_vars)


def check_unexpanded_vars(data: Any, source: str) -> None:
    """Fail when `${VAR}` patterns survived expansion.

    Args:
        data: Expanded configuration data.
        source: Label used in the error message, usually the file path.

    Raises:
        ValueError: Naming every unresolved variable.
    """
    unresolved: set[str] = set()

    def collect(value: str) -> str:
        unresolved.update(f"${{{name}}}" for name in _VAR_PATTERN.findall(value))
        return value

    _walk_strings(data, collect)
    if unresolved:
        raise ValueError(
            f"Unresolved environment variable(s) in {source}: {', '.join(sorted(unresolved))}. "
            f"Set these variables or remove the ${{VAR}} references."
        )


def load_config(path: Path | str) -> Config:
    """Load configuration from a YAML file with environment variable expansion.

    A `.env` file next to the config file is loaded first so its values are
    available to ${VAR} expansion. Relative `system.projects_dir` and
    `system.data_dir` are resolved against the config file's directory.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Parsed Config object with all ${VAR} patterns expanded.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        yaml.YAMLError: If the YAML is malformed.
        ValueError: If a ${VAR} reference cannot be resolved.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    env_file = config_path.parent / ".env"
    if env_file.exists():
        load_dotenv(env_file)

    with config_path.open() as f:
        data: dict[str, Any] = yaml.safe_load(f) or {}

    # Expand environment variables in all string values
    data = expand_env_vars_recursive(data)
    check_unexpanded_vars(data, source=str(config_path))

    config = Config(**data)

    base_dir = config_path.parent.resolve()
    for attr in ("projects_dir", "data_dir"):
        value: Path = getattr(config.system, attr)
        if not value.is_absolute():
            setattr(config.system, attr, (base_dir / value).resolve())

    return config
