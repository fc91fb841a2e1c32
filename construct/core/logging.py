"""Logging configuration and setup for Construct.

The root logger writes to the console and to `construct.log`. Each project
additionally gets its own rotating file so the commands run on its behalf
can be audited without grepping the global log.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

_DATEFMT = "%Y-%m-%d %H:%M:%S"
_ROOT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_PROJECT_LOGGER_PREFIX = "construct.project"


def _rotating_handler(path: Path, fmt: str, max_size_mb: int, backup_count: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(fmt, datefmt=_DATEFMT))
    return handler


def setup_logging(
    level: str = "INFO",
    directory: str | Path = "logs",
    max_size_mb: int = 10,
    backup_count: int = 5,
) -> None:
    """Configure the root logger with console and rotating file output.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        directory: Directory for log files, created if missing.
        max_size_mb: Size in MB at which a log file is rotated.
        backup_count: Number of rotated files to keep.
    """
    log_dir = Path(directory)
    log_dir.mkdir(parents=True, exist_ok=True)
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown logging level: {level}")

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(numeric_level)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(_ROOT_FORMAT, datefmt=_DATEFMT))
    root_logger.addHandler(console_handler)
    root_logger.addHandler(_rotating_handler(log_dir / "construct.log", _ROOT_FORMAT, max_size_mb, backup_count))

    logging.info(f"Logging initialized: level={level}, directory={log_dir}")


def setup_project_logger(
    project_name: str,
    directory: str | Path = "logs",
    max_size_mb: int = 10,
    backup_count: int = 5,
) -> logging.Logger:
    """Attach a per-project log file to the project's logger.

    Records still propagate to the root logger, so they appear on the console
    and in `construct.log` as well as in `<project_name>.log`. Calling this
    again for the same project returns the already configured logger.

    Returns:
        The project's logger.
    """
    project_logger = get_project_logger(project_name)
    if project_logger.handlers:
        return project_logger

    log_dir = Path(directory)
    log_dir.mkdir(parents=True, exist_ok=True)
    fmt = f"%(asctime)s - [{project_name}] %(levelname)s - %(message)s"
    project_logger.addHandler(_rotating_handler(log_dir / f"{project_name}.log", fmt, max_size_mb, backup_count))
    return project_logger


def get_project_logger(project_name: str) -> logging.Logger:
    return logging.getLogger(f"{_PROJECT_LOGGER_PREFIX}.{project_name}")
