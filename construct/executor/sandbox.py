"""Path confinement for project-scoped file access and command working directories."""

from pathlib import Path

from construct.core.paths import STATE_DIR


def resolve_sandboxed_path(project_root: Path, path: str) -> Path:
    """Resolve and validate that a relative path stays within a project.

    Rejects:
    - Absolute paths (starting with /)
    - Home directory expansion (~)
    - Path traversal (..)
    - Access to the .construct/ state directory

    Args:
        project_root: The project root directory (must be resolved/absolute).
        path: Relative path string to resolve.

    Returns:
        Resolved absolute Path within the project.

    Raises:
        ValueError: If the path attempts to escape the project or access protected dirs.
    """
    if Path(path).is_absolute():
        raise ValueError(f"Absolute paths not allowed. Use paths relative to the project root. Got: {path}")

    if ".." in Path(path).parts:
        raise ValueError(f"Path traversal (..) not allowed. Got: {path}")

    if path.startswith("~"):
        raise ValueError(f"Home directory expansion (~) not allowed. Got: {path}")

    if any(part == STATE_DIR.name for part in Path(path).parts):
        raise ValueError(f"Access to {STATE_DIR}/ is not allowed. This directory holds orchestrator state.")

    full_path = (project_root / path).resolve()

    # Symlinks may still point outside the project
    ensure_within_root(project_root, full_path)
    return full_path


def ensure_within_root(root: Path, path: Path) -> Path:
    """Check that `path` resolves to `root` or somewhere below it.

    Returns:
        The resolved path.

    Raises:
        ValueError: If the resolved path lies outside root.
    """
    resolved_root = root.resolve()
    resolved = path.resolve()
    try:
        resolved.relative_to(resolved_root)
    except ValueError:
        raise ValueError(f"Path resolves outside {resolved_root}: {resolved}") from None
    return resolved
