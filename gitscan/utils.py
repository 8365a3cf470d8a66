"""
Shared filesystem helpers for gitscan.
"""
import os
from pathlib import Path
from typing import Iterable, List, Optional

from .exit_codes import UsageError


def to_absolute_paths(paths: Iterable[str], cwd: Optional[str] = None) -> List[str]:
    """
    Absolutize and normalize user-supplied paths.

    Args:
        paths: Paths as given on the command line (may use ~)
        cwd: Base for relative paths (default: current directory)

    Returns:
        List of absolute, normalized paths in the original order
    """
    base = cwd or os.getcwd()
    result = []
    for path in paths:
        expanded = os.path.expanduser(path)
        result.append(os.path.normpath(os.path.join(base, expanded)))
    return result


def validate_exists(paths: Iterable[str]) -> None:
    """Raise UsageError unless every path is an existing directory."""
    for path in paths:
        if not os.path.exists(path):
            raise UsageError(f"Path does not exist: {path}")
        if not os.path.isdir(path):
            raise UsageError(f"Path is not a directory: {path}")


def is_within(path: str, parent: str) -> bool:
    """True if path is parent or lies underneath it."""
    path = os.path.normpath(path)
    parent = os.path.normpath(parent)
    if path == parent:
        return True
    return path.startswith(parent.rstrip(os.sep) + os.sep)


def find_first_parent(path: str, roots: Iterable[str]) -> Optional[str]:
    """
    Return the first root (in the given order) that contains path.

    Args:
        path: Absolute path of a repository
        roots: Search roots, already absolutized

    Returns:
        The matching root, or None if no root contains path
    """
    for root in roots:
        if is_within(path, root):
            return root
    return None


def make_path_relative(path: str, root: str) -> str:
    """Path of `path` relative to `root`; '.' when they are the same."""
    return os.path.relpath(os.path.normpath(path), os.path.normpath(root))


def real_path(path: str) -> str:
    """Resolve symlinks, used as the identity of a visited directory."""
    return str(Path(path).resolve())
