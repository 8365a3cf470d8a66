"""
Infrastructure layer for gitscan.

Contains abstractions for external systems:
- GitClient: Git command execution

These provide clean interfaces that can be mocked for testing.
"""

from .git_client import GitClient, GIT_MARKER

__all__ = [
    'GitClient',
    'GIT_MARKER',
]
