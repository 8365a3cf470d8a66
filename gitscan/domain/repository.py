"""
Repository domain objects for gitscan.

RepositoryHandle is an immutable snapshot of one discovered working copy.
Its status is computed once during the scan and never refreshed.
"""

from dataclasses import dataclass, field
from typing import Dict, Any
from pathlib import Path

from .status import RepoStatus


@dataclass(frozen=True)
class GitStatus:
    """Git state facts for one working copy."""
    branch: str = "HEAD"
    ahead: int = 0
    behind: int = 0
    has_upstream: bool = False
    staged_files: int = 0
    modified_files: int = 0
    untracked_files: int = 0

    @property
    def dirty_files(self) -> int:
        """Staged, modified and untracked entries combined."""
        return self.staged_files + self.modified_files + self.untracked_files

    @property
    def clean(self) -> bool:
        return self.dirty_files == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'branch': self.branch,
            'clean': self.clean,
            'ahead': self.ahead,
            'behind': self.behind,
            'has_upstream': self.has_upstream,
            'staged_files': self.staged_files,
            'modified_files': self.modified_files,
            'untracked_files': self.untracked_files,
        }


@dataclass(frozen=True)
class RepositoryHandle:
    """
    One discovered git working copy.

    Attributes:
        path: Absolute path of the directory holding the git marker
        status: Classification computed at discovery time
        facts: Git facts the status was computed from
        root: Search root whose traversal found this repository
    """
    path: str
    status: RepoStatus
    facts: GitStatus = field(default_factory=GitStatus)
    root: str = ""

    @property
    def name(self) -> str:
        return Path(self.path).name

    def to_dict(self) -> Dict[str, Any]:
        return {
            'path': self.path,
            'name': self.name,
            'status': self.status.value,
            'root': self.root,
            'git': self.facts.to_dict(),
        }
