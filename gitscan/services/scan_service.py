"""
Repository discovery for gitscan.

Walks search roots and yields one classified RepositoryHandle per
independent git working copy.
"""

from typing import Generator, Iterable, Optional, Set
import logging
import os

from ..domain import RepositoryHandle, classify
from ..infra import GitClient, GIT_MARKER
from ..utils import real_path

logger = logging.getLogger(__name__)


class RepositoryScanner:
    """
    Depth-first scanner for nested git working copies.

    A directory holding a .git marker is reported and, unless
    include_nested is set, its subtree is not searched any further.
    The .git directory itself is never entered.

    Example:
        scanner = RepositoryScanner()
        for repo in scanner.scan(["/home/user/src"]):
            print(repo.path, repo.status.value)
    """

    def __init__(
        self,
        git_client: Optional[GitClient] = None,
        include_nested: bool = False,
        exclude_dirs: Optional[Iterable[str]] = None,
        follow_symlinks: bool = True
    ):
        """
        Initialize RepositoryScanner.

        Args:
            git_client: Git client used for status facts (creates default if None)
            include_nested: Also report repositories inside a matched repository
            exclude_dirs: Directory names never descended into
            follow_symlinks: Descend into symlinked directories
        """
        self.git = git_client or GitClient()
        self.include_nested = include_nested
        self.exclude_dirs = set(exclude_dirs or [])
        self.follow_symlinks = follow_symlinks

    def scan(self, roots: Iterable[str]) -> Generator[RepositoryHandle, None, None]:
        """
        Discover repositories under each root, in the order given.

        Args:
            roots: Absolute, existing search roots

        Yields:
            RepositoryHandle for every working copy found
        """
        # Shared across roots so overlapping roots and symlink cycles
        # never produce the same physical directory twice
        visited: Set[str] = set()

        for root in roots:
            logger.debug(f"Scanning {root}")
            yield from self._scan_dir(root, root, visited)

    def _scan_dir(
        self,
        path: str,
        root: str,
        visited: Set[str]
    ) -> Generator[RepositoryHandle, None, None]:
        identity = real_path(path)
        if identity in visited:
            logger.debug(f"Already visited {path} (-> {identity})")
            return
        visited.add(identity)

        if self.git.is_git_repo(path):
            yield self._create_handle(path, root)
            if not self.include_nested:
                return

        try:
            with os.scandir(path) as it:
                entries = sorted(it, key=lambda entry: entry.name)
        except OSError as e:
            logger.warning(f"Skipping unreadable directory {path}: {e.strerror or e}")
            return

        for entry in entries:
            if entry.name == GIT_MARKER or entry.name in self.exclude_dirs:
                continue
            try:
                if not entry.is_dir(follow_symlinks=self.follow_symlinks):
                    continue
            except OSError:
                continue

            yield from self._scan_dir(entry.path, root, visited)

    def _create_handle(self, path: str, root: str) -> RepositoryHandle:
        """Fetch status facts once and build the immutable handle."""
        facts = self.git.status(path)
        status = classify(facts)
        logger.debug(f"Found repository {path} ({status.value})")
        return RepositoryHandle(path=path, status=status, facts=facts, root=root)
