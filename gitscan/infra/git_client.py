"""
Git client infrastructure for gitscan.

Provides a clean abstraction over git command execution.
All git reads go through this client, making them:
- Easy to mock for testing
- Consistent in error handling
- Isolated from classification logic
"""

import os
import subprocess
from typing import Optional, Tuple
import logging

from ..domain.repository import GitStatus

logger = logging.getLogger(__name__)

GIT_MARKER = ".git"


class GitClient:
    """
    Abstraction over git commands.

    Provides the handful of read-only queries the scanner needs,
    returning plain fact structures.

    Example:
        client = GitClient()
        facts = client.status("/path/to/repo")
        if facts.clean:
            print("Repository is clean")
    """

    def __init__(self, timeout: int = 30, git_binary: str = "git"):
        """
        Initialize GitClient.

        Args:
            timeout: Command timeout in seconds (default: 30)
            git_binary: Name or path of the git executable
        """
        self.timeout = timeout
        self.git_binary = git_binary

    def _run(self, args: list, cwd: str) -> Tuple[Optional[str], int]:
        """
        Run a git command.

        Args:
            args: Arguments after the git executable
            cwd: Working directory

        Returns:
            Tuple of (stdout, returncode)
        """
        cmd = [self.git_binary] + args
        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired:
            logger.warning(f"Git command timed out in {cwd}: {' '.join(cmd)}")
            return None, -1
        except OSError as e:
            logger.error(f"Git command failed in {cwd}: {' '.join(cmd)} - {e}")
            return None, -1

        if result.returncode != 0 and result.stderr:
            logger.debug(f"{' '.join(cmd)} in {cwd}: {result.stderr.strip()}")

        # Leading whitespace is significant in porcelain output
        return result.stdout.rstrip('\n') if result.stdout else None, result.returncode

    def is_git_repo(self, path: str) -> bool:
        """Check if path holds a git marker (a .git directory or file)."""
        return os.path.exists(os.path.join(path, GIT_MARKER))

    def status(self, path: str) -> GitStatus:
        """
        Get repository status facts.

        Args:
            path: Path to git repository

        Returns:
            GitStatus with branch, change counts and upstream information
        """
        branch = "HEAD"
        output, code = self._run(["rev-parse", "--abbrev-ref", "HEAD"], cwd=path)
        if code == 0 and output:
            branch = output.strip()

        staged = modified = untracked = 0
        output, code = self._run(["status", "--porcelain"], cwd=path)
        if code == 0 and output:
            for line in output.split('\n'):
                if len(line) < 2:
                    continue
                if line.startswith('??'):
                    untracked += 1
                    continue
                if line[0] in 'MADRCU':
                    staged += 1
                if line[1] in 'MADRCU':
                    modified += 1

        ahead = behind = 0
        output, code = self._run(["rev-parse", "--abbrev-ref", "@{upstream}"], cwd=path)
        has_upstream = bool(code == 0 and output)

        if has_upstream:
            output, code = self._run(
                ["rev-list", "--left-right", "--count", "HEAD...@{upstream}"], cwd=path
            )
            if code == 0 and output:
                parts = output.strip().split()
                if len(parts) == 2:
                    try:
                        ahead = int(parts[0])
                        behind = int(parts[1])
                    except ValueError:
                        pass

        return GitStatus(
            branch=branch,
            ahead=ahead,
            behind=behind,
            has_upstream=has_upstream,
            staged_files=staged,
            modified_files=modified,
            untracked_files=untracked,
        )
