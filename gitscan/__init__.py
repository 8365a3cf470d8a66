"""
gitscan - Find nested git repositories and run commands across them.

Quick Start:
    from gitscan import RepositoryScanner, ForeachService

    # Discover and classify repositories
    for repo in RepositoryScanner().scan(["/home/me/src"]):
        print(repo.path, repo.status.value)

    # Run a command in every repository with local changes
    result = ForeachService().run(["/home/me/src"], "git status -s", "novel")
    print(result.exit_code)

Domain Objects:
    RepositoryHandle - A discovered working copy with its status
    InvocationOutcome - Exit code of one command in one repository
    RunResult - Aggregate of a whole run

Services:
    RepositoryScanner - Discovery and classification
    CommandExecutor - One command in one repository
    ForeachService - Scan, filter, execute, aggregate
"""

__version__ = "0.1.0"

from .domain import (
    GitStatus,
    RepoStatus,
    StatusFilter,
    RepositoryHandle,
    InvocationOutcome,
    RunResult,
    classify,
    matches_status,
    aggregate,
)

from .services import (
    RepositoryScanner,
    CommandExecutor,
    ForeachService,
)

from .config import load_config

__all__ = [
    "__version__",
    "GitStatus",
    "RepoStatus",
    "StatusFilter",
    "RepositoryHandle",
    "InvocationOutcome",
    "RunResult",
    "classify",
    "matches_status",
    "aggregate",
    "RepositoryScanner",
    "CommandExecutor",
    "ForeachService",
    "load_config",
]
