"""
Domain layer for gitscan.

Contains pure domain objects with no I/O or side effects:
- GitStatus: Git facts for one working copy
- RepositoryHandle: A discovered, classified working copy
- InvocationOutcome / RunResult: Results of a foreach run

These objects are immutable where possible and provide
serialization methods for JSON output.
"""

from .status import RepoStatus, StatusFilter, classify, matches_status
from .repository import GitStatus, RepositoryHandle
from .invocation import InvocationOutcome, RunResult, aggregate

__all__ = [
    'RepoStatus',
    'StatusFilter',
    'classify',
    'matches_status',
    'GitStatus',
    'RepositoryHandle',
    'InvocationOutcome',
    'RunResult',
    'aggregate',
]
