"""
Service layer for gitscan.

Contains the logic that orchestrates domain objects and infrastructure:
- RepositoryScanner: Discovery and classification of working copies
- CommandExecutor: One command in one repository
- ForeachService: Scan, filter, execute and aggregate

Services are the primary API for commands to use.
"""

from .scan_service import RepositoryScanner
from .foreach_service import CommandExecutor, ForeachService

__all__ = [
    'RepositoryScanner',
    'CommandExecutor',
    'ForeachService',
]
