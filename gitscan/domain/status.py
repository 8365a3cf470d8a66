"""
Status classification for gitscan.

Turns the git facts of one working copy into a coarse tag:

- novel: something a human should look at (uncommitted or untracked
  files, unpushed commits, or no upstream branch at all)
- boring: clean and in sync with its upstream

Classification is pure so it can be tested without spawning git.
"""

from enum import Enum
from typing import TYPE_CHECKING, Union

from ..exit_codes import UsageError

if TYPE_CHECKING:
    from .repository import GitStatus


class RepoStatus(Enum):
    """Status tag of a discovered repository."""
    NOVEL = "novel"
    BORING = "boring"


class StatusFilter(Enum):
    """Client-side filter applied to discovered repositories."""
    ALL = "all"
    NOVEL = "novel"
    BORING = "boring"

    @classmethod
    def parse(cls, value: Union[str, 'StatusFilter']) -> 'StatusFilter':
        """Parse a filter name, raising UsageError for unknown values."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ', '.join(f.value for f in cls)
            raise UsageError(f"Unknown status filter '{value}' (expected one of: {choices})") from None


def classify(facts: 'GitStatus') -> RepoStatus:
    """
    Classify repository facts as novel or boring.

    Being behind the upstream alone does not make a repository novel;
    there is nothing local to review.
    """
    if facts.dirty_files > 0:
        return RepoStatus.NOVEL
    if not facts.has_upstream:
        return RepoStatus.NOVEL
    if facts.ahead > 0:
        return RepoStatus.NOVEL
    return RepoStatus.BORING


def matches_status(tag: Union[str, RepoStatus], status_filter: Union[str, StatusFilter]) -> bool:
    """
    Check a status tag against a filter.

    'all' matches every tag; 'novel' and 'boring' match only themselves.

    Raises:
        UsageError: if the filter is not one of all/novel/boring
    """
    status_filter = StatusFilter.parse(status_filter)
    if status_filter is StatusFilter.ALL:
        return True
    tag_value = tag.value if isinstance(tag, RepoStatus) else str(tag)
    return tag_value == status_filter.value
