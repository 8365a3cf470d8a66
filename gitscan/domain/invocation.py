"""
Invocation result domain objects for gitscan.

InvocationOutcome records what happened when the user's command ran in
one repository; RunResult folds all outcomes of a run into one exit code.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Iterable, List, Optional

from ..exit_codes import SUCCESS, COMMAND_FAILED
from .repository import RepositoryHandle


@dataclass(frozen=True)
class InvocationOutcome:
    """Result of running the command inside one repository."""
    repository: RepositoryHandle
    exit_code: int
    relative_path: str = "."
    toplevel: str = ""
    timed_out: bool = False
    error: Optional[str] = None  # set when the child could not be launched

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'relative_path': self.relative_path,
            'toplevel': self.toplevel,
            'exit_code': self.exit_code,
            'repository': self.repository.to_dict(),
        }
        if self.timed_out:
            result['timed_out'] = True
        if self.error:
            result['error'] = self.error
        return result


@dataclass
class RunResult:
    """
    Aggregate of a foreach run.

    exit_code is SUCCESS only if every invocation succeeded, otherwise
    the COMMAND_FAILED sentinel regardless of which or how many failed.
    """
    exit_code: int = SUCCESS
    outcomes: List[InvocationOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def failures(self) -> List[InvocationOutcome]:
        return [o for o in self.outcomes if not o.success]

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def succeeded(self) -> int:
        return self.total - self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': 'summary',
            'exit_code': self.exit_code,
            'total': self.total,
            'succeeded': self.succeeded,
            'failed': self.failed,
            'failures': [o.to_dict() for o in self.failures],
        }


def aggregate(outcomes: Iterable[InvocationOutcome]) -> RunResult:
    """Fold per-repository outcomes into a RunResult."""
    collected = list(outcomes)
    exit_code = SUCCESS if all(o.success for o in collected) else COMMAND_FAILED
    return RunResult(exit_code=exit_code, outcomes=collected)
