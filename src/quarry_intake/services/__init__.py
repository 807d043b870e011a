"""Import session services: staging, validation, lock checks, commit coordination."""

from .coordinator import CommitCoordinator, StepResult
from .period_lock import PeriodLockChecker
from .staging import StagingStore
from .validation import register_rule, validate
from .workbook import DomainOutcome, RunResult, run_workbook

__all__ = [
    "CommitCoordinator",
    "DomainOutcome",
    "PeriodLockChecker",
    "RunResult",
    "StagingStore",
    "StepResult",
    "register_rule",
    "run_workbook",
    "validate",
]
