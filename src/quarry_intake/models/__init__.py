"""Domain models for the quarry monthly import pipeline.

This package contains the value objects shared by the parser, staging
store, validation engine, period lock checker and commit coordinator.
"""

from .commit_batch import CommitBatch
from .error_record import ErrorRecord
from .lock_check import LockCheck
from .notification import Notification, Severity
from .period import Period, PeriodError
from .row_schema import DynamicBlock, Endpoints, FieldSpec, RowSchema
from .session_state import SessionState
from .staged_row import StagedRow
from .validation_issue import ValidationIssue

__all__ = [
    # Schema declaration
    "DynamicBlock",
    "Endpoints",
    "FieldSpec",
    "RowSchema",
    # Pipeline values
    "CommitBatch",
    "ErrorRecord",
    "LockCheck",
    "Notification",
    "Period",
    "PeriodError",
    "SessionState",
    "Severity",
    "StagedRow",
    "ValidationIssue",
]
