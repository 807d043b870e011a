from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from ..api.client import BackendError
from ..config.loader import DEFAULT_EXTENSIONS, FAIL_OPEN
from ..excel.reader import Payload, SheetParseError, UnsupportedFileError, check_extension, parse_workbook
from ..logging.error_log import ErrorLogBuffer
from ..models.commit_batch import CommitBatch
from ..models.error_record import ErrorRecord
from ..models.lock_check import LockCheck
from ..models.notification import Notification, Severity
from ..models.period import Period
from ..models.row_schema import RowSchema
from ..models.session_state import SessionState
from ..models.validation_issue import ValidationIssue, join_messages
from .period_lock import PeriodLockChecker
from .staging import StagingStore
from .validation import Rule, validate

"""Commit coordinator: the import session state machine.

    idle -> file_selected -> previewed -> period_chosen -> submitting
    submitting -> committed -> idle          (staged rows discarded, view refreshed)
    submitting -> rejected  -> period_chosen (staged rows kept for retry)

Each public method runs one user action to completion and returns a
StepResult; exceptions from the parser, the backend client and the lock
checker are turned into notifications here and never escape.

Cancellation: discard() and select_file() bump a session generation. A
backend answer captured under an older generation belongs to a superseded
session and is dropped without touching state.
"""

__all__ = [
    "Backend",
    "CommitCoordinator",
    "StepResult",
]

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.SUCCESS: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


class Backend(Protocol):
    def exists(self, schema: RowSchema, period: Period) -> bool: ...

    def fetch_committed(self, schema: RowSchema) -> list[dict[str, Any]]: ...

    def submit(self, schema: RowSchema, records: list[dict[str, Any]]) -> Any: ...


@dataclass(frozen=True)
class StepResult:
    """Outcome of one session action.

    ``state`` is the outcome of the step (COMMITTED / REJECTED are reported
    here even though the session then rests in IDLE / PERIOD_CHOSEN).
    ``ignored`` is set when the answer arrived for a discarded session.
    """
    state: SessionState
    ok: bool
    notifications: tuple[Notification, ...] = ()
    issues: tuple[ValidationIssue, ...] = ()
    batch: CommitBatch | None = None
    lock: LockCheck | None = None
    ignored: bool = False

    @property
    def notification(self) -> Notification | None:
        return self.notifications[0] if self.notifications else None

    @property
    def message(self) -> str:
        return "\n".join(n.message for n in self.notifications)


class CommitCoordinator:
    """Drives parse -> stage -> validate -> lock check -> submit -> refresh for one domain."""

    def __init__(
        self,
        schema: RowSchema,
        backend: Backend,
        *,
        lock_policy: str = FAIL_OPEN,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
        notifier: Callable[[Notification], None] | None = None,
        error_log: ErrorLogBuffer | None = None,
        rules: Mapping[str, Sequence[Rule]] | None = None,
    ) -> None:
        self.schema = schema
        self.backend = backend
        self.lock_checker = PeriodLockChecker(backend, on_failure=lock_policy)
        self.extensions = tuple(e.lower() for e in extensions)
        self.notifier = notifier
        self.error_log = error_log
        self.rules = rules
        self.store = StagingStore(schema)

        self._state = SessionState.IDLE
        self._generation = 0
        self.file_name: str | None = None
        self._payload: Payload | None = None
        self.period: Period | None = None
        self.period_locked = False
        self.committed: list[dict[str, Any]] = []
        self.committed_stale = False

    # --- helpers ----------------------------------------------------------
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def _label(self) -> str:
        return self.schema.label

    def _result(self, state: SessionState, ok: bool, *notes: Notification, **kwargs: Any) -> StepResult:
        for note in notes:
            logger.log(_LOG_LEVELS[note.severity], f"{self.schema.domain}: {note.message}")
            if self.notifier is not None:
                self.notifier(note)
        return StepResult(state=state, ok=ok, notifications=tuple(notes), **kwargs)

    def _superseded(self, action: str) -> StepResult:
        logger.debug(f"{self.schema.domain}: {action} answer arrived after discard; ignored")
        return StepResult(state=self._state, ok=False, ignored=True)

    def _log_rejection(self, row: int, error_type: str, message: str) -> None:
        if self.error_log is not None:
            self.error_log.append(
                ErrorRecord.create(self.file_name or "<none>", self.schema.domain, row, error_type, message)
            )

    def _has_preview(self) -> bool:
        return self._state in (SessionState.PREVIEWED, SessionState.PERIOD_CHOSEN, SessionState.SUBMITTING)

    # --- file selection & preview --------------------------------------
    def select_file(self, name: str, payload: Payload | None = None) -> StepResult:
        """Hold a spreadsheet for preview; ``payload`` defaults to reading ``name`` as a path."""
        try:
            check_extension(name, self.extensions)
        except UnsupportedFileError as e:
            return self._result(self._state, False, Notification.error(str(e)))
        self._reset()
        self.file_name = Path(name).name
        self._payload = payload if payload is not None else Path(name)
        self._state = SessionState.FILE_SELECTED
        return self._result(self._state, True, Notification.info(f"File selected: {self.file_name}"))

    def preview(self) -> StepResult:
        if self._payload is None:
            return self._result(self._state, False, Notification.warning("Please choose a file first"))
        try:
            rows = parse_workbook(self._payload, self.schema)
        except SheetParseError as e:
            logger.debug(f"{self.schema.domain}: preview failed: {e}")
            self.store.clear()
            self.period = None
            self._state = SessionState.FILE_SELECTED
            return self._result(
                self._state, False, Notification.error("Failed to preview file. Please check the file format.")
            )
        self.store.replace(rows)
        self._state = SessionState.PERIOD_CHOSEN if self.period is not None else SessionState.PREVIEWED
        if not rows:
            return self._result(self._state, True, Notification.warning("No data rows found in the sheet"))
        return self._result(self._state, True, Notification.info(f"Previewed {len(rows)} row(s)"))

    # --- period ---------------------------------------------------------
    def choose_period(self, period: Period | None) -> StepResult:
        """Select (or clear, with None) the reporting period and pre-warn on existing data."""
        if not self._has_preview() or self._state == SessionState.SUBMITTING:
            return self._result(
                self._state, False, Notification.warning("Please preview data before selecting a period")
            )
        self.period = period
        self.period_locked = False
        if period is None:
            self._state = SessionState.PREVIEWED
            return self._result(self._state, True)

        self._state = SessionState.PERIOD_CHOSEN
        generation = self._generation
        check = self.lock_checker.prewarn(self.schema, period)
        if generation != self._generation or self.period != period:
            return self._superseded("period check")

        self.period_locked = check.exists
        if check.exists:
            note = Notification.warning(f"Data already exists for {period}. Please select a different month.")
            return self._result(self._state, True, note, lock=check)
        if not check.reachable:
            note = Notification.warning(f"Could not verify whether data exists for {period}.")
            return self._result(self._state, True, note, lock=check)
        return self._result(self._state, True, lock=check)

    # --- staging edits --------------------------------------------------
    def _require_rows(self) -> StepResult | None:
        if not self._has_preview() or self._state == SessionState.SUBMITTING:
            return self._result(self._state, False, Notification.warning("Nothing to edit; preview a file first"))
        return None

    def select_rows(self, ids: Iterable[int]) -> StepResult:
        blocked = self._require_rows()
        if blocked is not None:
            return blocked
        try:
            self.store.select(ids)
        except KeyError as e:
            return self._result(self._state, False, Notification.error(str(e.args[0])))
        return self._result(self._state, True)

    def delete_rows(self, ids: Iterable[int]) -> StepResult:
        blocked = self._require_rows()
        if blocked is not None:
            return blocked
        removed = self.store.remove(ids)
        return self._result(self._state, True, Notification.info(f"Deleted {removed} row(s)"))

    def delete_selected(self) -> StepResult:
        blocked = self._require_rows()
        if blocked is not None:
            return blocked
        if not self.store.selected_ids:
            return self._result(self._state, False, Notification.warning("No rows selected"))
        removed = self.store.remove_selected()
        return self._result(self._state, True, Notification.info(f"Deleted {removed} row(s)"))

    def update_row(self, row_id: int, **fields: Any) -> StepResult:
        blocked = self._require_rows()
        if blocked is not None:
            return blocked
        try:
            self.store.update(row_id, **fields)
        except (KeyError, TypeError) as e:
            return self._result(self._state, False, Notification.error(str(e.args[0])))
        return self._result(self._state, True)

    def validate(self) -> list[ValidationIssue]:
        """Business-rule check over the full staged set (selection ignored)."""
        return validate(self.schema, self.store.rows, self.rules)

    # --- submit ---------------------------------------------------------
    def submit(self) -> StepResult:
        """Check preconditions in order, then POST the selected (or all) rows.

        1. staged rows exist
        2. a period is chosen
        3. the period lock check does not block
        4. validation finds no issues
        """
        if self._state == SessionState.SUBMITTING:
            return self._result(self._state, False, Notification.warning("A submission is already in progress"))
        if not self._has_preview() or self.store.is_empty:
            return self._result(self._state, False, Notification.warning("Please preview data before submitting"))
        if self.period is None:
            return self._result(
                self._state, False, Notification.warning("Please select both month and year before submitting")
            )

        period = self.period
        generation = self._generation
        self._state = SessionState.SUBMITTING

        check = self.lock_checker.authorize(self.schema, period)
        if generation != self._generation:
            return self._superseded("existence check")
        if check.blocks_commit:
            self._state = SessionState.PERIOD_CHOSEN
            if check.reachable:
                self.period_locked = True
                message = f"Data already exists for {period}. Cannot submit."
                self._log_rejection(-1, "PERIOD_LOCKED", message)
            else:
                message = f"Could not verify whether data exists for {period}. Cannot submit."
                self._log_rejection(-1, "PERIOD_UNVERIFIED", message)
            return self._result(self._state, False, Notification.error(message), lock=check)

        issues = self.validate()
        if issues:
            self._state = SessionState.PERIOD_CHOSEN
            if self.error_log is not None:
                self.error_log.record_issues(self.file_name or "<none>", issues)
            return self._result(
                self._state, False, Notification.error(join_messages(issues)), issues=tuple(issues), lock=check
            )

        batch = CommitBatch.build(self.schema, self.store.submission_rows(), period)
        logger.info(f"{self.schema.domain}: submitting {len(batch)} row(s) for {period}")
        try:
            self.backend.submit(self.schema, batch.payload())
        except BackendError as e:
            if generation != self._generation:
                return self._superseded("submit")
            self._state = SessionState.PERIOD_CHOSEN
            message = e.backend_message or f"Failed to save {self._label} data"
            logger.debug(f"{self.schema.domain}: submit failed: {e}")
            self._log_rejection(-1, "BACKEND_REJECTED", message)
            return self._result(
                SessionState.REJECTED, False, Notification.error(message), batch=batch, lock=check
            )
        if generation != self._generation:
            return self._superseded("submit")

        label = self._label[:1].upper() + self._label[1:]
        notes = [Notification.success(f"{label} data saved successfully")]
        self._reset()
        refreshed = self.refresh(notify=False)
        notes.extend(refreshed.notifications)
        return self._result(SessionState.COMMITTED, True, *notes, batch=batch, lock=check)

    # --- committed view -------------------------------------------------
    def refresh(self, notify: bool = True) -> StepResult:
        """Re-fetch the committed-data view; failure leaves the old view marked stale."""
        try:
            records = self.backend.fetch_committed(self.schema)
        except BackendError as e:
            logger.debug(f"{self.schema.domain}: refresh failed: {e}")
            self.committed_stale = True
            note = Notification.warning(f"Failed to fetch {self._label} data")
            if notify:
                return self._result(self._state, False, note)
            return StepResult(state=self._state, ok=False, notifications=(note,))
        self.committed = [self.schema.from_committed(r, i) for i, r in enumerate(records, start=1)]
        self.committed_stale = False
        return StepResult(state=self._state, ok=True)

    # --- cancel ---------------------------------------------------------
    def _reset(self) -> None:
        self._generation += 1
        self.store.clear()
        self.file_name = None
        self._payload = None
        self.period = None
        self.period_locked = False
        self._state = SessionState.IDLE

    def discard(self) -> StepResult:
        """Abandon the session; late answers for it are ignored."""
        self._reset()
        return StepResult(state=self._state, ok=True)
