from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from ..config.loader import IntakeConfig
from ..excel.reader import sheet_names
from ..logging.error_log import ErrorLogBuffer
from ..models.period import Period
from ..models.session_state import SessionState
from ..schemas.domains import resolve_schemas
from .coordinator import Backend, CommitCoordinator, StepResult
from .progress import ProgressTracker

"""Workbook runner: import every domain sheet of one template workbook.

The monthly template carries one sheet per domain. Each requested domain gets
its own CommitCoordinator and runs the full select -> preview -> period ->
submit cycle against the same file bytes. A domain that fails (unreadable
sheet, locked period, validation issues, backend rejection) is recorded and
the run continues with the next domain.
"""

__all__ = [
    "DomainOutcome",
    "RunResult",
    "run_domain",
    "run_workbook",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DomainOutcome:
    domain: str
    state: SessionState
    staged_rows: int = 0
    committed_rows: int = 0
    message: str = ""

    @property
    def committed(self) -> bool:
        return self.state == SessionState.COMMITTED

    @property
    def skipped(self) -> bool:
        """Sheet parsed but held no data rows; nothing was submitted."""
        return self.state == SessionState.PREVIEWED and self.staged_rows == 0


@dataclass
class RunResult:
    outcomes: list[DomainOutcome] = field(default_factory=list)

    @property
    def committed(self) -> int:
        return sum(1 for o in self.outcomes if o.committed)

    @property
    def rejected(self) -> int:
        return sum(1 for o in self.outcomes if not o.committed and not o.skipped)

    @property
    def staged_rows(self) -> int:
        return sum(o.staged_rows for o in self.outcomes)

    @property
    def committed_rows(self) -> int:
        return sum(o.committed_rows for o in self.outcomes)

    @property
    def all_committed(self) -> bool:
        return self.rejected == 0


def _outcome(domain: str, step: StepResult, staged: int = 0, committed: int = 0) -> DomainOutcome:
    return DomainOutcome(
        domain=domain,
        state=step.state,
        staged_rows=staged,
        committed_rows=committed,
        message=step.message,
    )


def run_domain(
    coordinator: CommitCoordinator,
    path: Path,
    payload: bytes,
    period: Period,
    *,
    delete: list[int] | None = None,
    select: list[int] | None = None,
) -> DomainOutcome:
    """Run one domain's import session to completion.

    ``delete`` ids are removed first; ``select`` ids refer to the renumbered rows.
    """
    domain = coordinator.schema.domain
    step = coordinator.select_file(path.name, payload)
    if not step.ok:
        return _outcome(domain, step)

    step = coordinator.preview()
    staged = len(coordinator.store)
    if not step.ok:
        return _outcome(domain, step)
    if staged == 0:
        logger.info(f"{domain}: no data rows; skipped")
        coordinator.discard()
        return _outcome(domain, step)

    if delete:
        coordinator.delete_rows(delete)
        staged = len(coordinator.store)
    if select:
        step = coordinator.select_rows(select)
        if not step.ok:
            return _outcome(domain, step, staged)

    step = coordinator.choose_period(period)
    if not step.ok:
        return _outcome(domain, step, staged)

    step = coordinator.submit()
    committed = len(step.batch) if step.batch is not None and step.ok else 0
    return _outcome(domain, step, staged, committed)


def run_workbook(
    path: Path,
    period: Period,
    domains: list[str] | None,
    backend: Backend,
    config: IntakeConfig,
    error_log: ErrorLogBuffer | None = None,
) -> RunResult:
    """Import the requested domains (all, in registry order, when None) from ``path``.

    Raises:
        OSError: The file cannot be read
        SheetParseError: The file is not a readable workbook
        UnknownDomainError: A requested domain is not registered
    """
    schemas = resolve_schemas(domains, config.domains)
    payload = path.read_bytes()
    names = sheet_names(payload)
    logger.debug(f"{path.name}: sheets {names}")

    result = RunResult()
    with ProgressTracker(len(schemas), description=f"Importing {path.name}") as progress:
        for schema in schemas:
            progress.start_domain(schema.domain)
            coordinator = CommitCoordinator(
                schema,
                backend,
                lock_policy=config.lock_check.on_failure,
                extensions=config.file_extensions,
                error_log=error_log,
            )
            outcome = run_domain(coordinator, path, payload, period)
            result.outcomes.append(outcome)
            progress.finish_domain()
            progress.set_postfix(committed=result.committed, rejected=result.rejected)
    return result
