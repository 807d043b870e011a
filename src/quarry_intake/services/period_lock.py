from __future__ import annotations

import logging
from typing import Protocol

from ..api.client import BackendError
from ..config.loader import FAIL_CLOSED, FAIL_OPEN
from ..models.lock_check import LockCheck
from ..models.period import Period
from ..models.row_schema import RowSchema

"""Period lock checker.

Asks the backend whether a domain already has data for a period. The check
runs twice per session: when a period is selected (advisory warning) and
right before submission (the client-side gate).

The client-side gate cannot be authoritative: another session may commit the
same period between this check and the POST. The backend's import endpoint
must reject duplicate-period commits itself; this check only spares the user
a round trip in the common case.
"""

__all__ = [
    "ExistenceSource",
    "PeriodLockChecker",
]

logger = logging.getLogger(__name__)


class ExistenceSource(Protocol):
    def exists(self, schema: RowSchema, period: Period) -> bool: ...


class PeriodLockChecker:
    """Existence checks with a configurable policy for unreachable backends.

    ``fail_open`` treats an unreachable backend as "no data yet"; ``fail_closed``
    blocks the commit instead. The policy only affects ``authorize``; the
    selection-time ``prewarn`` never blocks.
    """

    def __init__(self, source: ExistenceSource, on_failure: str = FAIL_OPEN) -> None:
        if on_failure not in (FAIL_OPEN, FAIL_CLOSED):
            raise ValueError(f"unknown lock check policy: {on_failure!r}")
        self.source = source
        self.on_failure = on_failure

    def exists(self, schema: RowSchema, period: Period) -> bool:
        """Raw remote query; raises BackendError when the backend cannot answer."""
        return self.source.exists(schema, period)

    def _check(self, schema: RowSchema, period: Period, gate: bool) -> LockCheck:
        try:
            found = self.exists(schema, period)
        except BackendError as e:
            blocks = gate and self.on_failure == FAIL_CLOSED
            logger.warning(
                f"{schema.domain}: existence check for {period} failed ({e}); "
                f"{'blocking' if blocks else 'continuing'} per {self.on_failure}"
            )
            return LockCheck(
                domain=schema.domain,
                period=period,
                exists=False,
                reachable=False,
                blocks_commit=blocks,
                error=str(e),
            )
        logger.debug(f"{schema.domain}: data exists for {period}: {found}")
        return LockCheck(domain=schema.domain, period=period, exists=found, blocks_commit=gate and found)

    def prewarn(self, schema: RowSchema, period: Period) -> LockCheck:
        """Selection-time check; the result never blocks."""
        return self._check(schema, period, gate=False)

    def authorize(self, schema: RowSchema, period: Period) -> LockCheck:
        """Pre-submit gate; ``blocks_commit`` tells the caller whether to stop."""
        return self._check(schema, period, gate=True)
