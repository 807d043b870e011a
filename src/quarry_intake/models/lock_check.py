from __future__ import annotations

from dataclasses import dataclass

from .period import Period

__all__ = [
    "LockCheck",
]


@dataclass(frozen=True)
class LockCheck:
    """Outcome of one "does data already exist for this period?" query.

    Attributes:
        domain: Import domain that was checked
        period: Period that was checked
        exists: Backend answer (False when the backend was unreachable)
        reachable: Whether the backend answered at all
        blocks_commit: Result after applying the failure policy
        error: Failure description when unreachable
    """
    domain: str
    period: Period
    exists: bool
    reachable: bool = True
    blocks_commit: bool = False
    error: str | None = None
