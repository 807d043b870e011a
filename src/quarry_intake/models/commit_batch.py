from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from .period import Period
from .row_schema import RowSchema
from .staged_row import StagedRow

"""CommitBatch model.

A CommitBatch is built fresh at submit time from the current staging store
content. It is never persisted when validation or the period lock fails.
"""

__all__ = [
    "CommitBatch",
]


@dataclass(frozen=True)
class CommitBatch:
    """Rows chosen for submission, already in the backend's DTO shape."""
    domain: str
    period: Period
    records: tuple[dict[str, Any], ...]
    row_ids: tuple[int, ...]  # staging ids the records came from, same order

    @staticmethod
    def build(schema: RowSchema, rows: Sequence[StagedRow], period: Period) -> CommitBatch:
        return CommitBatch(
            domain=schema.domain,
            period=period,
            records=tuple(schema.to_record(r, period) for r in rows),
            row_ids=tuple(r.id for r in rows),
        )

    def payload(self) -> list[dict[str, Any]]:
        """JSON body for the import endpoint."""
        return [dict(r) for r in self.records]

    def __len__(self) -> int:
        return len(self.records)
