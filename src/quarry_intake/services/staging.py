from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from ..models.row_schema import RowSchema
from ..models.staged_row import StagedRow

"""In-memory staging store for previewed rows.

Holds the ordered staged set and the ids explicitly selected for partial
submission. Every mutation renumbers rows so that ids are always the
contiguous range 1..N in current order.
"""

__all__ = [
    "StagingStore",
]


class StagingStore:
    """Ordered staged rows plus a selection set.

    Owned by exactly one CommitCoordinator; not thread-safe (the import
    session is driven serially).
    """

    def __init__(self, schema: RowSchema) -> None:
        self.schema = schema
        self._rows: list[StagedRow] = []
        self._selected: set[int] = set()

    def _renumber(self, rows: Iterable[StagedRow]) -> list[StagedRow]:
        return [
            r.renumbered(i, self.schema.serial_field).with_selected(False)
            for i, r in enumerate(rows, start=1)
        ]

    # --- bulk -----------------------------------------------------------
    def replace(self, rows: Sequence[StagedRow]) -> None:
        """Swap the entire staged set (fresh preview) and clear the selection."""
        self._rows = self._renumber(rows)
        self._selected = set()

    def clear(self) -> None:
        self._rows = []
        self._selected = set()

    def remove(self, ids: Iterable[int]) -> int:
        """Remove rows by id and renumber the rest, preserving relative order.

        Unknown ids are ignored. The selection is cleared because the surviving
        ids no longer mean what they meant before the removal.

        Returns:
            Number of rows actually removed
        """
        doomed = set(ids)
        kept = [r for r in self._rows if r.id not in doomed]
        removed = len(self._rows) - len(kept)
        self._rows = self._renumber(kept)
        self._selected = set()
        return removed

    def remove_selected(self) -> int:
        return self.remove(self._selected)

    # --- selection ------------------------------------------------------
    def _check_ids(self, ids: set[int]) -> None:
        unknown = ids - {r.id for r in self._rows}
        if unknown:
            raise KeyError(f"unknown staged row id(s): {sorted(unknown)}")

    def select(self, ids: Iterable[int]) -> None:
        wanted = set(ids)
        self._check_ids(wanted)
        self._selected |= wanted

    def deselect(self, ids: Iterable[int]) -> None:
        self._selected -= set(ids)

    def clear_selection(self) -> None:
        self._selected = set()

    @property
    def selected_ids(self) -> frozenset[int]:
        return frozenset(self._selected)

    # --- edit -------------------------------------------------------------
    def update(self, row_id: int, **fields: Any) -> StagedRow:
        """Edit field values of one row, coercing them like parsed cells.

        Raises:
            KeyError: Unknown row id or field name
        """
        self._check_ids({row_id})
        coerced = {name: self.schema.coerce(name, value) for name, value in fields.items()}
        if self.schema.serial_field in coerced:
            raise KeyError(f"{self.schema.serial_field} is assigned by the store and cannot be edited")
        index = row_id - 1
        self._rows[index] = self._rows[index].with_values(**coerced)
        return self.get(row_id)

    # --- reads ------------------------------------------------------------
    def get(self, row_id: int) -> StagedRow:
        self._check_ids({row_id})
        row = self._rows[row_id - 1]
        return row.with_selected(row.id in self._selected)

    @property
    def rows(self) -> tuple[StagedRow, ...]:
        return tuple(r.with_selected(r.id in self._selected) for r in self._rows)

    def submission_rows(self) -> tuple[StagedRow, ...]:
        """Selected rows, or every staged row when nothing is selected."""
        if not self._selected:
            return self.rows
        return tuple(r for r in self.rows if r.selected)

    @property
    def is_empty(self) -> bool:
        return not self._rows

    def __len__(self) -> int:
        return len(self._rows)
