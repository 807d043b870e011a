from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

"""StagedRow model.

StagedRow represents one admitted spreadsheet row while it sits in the
staging store, before it is committed to the backend.
"""

__all__ = [
    "StagedRow",
]


@dataclass(frozen=True)
class StagedRow:
    """One previewed row awaiting commit.

    The ``id`` is a staging sequence number: 1-based and contiguous across the
    staged set. It is reassigned every time the set changes, so it never
    identifies a row outside the current staging lifetime.
    """
    id: int  # staging sequence number (1..N)
    values: dict[str, Any]  # domain field name -> coerced value
    source_row: int = -1  # 1-based spreadsheet row the values came from (-1 unknown)
    selected: bool = False

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    def renumbered(self, new_id: int, serial_field: str | None = None) -> StagedRow:
        """Return a copy carrying ``new_id`` (and the same visible serial number)."""
        values = self.values
        if serial_field is not None:
            values = {**values, serial_field: new_id}
        return replace(self, id=new_id, values=values)

    def with_values(self, **updates: Any) -> StagedRow:
        return replace(self, values={**self.values, **updates})

    def with_selected(self, selected: bool) -> StagedRow:
        if selected == self.selected:
            return self
        return replace(self, selected=selected)
