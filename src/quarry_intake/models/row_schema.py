from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .period import Period
    from .staged_row import StagedRow

"""RowSchema: declarative description of one import domain.

A RowSchema tells the generic pipeline everything that differs between the
data-entry screens: which sheet and columns to read, how each cell is
coerced, which field identifies a row, which values must not be negative,
how staged values are renamed for the backend, and which endpoints serve
the domain.
"""

__all__ = [
    "DynamicBlock",
    "Endpoints",
    "FieldSpec",
    "RowSchema",
    "coerce_number",
    "coerce_text",
]

TEXT = "text"
NUMBER = "number"


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ""


def coerce_text(value: Any) -> str:
    """String passthrough: blank -> "", integral floats lose their ".0"."""
    if _is_blank(value):
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def coerce_number(value: Any) -> int | float:
    """Numeric coercion: blank or unparsable -> 0, integral values -> int."""
    if _is_blank(value) or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip().replace(",", ""))
        except ValueError:
            return 0
    if math.isnan(number) or math.isinf(number):
        return 0
    return int(number) if number.is_integer() else number


@dataclass(frozen=True)
class FieldSpec:
    """One spreadsheet column mapped to a staged field."""
    name: str  # staged field name
    column: str  # column letter, e.g. "A"
    kind: str = TEXT  # text | number
    submit_as: str | None = None  # backend DTO key (None = same as name)

    def coerce(self, value: Any) -> Any:
        return coerce_number(value) if self.kind == NUMBER else coerce_text(value)

    @property
    def dto_key(self) -> str:
        return self.submit_as or self.name


@dataclass(frozen=True)
class DynamicBlock:
    """Columns from ``start_column`` to the last occupied column, keyed by header text.

    Values are numeric and collected into a single mapping field.
    """
    start_column: str
    name: str
    submit_as: str | None = None

    @property
    def dto_key(self) -> str:
        return self.submit_as or self.name


@dataclass(frozen=True)
class Endpoints:
    exists: str  # GET -> boolean
    listing: str  # GET -> persisted records
    submit: str  # POST array of DTOs


@dataclass(frozen=True)
class RowSchema:
    """Per-domain import declaration consumed by the generic pipeline."""
    domain: str
    label: str  # used in user-facing messages ("Failed to save {label} data")
    sheet_index: int
    fields: tuple[FieldSpec, ...]
    identity_field: str
    endpoints: Endpoints
    first_row: int = 2
    footnote_marker: str | None = None
    serial_field: str | None = None
    non_negative_fields: tuple[str, ...] = ()
    dynamic_block: DynamicBlock | None = None
    committed_id_key: str = "id"

    def __post_init__(self) -> None:
        names = [f.name for f in self.fields]
        if self.identity_field not in names:
            raise ValueError(f"{self.domain}: identity field {self.identity_field!r} is not a declared field")
        unknown = [n for n in self.non_negative_fields if n not in names]
        if unknown:
            raise ValueError(f"{self.domain}: non-negative fields not declared: {unknown}")
        if self.first_row < 1 or self.sheet_index < 0:
            raise ValueError(f"{self.domain}: invalid sheet layout ({self.sheet_index}, {self.first_row})")

    def field(self, name: str) -> FieldSpec:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(f"{self.domain}: unknown field {name!r}")

    @property
    def field_names(self) -> list[str]:
        names = [f.name for f in self.fields]
        if self.dynamic_block is not None:
            names.append(self.dynamic_block.name)
        return names

    def coerce(self, name: str, value: Any) -> Any:
        """Coerce a value for field ``name`` (used when a staged row is edited)."""
        if self.dynamic_block is not None and name == self.dynamic_block.name:
            if not isinstance(value, dict):
                raise TypeError(f"{self.domain}: {name} expects a mapping")
            return {coerce_text(k): coerce_number(v) for k, v in value.items()}
        return self.field(name).coerce(value)

    def with_layout(self, sheet_index: int | None = None, first_row: int | None = None) -> RowSchema:
        return replace(
            self,
            sheet_index=self.sheet_index if sheet_index is None else sheet_index,
            first_row=self.first_row if first_row is None else first_row,
        )

    def to_record(self, row: StagedRow, period: Period) -> dict[str, Any]:
        """Backend DTO for one staged row: internal fields stripped, period attached."""
        record: dict[str, Any] = {}
        for spec in self.fields:
            if spec.name == self.serial_field:
                continue
            record[spec.dto_key] = row.values.get(spec.name)
        if self.dynamic_block is not None:
            record[self.dynamic_block.dto_key] = dict(row.values.get(self.dynamic_block.name) or {})
        record["month"] = period.month
        record["year"] = period.year
        return record

    def from_committed(self, record: dict[str, Any], position: int) -> dict[str, Any]:
        """Map one persisted backend record back to staged field names for display."""
        shown: dict[str, Any] = {"id": record.get(self.committed_id_key) or position}
        for spec in self.fields:
            if spec.name == self.serial_field:
                continue
            shown[spec.name] = spec.coerce(record.get(spec.dto_key))
        if self.dynamic_block is not None:
            raw = record.get(self.dynamic_block.dto_key) or {}
            shown[self.dynamic_block.name] = {coerce_text(k): coerce_number(v) for k, v in raw.items()}
        return shown
