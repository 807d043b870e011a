from __future__ import annotations

import io
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Union

import pandas as pd
from openpyxl.utils import column_index_from_string, get_column_letter

from ..models.row_schema import RowSchema, coerce_number, coerce_text
from ..models.staged_row import StagedRow

"""Spreadsheet reader for the monthly import templates.

The sheet is addressed by position (0-based index into the workbook's sheet
list), not by name. Rows are read from the schema's first data row (1-based,
row 2 skips the header) to the last occupied row, and cells are read by
column letter. pandas decodes the workbook with ``header=None`` so the
DataFrame's shape is the sheet's occupied range and DataFrame row ``i`` is
spreadsheet row ``i + 1``.
"""

__all__ = [
    "SheetGrid",
    "SheetParseError",
    "UnsupportedFileError",
    "check_extension",
    "parse_workbook",
    "read_sheet",
    "sheet_names",
]

logger = logging.getLogger(__name__)

Payload = Union[bytes, bytearray, Path, str, IO[bytes]]


class SheetParseError(Exception):
    """Raised when the workbook cannot be decoded into rows.

    Covers unreadable binaries, a missing sheet index and sheets without an
    occupied range. Parsing is all-or-nothing: no partial rows are returned.
    """


class UnsupportedFileError(Exception):
    """Raised when a file's extension is not an accepted spreadsheet type."""


def check_extension(name: str | Path, extensions: Sequence[str]) -> None:
    """Raise UnsupportedFileError unless ``name`` ends in one of ``extensions``."""
    allowed = tuple(e.lower() for e in extensions)
    if Path(name).suffix.lower() not in allowed:
        raise UnsupportedFileError(f"Please upload only Excel files ({', '.join(allowed)})")


@dataclass
class SheetGrid:
    """Raw cells of one sheet's occupied range."""
    sheet_name: str
    frame: pd.DataFrame

    @property
    def last_row(self) -> int:
        """1-based number of the last occupied row."""
        return int(self.frame.shape[0])

    @property
    def last_column(self) -> int:
        """1-based number of the last occupied column."""
        return int(self.frame.shape[1])

    def cell(self, row: int, column: int) -> Any:
        """Raw value at 1-based (row, column); None outside the occupied range."""
        if row < 1 or column < 1 or row > self.last_row or column > self.last_column:
            return None
        value = self.frame.iat[row - 1, column - 1]
        if value is None or (isinstance(value, float) and pd.isna(value)):
            return None
        return value


def _open(payload: Payload) -> pd.ExcelFile:
    if isinstance(payload, (bytes, bytearray)):
        return pd.ExcelFile(io.BytesIO(bytes(payload)))
    return pd.ExcelFile(payload)


def sheet_names(payload: Payload) -> list[str]:
    """Names of the workbook's sheets in position order.

    Raises SheetParseError when the workbook cannot be opened.
    """
    try:
        return [str(n) for n in _open(payload).sheet_names]
    except Exception as e:
        raise SheetParseError(f"unreadable workbook: {e}") from e


def read_sheet(payload: Payload, sheet_index: int) -> SheetGrid:
    """Decode the sheet at ``sheet_index`` into a raw grid.

    Parameters
    ----------
    payload: workbook bytes, binary file object or path
    sheet_index: 0-based position of the sheet in the workbook

    Raises
    ------
    SheetParseError: unreadable workbook, missing sheet, or empty sheet
    """
    try:
        xls = _open(payload)
    except Exception as e:
        raise SheetParseError(f"unreadable workbook: {e}") from e

    names = xls.sheet_names
    if sheet_index < 0 or sheet_index >= len(names):
        raise SheetParseError(f"workbook has {len(names)} sheet(s); sheet index {sheet_index} not found")
    sheet_name = str(names[sheet_index])

    try:
        # dtype=object keeps cell values as decoded; only truly empty cells become NaN
        # so text like "NA" in a name column survives.
        df = xls.parse(sheet_index, header=None, dtype=object, keep_default_na=False, na_values=[""])
    except Exception as e:
        raise SheetParseError(f"sheet '{sheet_name}' could not be read: {e}") from e

    if df.shape[0] == 0 or df.shape[1] == 0:
        raise SheetParseError(f"sheet '{sheet_name}' has no occupied range")
    logger.debug(f"sheet '{sheet_name}' occupied range {df.shape[0]}x{df.shape[1]}")
    return SheetGrid(sheet_name=sheet_name, frame=df)


def _is_admitted(identity: str, marker: str | None) -> bool:
    if not identity:
        return False
    return not (marker and identity.startswith(marker))


def _dynamic_headers(grid: SheetGrid, schema: RowSchema) -> list[tuple[int, str]]:
    """(column number, header text) pairs for the schema's dynamic column block.

    Header names key the row's values, so a repeated name or a data column
    without a header is rejected rather than merged or dropped.
    """
    block = schema.dynamic_block
    if block is None:
        return []
    header_row = schema.first_row - 1
    if header_row < 1:
        raise SheetParseError(f"{schema.domain}: dynamic columns need a header row above row {schema.first_row}")
    start = column_index_from_string(block.start_column)
    headers: list[tuple[int, str]] = []
    seen: dict[str, int] = {}
    for col in range(start, grid.last_column + 1):
        name = coerce_text(grid.cell(header_row, col))
        if not name:
            data_rows = range(schema.first_row, grid.last_row + 1)
            if any(coerce_text(grid.cell(r, col)) for r in data_rows):
                raise SheetParseError(
                    f"{schema.domain}: column {get_column_letter(col)} has values but no header"
                )
            continue
        if name in seen:
            raise SheetParseError(
                f"{schema.domain}: duplicate column header '{name}' in columns "
                f"{get_column_letter(seen[name])} and {get_column_letter(col)}"
            )
        seen[name] = col
        headers.append((col, name))
    return headers


def parse_workbook(payload: Payload, schema: RowSchema) -> list[StagedRow]:
    """Parse the schema's sheet into staged row candidates.

    Steps:
    1. Read the sheet at ``schema.sheet_index`` and determine its occupied range
    2. For each row from ``schema.first_row`` to the last occupied row, read the
       declared columns by letter and coerce them per field
    3. Admit the row only if its identity field is non-empty and is not a
       footnote (starts with the schema's marker); blank and comment rows are
       dropped silently
    4. Renumber admitted rows 1..N (id and visible serial number)
    """
    grid = read_sheet(payload, schema.sheet_index)
    columns = [(spec, column_index_from_string(spec.column)) for spec in schema.fields]
    dynamic = _dynamic_headers(grid, schema)

    rows: list[StagedRow] = []
    for row_number in range(schema.first_row, grid.last_row + 1):
        values: dict[str, Any] = {spec.name: spec.coerce(grid.cell(row_number, col)) for spec, col in columns}
        if not _is_admitted(values[schema.identity_field], schema.footnote_marker):
            continue
        if schema.dynamic_block is not None:
            values[schema.dynamic_block.name] = {
                name: coerce_number(grid.cell(row_number, col)) for col, name in dynamic
            }
        rows.append(StagedRow(id=len(rows) + 1, values=values, source_row=row_number))

    if schema.serial_field is not None:
        rows = [r.renumbered(r.id, schema.serial_field) for r in rows]
    logger.debug(
        f"{schema.domain}: admitted {len(rows)} row(s) from sheet '{grid.sheet_name}' "
        f"rows {schema.first_row}..{grid.last_row}"
    )
    return rows
