"""Spreadsheet decoding."""

from .reader import (
    SheetGrid,
    SheetParseError,
    UnsupportedFileError,
    check_extension,
    parse_workbook,
    read_sheet,
    sheet_names,
)

__all__ = [
    "SheetGrid",
    "SheetParseError",
    "UnsupportedFileError",
    "check_extension",
    "parse_workbook",
    "read_sheet",
    "sheet_names",
]
