from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

"""Period model for the monthly import pipeline.

A Period identifies the reporting window a batch of staged rows belongs to.
Month and year are kept as strings because that is what the backend expects
on both the existence check query string and the submitted DTOs.
"""

__all__ = [
    "Period",
    "PeriodError",
]

_MONTH_FIRST = re.compile(r"^\s*(\d{1,2})\s*[/-]\s*(\d{4})\s*$")
_YEAR_FIRST = re.compile(r"^\s*(\d{4})\s*[/-]\s*(\d{1,2})\s*$")


class PeriodError(ValueError):
    """Raised when a month/year pair cannot form a valid Period."""


@dataclass(frozen=True)
class Period:
    """Reporting period (month, year).

    Attributes:
        month: Zero-padded two-digit month, "01".."12"
        year: Four-digit year
    """
    month: str
    year: str

    def __post_init__(self) -> None:
        if not (len(self.month) == 2 and self.month.isdigit() and 1 <= int(self.month) <= 12):
            raise PeriodError(f"invalid month: {self.month!r}")
        if not (len(self.year) == 4 and self.year.isdigit()):
            raise PeriodError(f"invalid year: {self.year!r}")

    @staticmethod
    def of(month: int, year: int) -> Period:
        """Build a Period from integer month/year."""
        if not 1 <= month <= 12:
            raise PeriodError(f"month out of range: {month}")
        if not 1000 <= year <= 9999:
            raise PeriodError(f"year must have four digits: {year}")
        return Period(month=f"{month:02d}", year=str(year))

    @staticmethod
    def from_date(value: date) -> Period:
        return Period.of(value.month, value.year)

    @staticmethod
    def parse(text: str) -> Period:
        """Parse ``MM/YYYY`` (or ``MM-YYYY``) and ``YYYY-MM`` forms.

        Raises:
            PeriodError: If the text matches neither form or is out of range
        """
        m = _MONTH_FIRST.match(text)
        if m:
            return Period.of(int(m.group(1)), int(m.group(2)))
        m = _YEAR_FIRST.match(text)
        if m:
            return Period.of(int(m.group(2)), int(m.group(1)))
        raise PeriodError(f"unrecognised period: {text!r} (expected MM/YYYY or YYYY-MM)")

    def as_params(self) -> dict[str, str]:
        """Query parameters for the existence check endpoint."""
        return {"month": self.month, "year": self.year}

    def __str__(self) -> str:
        return f"{self.month}/{self.year}"
