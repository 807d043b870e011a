from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the rejection log.

Every refused submission (validation issue, period conflict, backend
rejection) is recorded as one JSON Lines entry. ``row`` holds the staging id
the record refers to, or -1 for batch-level errors where no single row is
implicated.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Spreadsheet filename being imported
        domain: Import domain (sales, ledger, ...)
        row: Staging id (1-based). -1 for batch-level errors
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human-readable description shown to the user
    """
    timestamp: str  # ISO8601 UTC
    file: str
    domain: str
    row: int
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, domain: str, row: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            domain=domain,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        """Serialize to one JSON Lines entry with exactly the dataclass keys."""
        return json.dumps(asdict(self), ensure_ascii=False)
