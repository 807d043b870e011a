from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

__all__ = [
    "ValidationIssue",
    "join_messages",
]


@dataclass(frozen=True)
class ValidationIssue:
    """A business-rule violation found in the staged set.

    ``row_ids`` holds the staging ids the issue implicates; an empty set
    means the issue applies to the batch as a whole.
    """
    domain: str
    message: str
    row_ids: frozenset[int] = field(default_factory=frozenset)

    @property
    def is_batch_level(self) -> bool:
        return not self.row_ids


def join_messages(issues: Iterable[ValidationIssue]) -> str:
    """Concatenate issue messages in report order, one per line."""
    return "\n".join(i.message for i in issues)
