from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display for workbook runs (tqdm, TTY only).

One bar per run, one step per domain. In non-TTY environments (CI, piped
output) the bar is disabled so log lines stay free of control sequences.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """Return True when stdout is a TTY and a bar should be drawn."""
    return sys.stdout.isatty()


class ProgressTracker:
    """Domain-level progress bar for a workbook run."""

    def __init__(self, total_domains: int, *, description: str = "Importing") -> None:
        """Initialize progress tracker.

        Args:
            total_domains: Number of domains the run will process
            description: Base description for the bar
        """
        self.total_domains = total_domains
        self.description = description
        self.current_domain = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_domains,
                desc=description,
                unit="domain",
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def start_domain(self, domain: str) -> None:
        self.current_domain += 1
        if self.enabled and self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({domain})")

    def finish_domain(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_description(self.description)

    def set_postfix(self, **kwargs: Any) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.set_postfix(**kwargs)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
