from __future__ import annotations

from .workbook import RunResult

"""SUMMARY line rendering.

Format:
SUMMARY domains={n} committed={c} rejected={r} staged_rows={s} committed_rows={k}
"""

__all__ = [
    "render_summary_line",
]


def render_summary_line(result: RunResult) -> str:
    """Render the SUMMARY line for a run.

    Args:
        result: RunResult with one outcome per processed domain

    Returns:
        A single line starting with ``SUMMARY``

    Examples:
        >>> render_summary_line(RunResult())
        'SUMMARY domains=0 committed=0 rejected=0 staged_rows=0 committed_rows=0'
    """
    return (
        f"SUMMARY domains={len(result.outcomes)} "
        f"committed={result.committed} "
        f"rejected={result.rejected} "
        f"staged_rows={result.staged_rows} "
        f"committed_rows={result.committed_rows}"
    )
