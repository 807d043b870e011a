from __future__ import annotations

import re

from quarry_intake.models.session_state import SessionState
from quarry_intake.services.summary import render_summary_line
from quarry_intake.services.workbook import DomainOutcome, RunResult

PATTERN = re.compile(r"^SUMMARY domains=\d+ committed=\d+ rejected=\d+ staged_rows=\d+ committed_rows=\d+$")


def test_render_counts_outcomes():
    result = RunResult(
        [
            DomainOutcome("sales", SessionState.COMMITTED, staged_rows=3, committed_rows=2),
            DomainOutcome("ledger", SessionState.REJECTED, staged_rows=4),
            DomainOutcome("vsi-hours", SessionState.PREVIEWED),
        ]
    )
    line = render_summary_line(result)
    assert PATTERN.match(line)
    assert line == "SUMMARY domains=3 committed=1 rejected=1 staged_rows=7 committed_rows=2"


def test_empty_sheets_are_not_rejections():
    result = RunResult([DomainOutcome("vsi-hours", SessionState.PREVIEWED)])
    assert result.rejected == 0
    assert result.all_committed


def test_render_empty_run():
    assert render_summary_line(RunResult()) == (
        "SUMMARY domains=0 committed=0 rejected=0 staged_rows=0 committed_rows=0"
    )
