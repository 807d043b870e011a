from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from conftest import SALES_HEADER, FakeBackend, sales_row
from quarry_intake.api.client import BackendError
from quarry_intake.cli.__main__ import main as cli_main
from quarry_intake.config.loader import default_config
from quarry_intake.logging.error_log import ErrorLogBuffer
from quarry_intake.models.period import Period
from quarry_intake.models.session_state import SessionState
from quarry_intake.services.workbook import run_workbook

"""Integration: one monthly template workbook, every domain sheet, fake backend."""

PERIOD = Period("04", "2025")


def _template(sales: list[list[Any]] | None = None, slurry: list[list[Any]] | None = None) -> dict[str, list]:
    return {
        "Sales": [SALES_HEADER] + (sales or [sales_row("20mm"), sales_row("Dust", quarry="Q2")]),
        "Ledger": [["Ledger", "Amount"], ["Rent", "12,000"], ["Power", 8000], [None, None], ["Diesel", 4500.5]],
        "Other Income": [["Income", "Amount"], ["Scrap sale", 1500]],
        "Other Expense": [["Expense", "Amount"], ["Repairs", 700]],
        "Closing Stock": [["Material", "Quarry", "Closing"], ["Dust", "Q1", 120], ["20mm", "Q2", 45]],
        "VSI Hours": [["Quarry", "Hours"], ["Q1", 210], ["Q2", 190], ["* hours exclude breakdowns", None]],
        "Slurry": slurry
        or [
            ["S.No", "Particulars", "Q1", "Q2"],
            [1, "Inward", 40, 35],
            [2, "Material Swap", -10, 10],
            [3, "Consumption", 30, 25],
        ],
    }


@pytest.fixture()
def template_book(make_workbook) -> Path:
    return make_workbook("april.xlsx", _template())


def test_full_workbook_commits_every_domain(template_book: Path, fake_backend: FakeBackend):
    result = run_workbook(template_book, PERIOD, None, fake_backend, default_config())

    assert [o.domain for o in result.outcomes] == [
        "sales", "ledger", "other-income", "other-expense", "closing-stock", "vsi-hours",
        "inward-consumption-slurry",
    ]
    assert all(o.state == SessionState.COMMITTED for o in result.outcomes)
    assert result.committed == 7
    assert result.staged_rows == 2 + 3 + 1 + 1 + 2 + 2 + 3
    assert result.committed_rows == result.staged_rows

    ledger = fake_backend.committed["ledger"]
    assert [r["ledgerName"] for r in ledger] == ["Rent", "Power", "Diesel"]
    assert [r["amount"] for r in ledger] == [12000, 8000, 4500.5]
    assert [r["quarryName"] for r in fake_backend.committed["vsi-hours"]] == ["Q1", "Q2"]
    swap = fake_backend.committed["inward-consumption-slurry"][1]
    assert swap == {"particulars": "Material Swap", "quarryValues": {"Q1": -10, "Q2": 10}, "month": "04", "year": "2025"}


def test_failing_domains_do_not_stop_the_run(make_workbook, fake_backend: FakeBackend, temp_workdir: Path):
    book = make_workbook(
        "april.xlsx",
        _template(
            sales=[sales_row("20mm"), sales_row("20mm")],
            slurry=[["S.No", "Particulars", "Q1", "Q2"], [1, "Material Swap", -10, 4]],
        ),
    )
    fake_backend.existing.add(("ledger", "04/2025"))
    buffer = ErrorLogBuffer(temp_workdir / "logs")

    result = run_workbook(book, PERIOD, None, fake_backend, default_config(), error_log=buffer)

    by_domain = {o.domain: o for o in result.outcomes}
    assert not by_domain["sales"].committed
    assert "Duplicate Billed entry" in by_domain["sales"].message
    assert by_domain["ledger"].message == "Data already exists for 04/2025. Cannot submit."
    assert by_domain["inward-consumption-slurry"].message == (
        "Material Swap must total zero across all quarries (current total: -6)"
    )
    assert result.committed == 4
    assert result.rejected == 3
    assert "sales" not in fake_backend.committed
    assert {r.error_type for r in buffer.records} == {"VALIDATION_FAILED", "PERIOD_LOCKED"}


def test_backend_rejection_is_recorded(template_book: Path, fake_backend: FakeBackend):
    fake_backend.submit_error = BackendError("HTTP 500", status_code=500)
    result = run_workbook(template_book, PERIOD, ["closing-stock"], fake_backend, default_config())
    (outcome,) = result.outcomes
    assert outcome.state == SessionState.REJECTED
    assert outcome.message == "Failed to save stock data"
    assert outcome.committed_rows == 0


def test_empty_sheet_is_skipped(make_workbook, fake_backend: FakeBackend):
    sheets = _template()
    sheets["Other Income"] = [["Income", "Amount"]]
    book = make_workbook("april.xlsx", sheets)
    result = run_workbook(book, PERIOD, ["other-income", "other-expense"], fake_backend, default_config())
    assert result.outcomes[0].skipped
    assert result.rejected == 0
    assert result.committed == 1


def test_cli_import_workbook_twice(write_config, template_book: Path, capsys):
    backend = FakeBackend()
    with patch("quarry_intake.cli.__main__.BackendClient") as client_cls:
        client_cls.from_config.return_value = backend
        first = cli_main(["import-workbook", "04/2025", str(template_book)])
        out_first = capsys.readouterr().out
        second = cli_main(["import-workbook", "04/2025", str(template_book), "--domain", "ledger"])
        out_second = capsys.readouterr().out

    assert first == 0
    assert "SUMMARY domains=7 committed=7 rejected=0 staged_rows=14 committed_rows=14" in out_first
    assert second == 2
    assert "SUMMARY domains=1 committed=0 rejected=1 staged_rows=3 committed_rows=0" in out_second
    assert "Data already exists for 04/2025" in out_second


def test_cli_import_unreadable_workbook(write_config, temp_workdir: Path, capsys):
    bad = temp_workdir / "data" / "april.xlsx"
    bad.write_bytes(b"not a workbook")
    with patch("quarry_intake.cli.__main__.BackendClient") as client_cls:
        client_cls.from_config.return_value = FakeBackend()
        code = cli_main(["import-workbook", "04/2025", str(bad)])
    assert code == 1
    assert "ERROR" in capsys.readouterr().out
