# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pandas as pd
import pytest

from quarry_intake.api.client import BackendError
from quarry_intake.logging.init import reset_logging


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("QUARRY_API_BASE_URL", raising=False)
        yield p


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def sample_config_yaml() -> str:
    return """api:
  base_url: http://backend.test
  timeout_seconds: 5
lock_check:
  on_failure: fail_open
file_extensions: [.xlsx, .xls]
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "intake.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def write_workbook(path: Path, sheets: dict[str, list[list[object]]]) -> Path:
    """Write a real .xlsx; sheets keep insertion order (index 0, 1, ...)."""
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for sheet, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet, header=False, index=False)
    return path


@pytest.fixture()
def make_workbook(temp_workdir: Path):
    def _make(name: str, sheets: dict[str, list[list[object]]]) -> Path:
        return write_workbook(temp_workdir / "data" / name, sheets)
    return _make


SALES_HEADER = [
    "Product", "Quarry", "Sales (t)", "Sales value", "Production", "Billing", "Payment", "GST",
]


def sales_row(product, quarry="Q1", tons=10, value=1000, billing="Billed", payment="GST", gst=180):
    return [product, quarry, tons, value, "Produced", billing, payment, gst]


class FakeBackend:
    """In-memory stand-in for BackendClient.

    ``existing`` holds (domain, "MM/YYYY") pairs that already have data.
    Set ``exists_error`` / ``submit_error`` / ``fetch_error`` to a BackendError
    to make the matching call fail.
    """

    def __init__(self) -> None:
        self.existing: set[tuple[str, str]] = set()
        self.committed: dict[str, list[dict[str, Any]]] = {}
        self.exists_error: BackendError | None = None
        self.submit_error: BackendError | None = None
        self.fetch_error: BackendError | None = None
        self.calls: list[tuple[str, str]] = []
        self.on_submit = None  # optional hook run inside submit()

    def exists(self, schema, period) -> bool:
        self.calls.append(("exists", schema.domain))
        if self.exists_error is not None:
            raise self.exists_error
        return (schema.domain, str(period)) in self.existing

    def fetch_committed(self, schema) -> list[dict[str, Any]]:
        self.calls.append(("fetch", schema.domain))
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.committed.get(schema.domain, []))

    def submit(self, schema, records):
        self.calls.append(("submit", schema.domain))
        if self.on_submit is not None:
            self.on_submit()
        if self.submit_error is not None:
            raise self.submit_error
        self.committed.setdefault(schema.domain, []).extend(records)
        if records:
            self.existing.add((schema.domain, f"{records[0]['month']}/{records[0]['year']}"))
        return None

    def close(self) -> None:
        self.calls.append(("close", ""))

    def count(self, kind: str) -> int:
        return sum(1 for k, _ in self.calls if k == kind)


@pytest.fixture()
def fake_backend() -> FakeBackend:
    return FakeBackend()


def make_response(status: int = 200, body: Any = None, content: bytes | None = None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    if body is None and content is None:
        resp.content = b""
        resp.json.side_effect = ValueError("no body")
    else:
        resp.content = content if content is not None else b"x"
        if body is None:
            resp.json.side_effect = ValueError("not json")
        else:
            resp.json.return_value = body
    return resp


@pytest.fixture()
def mock_session() -> MagicMock:
    session = MagicMock()
    session.headers = {}
    return session
