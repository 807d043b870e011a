from __future__ import annotations

import pytest
import requests

from conftest import make_response
from quarry_intake.api.client import BackendClient, BackendError
from quarry_intake.config.loader import ApiConfig
from quarry_intake.models.period import Period
from quarry_intake.schemas.domains import LEDGER, SALES


def test_exists_sends_period_params(mock_session):
    mock_session.request.return_value = make_response(200, True)
    client = BackendClient("http://backend.test/", timeout=5, session=mock_session)
    assert client.exists(SALES, Period("03", "2025")) is True
    mock_session.request.assert_called_once_with(
        "GET",
        "http://backend.test/input/check-sales-exists",
        timeout=5,
        params={"month": "03", "year": "2025"},
    )


@pytest.mark.parametrize("body, expected", [(False, False), ("true", True), ("FALSE", False)])
def test_exists_accepts_boolean_forms(mock_session, body, expected):
    mock_session.request.return_value = make_response(200, body)
    client = BackendClient("http://backend.test", session=mock_session)
    assert client.exists(SALES, Period("01", "2024")) is expected


def test_exists_rejects_non_boolean(mock_session):
    mock_session.request.return_value = make_response(200, {"exists": True})
    client = BackendClient("http://backend.test", session=mock_session)
    with pytest.raises(BackendError):
        client.exists(SALES, Period("01", "2024"))


def test_network_error_becomes_backend_error(mock_session):
    mock_session.request.side_effect = requests.ConnectionError("refused")
    client = BackendClient("http://backend.test", session=mock_session)
    with pytest.raises(BackendError) as exc:
        client.fetch_committed(LEDGER)
    assert exc.value.status_code is None


def test_error_body_message_is_surfaced(mock_session):
    mock_session.request.return_value = make_response(400, {"message": "Ledger already imported"})
    client = BackendClient("http://backend.test", session=mock_session)
    with pytest.raises(BackendError) as exc:
        client.submit(LEDGER, [{"ledgerName": "Rent", "amount": 1, "month": "01", "year": "2024"}])
    assert exc.value.status_code == 400
    assert exc.value.backend_message == "Ledger already imported"


def test_error_without_body(mock_session):
    mock_session.request.return_value = make_response(500)
    client = BackendClient("http://backend.test", session=mock_session)
    with pytest.raises(BackendError) as exc:
        client.submit(LEDGER, [])
    assert exc.value.backend_message is None


def test_submit_posts_json_array(mock_session):
    mock_session.request.return_value = make_response(200)
    client = BackendClient("http://backend.test", session=mock_session)
    records = [{"ledgerName": "Rent", "amount": 10, "month": "02", "year": "2025"}]
    assert client.submit(LEDGER, records) is None
    args, kwargs = mock_session.request.call_args
    assert args == ("POST", "http://backend.test/input/import-ledger-entries")
    assert kwargs["json"] == records


def test_fetch_committed(mock_session):
    mock_session.request.return_value = make_response(200, [{"ledgerName": "Rent", "amount": 10}])
    client = BackendClient("http://backend.test", session=mock_session)
    assert client.fetch_committed(LEDGER) == [{"ledgerName": "Rent", "amount": 10}]


def test_fetch_committed_rejects_non_list(mock_session):
    mock_session.request.return_value = make_response(200, {"items": []})
    client = BackendClient("http://backend.test", session=mock_session)
    with pytest.raises(BackendError):
        client.fetch_committed(LEDGER)


def test_from_config_reads_token_env(mock_session, monkeypatch):
    monkeypatch.setenv("QUARRY_TEST_TOKEN", "s3cret")
    cfg = ApiConfig(base_url="http://backend.test", timeout_seconds=7, token_env="QUARRY_TEST_TOKEN")
    client = BackendClient.from_config(cfg, session=mock_session)
    assert client.timeout == 7
    assert mock_session.headers["Authorization"] == "Bearer s3cret"
    assert mock_session.headers["Accept"] == "application/json"
