from __future__ import annotations

import pytest

from quarry_intake.models.staged_row import StagedRow
from quarry_intake.schemas.domains import INWARD_CONSUMPTION_SLURRY, LEDGER
from quarry_intake.services.staging import StagingStore


def _ledger_rows(*names: str) -> list[StagedRow]:
    return [StagedRow(i, {"listOfLedgers": n, "amount": i * 10}) for i, n in enumerate(names, start=1)]


@pytest.fixture()
def store() -> StagingStore:
    s = StagingStore(LEDGER)
    s.replace(_ledger_rows("A", "B", "C", "D"))
    return s


def test_remove_renumbers_preserving_order(store: StagingStore):
    removed = store.remove([2])
    assert removed == 1
    assert [(r.id, r.values["listOfLedgers"]) for r in store.rows] == [(1, "A"), (2, "C"), (3, "D")]


def test_remove_clears_selection(store: StagingStore):
    store.select([1, 3])
    store.remove([1])
    assert store.selected_ids == frozenset()
    assert all(not r.selected for r in store.rows)


def test_remove_ignores_unknown_ids(store: StagingStore):
    assert store.remove([99]) == 0
    assert len(store) == 4


def test_ids_stay_contiguous_after_any_mutation(store: StagingStore):
    store.remove([1, 4])
    store.remove([1])
    assert [r.id for r in store.rows] == list(range(1, len(store) + 1))


def test_submission_rows_default_to_all(store: StagingStore):
    assert [r.id for r in store.submission_rows()] == [1, 2, 3, 4]
    store.select([2, 4])
    assert [r.values["listOfLedgers"] for r in store.submission_rows()] == ["B", "D"]
    store.deselect([2])
    assert [r.id for r in store.submission_rows()] == [4]
    store.clear_selection()
    assert len(store.submission_rows()) == 4


def test_select_unknown_id_raises(store: StagingStore):
    with pytest.raises(KeyError):
        store.select([5])
    assert store.selected_ids == frozenset()


def test_remove_selected(store: StagingStore):
    store.select([1, 2])
    assert store.remove_selected() == 2
    assert [r.values["listOfLedgers"] for r in store.rows] == ["C", "D"]


def test_replace_and_clear(store: StagingStore):
    store.select([1])
    store.replace(_ledger_rows("X"))
    assert [r.id for r in store.rows] == [1]
    assert store.selected_ids == frozenset()
    store.clear()
    assert store.is_empty


def test_update_coerces_values(store: StagingStore):
    row = store.update(2, amount="1,500")
    assert row.values["amount"] == 1500
    assert store.get(2).values["amount"] == 1500


def test_update_rejects_unknown_field_and_row(store: StagingStore):
    with pytest.raises(KeyError):
        store.update(2, nope=1)
    with pytest.raises(KeyError):
        store.update(9, amount=1)


def test_serial_numbers_follow_renumbering():
    s = StagingStore(INWARD_CONSUMPTION_SLURRY)
    s.replace(
        [StagedRow(i, {"serialNo": i, "particulars": p, "quarryValues": {}}) for i, p in enumerate("abc", start=1)]
    )
    s.remove([1])
    assert [(r.id, r.values["serialNo"]) for r in s.rows] == [(1, 1), (2, 2)]
    with pytest.raises(KeyError):
        s.update(1, serialNo=7)
