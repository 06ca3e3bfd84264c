from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from app.models.premises_visit import RoundWindow
from app.services.premises import repositories as repositories_module
from app.services.premises.errors import RoundWindowPersistenceError
from app.services.premises.repositories import (
    InMemoryRoundWindowRepository,
    SupabaseRoundWindowRepository,
)
from tests.helpers.metrics_stub import StubMetrics


@pytest.fixture()
def stub_metrics(monkeypatch) -> StubMetrics:
    stub = StubMetrics()
    monkeypatch.setattr(repositories_module, "metrics", stub)
    return stub


@pytest.fixture()
def sqlite_repository(tmp_path) -> SupabaseRoundWindowRepository:
    return SupabaseRoundWindowRepository.from_url(
        f"sqlite:///{tmp_path / 'rounds.db'}",
        auto_create_schema=True,
    )


def test_in_memory_repository_accepts_rows_and_models():
    repository = InMemoryRoundWindowRepository(
        [
            RoundWindow(batch_name="Batch 1", round_number=1, start_date=date(2025, 1, 1), end_date=date(2025, 2, 1)),
            {"batch_name": "Batch 1", "round_number": "2", "start_date": "2025-03-01", "end_date": "2025-04-01"},
            {"batch_name": "Batch 1", "round_number": "3", "start_date": "", "end_date": ""},
        ]
    )

    assert [window.round_number for window in repository.list_windows()] == [1, 2]
    assert repository.add({"batch_name": ""}) is None


def test_supabase_repository_round_trips_windows(sqlite_repository, stub_metrics):
    batch_id, created = sqlite_repository.ensure_batch("Batch 5 Bangkit", program="Bangkit")
    again_id, created_again = sqlite_repository.ensure_batch("Batch 5 Bangkit", program="Bangkit")

    assert created is True
    assert created_again is False
    assert again_id == batch_id

    assert sqlite_repository.ensure_round(batch_id, 2, start_date=date(2025, 4, 1), end_date=date(2025, 6, 30))
    assert sqlite_repository.ensure_round(batch_id, 1, start_date=date(2025, 1, 1), end_date=date(2025, 3, 31))
    assert not sqlite_repository.ensure_round(batch_id, 1, start_date=date(2025, 1, 2), end_date=date(2025, 3, 31))

    windows = sqlite_repository.list_windows()

    assert windows == [
        RoundWindow(batch_name="Batch 5 Bangkit", round_number=1, start_date=date(2025, 1, 1), end_date=date(2025, 3, 31)),
        RoundWindow(batch_name="Batch 5 Bangkit", round_number=2, start_date=date(2025, 4, 1), end_date=date(2025, 6, 30)),
    ]
    assert stub_metrics.gauge_calls[-1]["metric"] == "rounds.loaded"
    assert stub_metrics.gauge_calls[-1]["value"] == 2


def test_rounds_without_dates_are_skipped(sqlite_repository, stub_metrics):
    batch_id, _ = sqlite_repository.ensure_batch("Batch 9 Maju", program="Maju")
    sqlite_repository.ensure_round(batch_id, 1, start_date=None, end_date=None)

    assert sqlite_repository.list_windows() == []


def test_database_errors_are_wrapped(tmp_path, stub_metrics):
    repository = SupabaseRoundWindowRepository.from_url(f"sqlite:///{tmp_path / 'empty.db'}")

    with pytest.raises(RoundWindowPersistenceError) as excinfo:
        repository.list_windows()

    assert excinfo.value.code == "500_ROUND_WINDOWS"
    assert isinstance(excinfo.value.__cause__, OperationalError)


def test_lookups_do_not_write(sqlite_repository, stub_metrics):
    assert sqlite_repository.find_batch("Batch 5 Bangkit") is None

    batch_id, _ = sqlite_repository.ensure_batch("Batch 5 Bangkit", program="Bangkit")
    sqlite_repository.ensure_round(batch_id, 1, start_date=date(2025, 1, 1), end_date=date(2025, 3, 31))

    assert sqlite_repository.find_batch("Batch 5 Bangkit") == batch_id
    assert sqlite_repository.has_round(batch_id, 1) is True
    assert sqlite_repository.has_round(batch_id, 2) is False
    assert len(sqlite_repository.list_windows()) == 1


def test_lookup_errors_are_wrapped(tmp_path, stub_metrics):
    repository = SupabaseRoundWindowRepository.from_url(f"sqlite:///{tmp_path / 'empty.db'}")

    with pytest.raises(RoundWindowPersistenceError):
        repository.find_batch("Batch 5 Bangkit")
