"""Tests for measurement history merging."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

from tankgauge_app.models import MeasurementLog, MeasurementOperationType
from tankgauge_app.repositories.history_repository import InMemoryHistoryRepository, history_key
from tankgauge_app.services.measurement_history import MeasurementHistoryService, merge_history


def _log(log_id: str, when: datetime, vessel_id: str = "v1") -> MeasurementLog:
    return MeasurementLog(
        id=log_id,
        vessel_id=vessel_id,
        date_time=when,
        operation_type=MeasurementOperationType.ROUTINE_CHECK,
    )


class TestMergeHistory:
    def test_descending_order(self):
        existing = [_log("b", datetime(2025, 1, 2)), _log("a", datetime(2025, 1, 1))]
        merged = merge_history(existing, [_log("c", datetime(2025, 1, 3))])
        assert [log.id for log in merged] == ["c", "b", "a"]

    def test_nothing_removed(self):
        existing = [_log("a", datetime(2025, 1, 1))]
        merged = merge_history(existing, [_log("a2", datetime(2025, 1, 1))])
        assert {log.id for log in merged} == {"a", "a2"}

    def test_aware_and_naive_timestamps(self):
        aware = _log("utc", datetime(2025, 1, 2, tzinfo=timezone(timedelta(hours=-3))))
        naive = _log("naive", datetime(2025, 1, 2, 1, 0))
        merged = merge_history([naive], [aware])
        assert [log.id for log in merged] == ["utc", "naive"]


class TestMeasurementHistoryService:
    def test_append_persists_under_vessel_key(self):
        repo = InMemoryHistoryRepository(prefix="qc")
        service = MeasurementHistoryService(repo)
        service.append("v1", [_log("a", datetime(2025, 1, 1))])
        assert repo.keys() == [history_key("qc", "v1")] == ["qc_v1"]

    def test_vessels_are_independent(self):
        service = MeasurementHistoryService(InMemoryHistoryRepository())
        service.append_all({
            "v1": [_log("a", datetime(2025, 1, 1))],
            "v2": [_log("b", datetime(2025, 1, 1), vessel_id="v2")],
        })
        assert [log.id for log in service.history("v1")] == ["a"]
        assert [log.id for log in service.history("v2")] == ["b"]

    def test_concurrent_appends_same_vessel(self):
        service = MeasurementHistoryService(InMemoryHistoryRepository())
        base = datetime(2025, 1, 1)

        def worker(offset: int) -> None:
            for i in range(20):
                service.append("v1", [_log(f"{offset}-{i}", base + timedelta(minutes=offset * 100 + i))])

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        history = service.history("v1")
        assert len(history) == 80
        assert history == sorted(history, key=lambda log: log.date_time, reverse=True)
