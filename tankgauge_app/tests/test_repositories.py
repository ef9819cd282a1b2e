"""Tests for repositories."""

from __future__ import annotations

import json
from datetime import date, datetime, timezone

import pytest

from tankgauge_app.models import MeasurementLog, MeasurementOperationType, TankMeasurement
from tankgauge_app.repositories.database import init_database
from tankgauge_app.repositories.history_repository import (
    HistoryReadError,
    MeasurementHistoryORM,
    SqlHistoryRepository,
)
from tankgauge_app.repositories.vessel_repository import VesselRepository
from tankgauge_app.services.calibration_store import CalibrationStore, upsert_vessel
from tankgauge_app.services.measurement_history import MeasurementHistoryService


class TestVesselRepository:
    def test_load_empty(self, db_session):
        assert len(VesselRepository(db_session).load_store()) == 0

    def test_save_and_load_round_trip(self, db_session, sample_store):
        store, _, _ = upsert_vessel(
            sample_store, "B-002", "Balsa 2",
            issue_date=date(2024, 5, 1), expiry_date=date(2027, 5, 1),
        )
        repo = VesselRepository(db_session)
        repo.save_store(store)

        loaded = repo.load_store()
        assert loaded == store

    def test_save_replaces_previous_snapshot(self, db_session, sample_store):
        repo = VesselRepository(db_session)
        repo.save_store(sample_store)
        repo.save_store(CalibrationStore())
        assert len(repo.load_store()) == 0

    def test_init_database(self, temp_db):
        session_factory = init_database(temp_db)
        session = session_factory()
        try:
            assert len(VesselRepository(session).load_store()) == 0
        finally:
            session.close()


class TestSqlHistoryRepository:
    def test_put_and_get(self, db_session):
        repo = SqlHistoryRepository(db_session, prefix="qc_history")
        log = MeasurementLog(
            id="m1",
            vessel_id="v1",
            date_time=datetime(2025, 1, 2, 10, 30),
            operation_type=MeasurementOperationType.FINAL_DISCHARGE,
            product="Hidratado",
            operator="Ana",
            total_volume=1500.0,
            measurements=(
                TankMeasurement(tank_id=None, tank_name="Unknown tank", trim=0,
                                height=10.0, calculated_volume=1500.0),
            ),
        )
        repo.put("v1", [log])
        assert repo.get("v1") == [log]
        assert db_session.get(MeasurementHistoryORM, "qc_history_v1") is not None

    def test_missing_vessel(self, db_session):
        assert SqlHistoryRepository(db_session).get("nope") == []

    def test_corrupt_payload_raises(self, db_session):
        db_session.add(MeasurementHistoryORM(storage_key="qc_history_v1", payload_json="{not json"))
        db_session.commit()
        with pytest.raises(HistoryReadError):
            SqlHistoryRepository(db_session).get("v1")

    def test_utc_suffix_timestamp(self, db_session):
        payload = [{
            "id": "old",
            "vesselId": "v1",
            "dateTime": "2024-12-31T13:00:00.000Z",
            "operationType": "afericao_rotina",
            "measurements": [],
        }]
        db_session.add(MeasurementHistoryORM(storage_key="qc_history_v1", payload_json=json.dumps(payload)))
        db_session.commit()
        (log,) = SqlHistoryRepository(db_session).get("v1")
        assert log.date_time == datetime(2024, 12, 31, 13, 0, tzinfo=timezone.utc)


class TestHistoryNotOverwritten:
    """Stored entries that cannot be read must survive an append."""

    def _store_payload(self, db_session, payload_json):
        db_session.add(MeasurementHistoryORM(storage_key="qc_history_v1", payload_json=payload_json))
        db_session.commit()

    def _new_log(self):
        return MeasurementLog(
            id="a",
            vessel_id="v1",
            date_time=datetime(2025, 1, 2, 10, 30),
            operation_type=MeasurementOperationType.ROUTINE_CHECK,
        )

    def test_unknown_operation_type_entry_kept(self, db_session):
        payload = json.dumps([{
            "id": "old",
            "vesselId": "v1",
            "dateTime": "2025-01-01T08:00:00",
            "operationType": "transbordo",
            "measurements": [],
        }])
        self._store_payload(db_session, payload)
        service = MeasurementHistoryService(SqlHistoryRepository(db_session))
        with pytest.raises(HistoryReadError):
            service.append("v1", [self._new_log()])
        stored = db_session.get(MeasurementHistoryORM, "qc_history_v1").payload_json
        assert stored == payload
        assert [item["id"] for item in json.loads(stored)] == ["old"]

    def test_corrupt_payload_kept(self, db_session):
        self._store_payload(db_session, "{not json")
        service = MeasurementHistoryService(SqlHistoryRepository(db_session))
        failures = service.append_all({"v1": [self._new_log()]})
        assert set(failures) == {"v1"}
        assert db_session.get(MeasurementHistoryORM, "qc_history_v1").payload_json == "{not json"
