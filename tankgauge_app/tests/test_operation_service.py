"""Tests for operation-time tank handling."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

import pytest

from tankgauge_app.models import MeasurementOperationType, ProductType, ResultStatus
from tankgauge_app.services.interpolation import HeightOutOfRange
from tankgauge_app.services.operation_service import (
    add_seal,
    build_measurement_log,
    gauge_tank,
    mark_empty,
    remove_seal,
    seed_operation_tanks,
)


class TestSeed:
    def test_one_tank_per_vessel_tank(self, sample_vessel):
        tanks = seed_operation_tanks(sample_vessel, ProductType.ANHYDROUS, client="Usina")
        assert [t.vessel_tank_id for t in tanks] == ["t1", "t2"]
        assert all(t.product is ProductType.ANHYDROUS for t in tanks)
        assert all(t.results.status is ResultStatus.PENDING for t in tanks)
        assert tanks[0].ident == "Balsa Teste"


class TestGauge:
    def test_volume_from_curve_then_corrected(self, sample_vessel, hydrated_tank):
        tank = replace(hydrated_tank, vamb_l=None, trim=0, height_cm=150.0)
        gauged = gauge_tank(tank, sample_vessel.find_tank("t1"))
        assert gauged.vamb_l == pytest.approx(1600.0)
        assert gauged.results.status is ResultStatus.OK
        assert gauged.results.v20 == pytest.approx(1600.0, abs=0.5)

    def test_out_of_range_propagates(self, sample_vessel, hydrated_tank):
        tank = replace(hydrated_tank, trim=50, height_cm=150.0)
        with pytest.raises(HeightOutOfRange):
            gauge_tank(tank, sample_vessel.find_tank("t1"))

    def test_no_height_stays_pending(self, sample_vessel, hydrated_tank):
        tank = replace(hydrated_tank, vamb_l=None, height_cm=None)
        assert gauge_tank(tank, sample_vessel.find_tank("t1")).results.status is ResultStatus.PENDING

    def test_mark_empty(self, hydrated_tank):
        emptied = mark_empty(hydrated_tank)
        assert emptied.is_empty
        assert emptied.vamb_l == 0.0
        assert emptied.rho_obs is None
        assert emptied.results.v20 == 0.0
        assert emptied.results.status is ResultStatus.PENDING


class TestMeasurementLog:
    def test_total_is_sum_of_ambient_volumes(self, sample_vessel):
        tanks = seed_operation_tanks(sample_vessel)
        tanks[0] = replace(tanks[0], vamb_l=1000.0, height_cm=100.0)
        tanks[1] = replace(tanks[1], vamb_l=250.5, height_cm=20.0)
        log = build_measurement_log(
            sample_vessel, tanks, MeasurementOperationType.FINAL_DISCHARGE,
            operator="Ana", date_time=datetime(2025, 2, 1, 9, 0),
        )
        assert log.vessel_id == "v1"
        assert log.total_volume == pytest.approx(1250.5)
        assert log.product == ProductType.HYDRATED.value
        assert [m.tank_id for m in log.measurements] == ["t1", "t2"]


class TestSeals:
    def test_add_deduplicates_and_remove(self, hydrated_tank):
        tank = add_seal(hydrated_tank, "L-100")
        tank = add_seal(tank, " L-100 ")
        tank = add_seal(tank, "L-101")
        tank = add_seal(tank, "")
        assert tank.lacres == ("L-100", "L-101")
        assert remove_seal(tank, "L-100").lacres == ("L-101",)
