"""Pytest configuration and fixtures."""

from __future__ import annotations

import sys
import tempfile
from pathlib import Path

import pytest

# Ensure project root is on path when running tests
_project_root = Path(__file__).resolve().parents[2]
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from tankgauge_app.models import CalibrationPoint, ProductType, Tank, Vessel, VesselTank
from tankgauge_app.repositories.history_repository import InMemoryHistoryRepository
from tankgauge_app.services.calibration_store import CalibrationStore
from tankgauge_app.services.measurement_history import MeasurementHistoryService


@pytest.fixture
def temp_db():
    """Create a temporary SQLite database and return its path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        path = Path(f.name)
    yield path
    try:
        path.unlink(missing_ok=True)
    except OSError:
        pass  # Windows may hold file; ignore cleanup failure


@pytest.fixture
def db_session(temp_db):
    """Provide a database session with initialized schema."""
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker
    from tankgauge_app.repositories.database import Base
    from tankgauge_app.repositories.vessel_repository import VesselORM  # noqa: F401
    from tankgauge_app.repositories.history_repository import MeasurementHistoryORM  # noqa: F401

    engine = create_engine(f"sqlite:///{temp_db}", future=True)
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def sample_curve():
    """Calibration curve with two trims: 0 (heights 0/100/200) and +50 (0/100)."""
    return (
        CalibrationPoint(trim=0, height=0.0, volume=0.0),
        CalibrationPoint(trim=0, height=100.0, volume=1000.0),
        CalibrationPoint(trim=0, height=200.0, volume=2200.0),
        CalibrationPoint(trim=50, height=0.0, volume=0.0),
        CalibrationPoint(trim=50, height=100.0, volume=950.0),
    )


@pytest.fixture
def sample_vessel(sample_curve):
    return Vessel(
        id="v1",
        external_id="B-001",
        name="Balsa Teste",
        owner="Navegação Teste",
        executor="Navegação Teste",
        tanks=(
            VesselTank(
                id="t1",
                external_id="B-001-T1",
                tank_name="Tanque 1BB",
                max_calibrated_height=200.0,
                max_volume=2200.0,
                calibration_curve=sample_curve,
            ),
            VesselTank(
                id="t2",
                external_id="B-001-T2",
                tank_name="Tanque 1BE",
                max_calibrated_height=200.0,
                max_volume=1800.0,
            ),
        ),
    ).with_recomputed_capacity()


@pytest.fixture
def sample_store(sample_vessel):
    return CalibrationStore.of([sample_vessel])


@pytest.fixture
def history_service():
    return MeasurementHistoryService(InMemoryHistoryRepository())


@pytest.fixture
def hydrated_tank():
    """Operation tank with a compliant hydrated-ethanol sample at 20 °C."""
    return Tank(
        id="op1",
        product=ProductType.HYDRATED,
        tank_name="Tanque 1BB",
        vessel_tank_id="t1",
        vamb_l=10000.0,
        rho_obs=808.2,
        sample_temp_c=20.0,
    )
