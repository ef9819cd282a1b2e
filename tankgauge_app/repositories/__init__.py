"""
Repository layer for persistence (SQLite via SQLAlchemy).
"""

from tankgauge_app.repositories.database import SessionLocal, Base, init_database
from tankgauge_app.repositories.vessel_repository import VesselRepository
from tankgauge_app.repositories.history_repository import (
    HistoryReadError,
    InMemoryHistoryRepository,
    MeasurementHistoryRepository,
    SqlHistoryRepository,
    history_key,
)

__all__ = [
    "SessionLocal",
    "Base",
    "init_database",
    "VesselRepository",
    "HistoryReadError",
    "InMemoryHistoryRepository",
    "MeasurementHistoryRepository",
    "SqlHistoryRepository",
    "history_key",
]
