"""
Domain models for the tank gauging application.

These are pure Python/domain classes, separate from ORM mappings.
"""

from tankgauge_app.models.vessel import CalibrationPoint, EquipmentType, Vessel, VesselTank
from tankgauge_app.models.measurement import (
    UNKNOWN_TANK_NAME,
    MeasurementLog,
    MeasurementOperationType,
    TankMeasurement,
)
from tankgauge_app.models.operation import (
    ModalType,
    ProductType,
    ResultStatus,
    Tank,
    TankResults,
)

__all__ = [
    "CalibrationPoint",
    "EquipmentType",
    "Vessel",
    "VesselTank",
    "UNKNOWN_TANK_NAME",
    "MeasurementLog",
    "MeasurementOperationType",
    "TankMeasurement",
    "ModalType",
    "ProductType",
    "ResultStatus",
    "Tank",
    "TankResults",
]
