from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Tuple


class EquipmentType(Enum):
    TANK_BARGE = "balsa-tanque"
    BULK_BARGE = "balsa-granel"
    TANKER = "navio-tanque"
    BULK_CARRIER = "navio-granel"


@dataclass(frozen=True, slots=True)
class CalibrationPoint:
    """One row of a tank calibration (arqueação) table at a given trim."""
    trim: int = 0
    height: float = 0.0
    volume: float = 0.0


@dataclass(frozen=True, slots=True)
class VesselTank:
    id: str
    external_id: str | None = None
    tank_name: str = ""
    max_calibrated_height: float | None = None
    max_volume: float | None = None
    calibration_curve: Tuple[CalibrationPoint, ...] = ()

    def find_point(self, trim: int, height: float) -> CalibrationPoint | None:
        for point in self.calibration_curve:
            if point.trim == trim and point.height == height:
                return point
        return None


@dataclass(frozen=True, slots=True)
class Vessel:
    """
    Vessel with its calibration certificate data and tanks.

    total_theoretical_capacity is derived from the tanks' max_volume; use
    with_recomputed_capacity after changing tanks.
    """
    id: str
    external_id: str | None = None
    name: str = ""
    type: EquipmentType = EquipmentType.TANK_BARGE
    owner: str = ""
    executor: str = ""
    certificate_number: str = ""
    issue_date: date | None = None
    expiry_date: date | None = None
    notes: str = ""
    total_theoretical_capacity: float = 0.0
    tanks: Tuple[VesselTank, ...] = field(default_factory=tuple)

    def find_tank_by_external_id(self, external_id: str) -> VesselTank | None:
        if not external_id:
            return None
        for tank in self.tanks:
            if tank.external_id == external_id:
                return tank
        return None

    def find_tank(self, tank_id: str) -> VesselTank | None:
        for tank in self.tanks:
            if tank.id == tank_id:
                return tank
        return None

    def with_recomputed_capacity(self) -> "Vessel":
        total = sum(t.max_volume or 0.0 for t in self.tanks)
        return replace(self, total_theoretical_capacity=total)
