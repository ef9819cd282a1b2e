"""
Completed gauging events (measurement history) and their JSON form.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Tuple

UNKNOWN_TANK_NAME = "Unknown tank"


def _parse_timestamp(text: str) -> datetime:
    """ISO timestamp; a trailing "Z" (UTC) is accepted on every Python version."""
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


class MeasurementOperationType(Enum):
    INITIAL_LOADING = "carregamento_inicial"
    PARTIAL_DISCHARGE = "descarga_parcial"
    FINAL_DISCHARGE = "descarga_final"
    ROUTINE_CHECK = "afericao_rotina"


@dataclass(frozen=True, slots=True)
class TankMeasurement:
    """Per-tank reading inside a MeasurementLog. tank_id is a weak reference (may be None)."""
    tank_id: str | None
    tank_name: str
    trim: int
    height: float
    calculated_volume: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tankId": self.tank_id,
            "tankName": self.tank_name,
            "trim": self.trim,
            "height": self.height,
            "calculatedVolume": self.calculated_volume,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TankMeasurement":
        return cls(
            tank_id=data.get("tankId"),
            tank_name=data.get("tankName") or UNKNOWN_TANK_NAME,
            trim=int(data.get("trim", 0)),
            height=float(data.get("height", 0.0)),
            calculated_volume=float(data.get("calculatedVolume", 0.0)),
        )


@dataclass(frozen=True, slots=True)
class MeasurementLog:
    id: str
    vessel_id: str
    date_time: datetime
    operation_type: MeasurementOperationType
    product: str = ""
    operator: str = ""
    total_volume: float = 0.0
    origin: str = ""
    destination: str = ""
    measurements: Tuple[TankMeasurement, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "vesselId": self.vessel_id,
            "dateTime": self.date_time.isoformat(),
            "operationType": self.operation_type.value,
            "product": self.product,
            "operator": self.operator,
            "totalVolume": self.total_volume,
            "origin": self.origin,
            "destination": self.destination,
            "measurements": [m.to_dict() for m in self.measurements],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MeasurementLog":
        return cls(
            id=str(data["id"]),
            vessel_id=str(data["vesselId"]),
            date_time=_parse_timestamp(data["dateTime"]),
            operation_type=MeasurementOperationType(data["operationType"]),
            product=data.get("product", ""),
            operator=data.get("operator", ""),
            total_volume=float(data.get("totalVolume", 0.0)),
            origin=data.get("origin") or "",
            destination=data.get("destination") or "",
            measurements=tuple(
                TankMeasurement.from_dict(m) for m in data.get("measurements", [])
            ),
        )
