from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple


class ProductType(Enum):
    ANHYDROUS = "anidro"
    HYDRATED = "hidratado"
    BULK = "granel"

    @property
    def is_liquid(self) -> bool:
        return self is not ProductType.BULK


class ModalType(Enum):
    ROAD = "rodoviario"
    RIVER = "fluvial"
    RAIL = "ferroviario"
    LAND = "terra"
    SEA = "maritimo"
    AIR = "aereo"
    PIPELINE = "dutoviario"


class ResultStatus(Enum):
    OK = "OK"
    OUT_OF_SPEC = "FORA"
    PENDING = "PENDING"


@dataclass(frozen=True, slots=True)
class TankResults:
    """Corrected measurement: ρ@20 (kg/m³), FCV, INPM (% mass), V@20 (L)."""
    r20: float = math.nan
    fcv: float = math.nan
    inpm: float = math.nan
    v20: float = math.nan
    status: ResultStatus = ResultStatus.PENDING
    messages: Tuple[str, ...] = ()

    @classmethod
    def pending(cls) -> "TankResults":
        return cls()

    @classmethod
    def zeroed(cls) -> "TankResults":
        return cls(r20=0.0, fcv=0.0, inpm=0.0, v20=0.0, status=ResultStatus.PENDING)


@dataclass(slots=True)
class Tank:
    """
    A tank's state during one in-progress operation.

    Raw inputs are kept as entered (None when blank). vessel_tank_id links to
    the calibrated VesselTank when the operation was seeded from a vessel.
    """
    id: str
    product: ProductType = ProductType.HYDRATED
    modal: ModalType = ModalType.RIVER
    ident: str = ""  # vessel name or plate
    tank_name: str = ""
    client: str = ""
    vessel_tank_id: str | None = None

    vamb_l: float | None = None
    rho_obs: float | None = None  # kg/m³ at sample temperature
    sample_temp_c: float | None = None
    tank_temp_c: float | None = None
    trim: int = 0
    height_cm: float | None = None
    ballast_mm: float | None = None

    lacres: Tuple[str, ...] = ()
    is_empty: bool = False
    results: TankResults = field(default_factory=TankResults.pending)
