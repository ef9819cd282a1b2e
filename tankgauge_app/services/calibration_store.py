"""
Calibration store: Vessel → VesselTank → CalibrationPoint as an immutable snapshot.

Every mutation is an upsert that returns a new store, so a failed partial
import can simply be discarded. Upserts are idempotent: re-applying the same
record changes no field (it is still reported as UPDATED).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Iterable, Iterator, Tuple

from tankgauge_app.models import CalibrationPoint, EquipmentType, Vessel, VesselTank


class UpsertOutcome(Enum):
    CREATED = "created"
    UPDATED = "updated"


def new_id() -> str:
    """Internal identifier for newly created vessels and tanks."""
    return uuid.uuid4().hex


@dataclass(frozen=True, slots=True)
class CalibrationStore:
    vessels: Tuple[Vessel, ...] = field(default_factory=tuple)

    @classmethod
    def of(cls, vessels: Iterable[Vessel]) -> "CalibrationStore":
        return cls(vessels=tuple(vessels))

    def __iter__(self) -> Iterator[Vessel]:
        return iter(self.vessels)

    def __len__(self) -> int:
        return len(self.vessels)

    # --- Lookups ---

    def find_vessel(self, vessel_id: str) -> Vessel | None:
        for vessel in self.vessels:
            if vessel.id == vessel_id:
                return vessel
        return None

    def find_vessel_by_external_id(self, external_id: str) -> Vessel | None:
        if not external_id:
            return None
        for vessel in self.vessels:
            if vessel.external_id == external_id:
                return vessel
        return None

    def find_tank_by_external_id(self, external_id: str) -> Tuple[Vessel, VesselTank] | None:
        """Search all vessels; tank external ids are assumed globally unique."""
        if not external_id:
            return None
        for vessel in self.vessels:
            tank = vessel.find_tank_by_external_id(external_id)
            if tank is not None:
                return vessel, tank
        return None

    def find_point(self, tank_external_id: str, trim: int, height: float) -> CalibrationPoint | None:
        found = self.find_tank_by_external_id(tank_external_id)
        if found is None:
            return None
        return found[1].find_point(trim, height)

    # --- Functional updates ---

    def replace_vessel(self, vessel: Vessel) -> "CalibrationStore":
        """New store with the vessel of the same id replaced (appended if absent)."""
        if self.find_vessel(vessel.id) is None:
            return CalibrationStore(vessels=self.vessels + (vessel,))
        return CalibrationStore(
            vessels=tuple(vessel if v.id == vessel.id else v for v in self.vessels)
        )

    def recompute_capacities(self, vessel_ids: Iterable[str]) -> "CalibrationStore":
        """Recompute total_theoretical_capacity for the given vessels only."""
        ids = set(vessel_ids)
        if not ids:
            return self
        return CalibrationStore(
            vessels=tuple(
                v.with_recomputed_capacity() if v.id in ids else v for v in self.vessels
            )
        )


def _keep(new: str, old: str) -> str:
    """Absent (blank) optional text keeps the prior value."""
    return new if new else old


def upsert_vessel(
    store: CalibrationStore,
    external_id: str,
    name: str,
    owner: str = "",
    issue_date: date | None = None,
    expiry_date: date | None = None,
    certificate_number: str = "",
    notes: str = "",
    equipment_type: EquipmentType = EquipmentType.TANK_BARGE,
) -> Tuple[CalibrationStore, Vessel, UpsertOutcome]:
    """Create or update the vessel keyed by external_id. owner is also recorded as executor."""
    existing = store.find_vessel_by_external_id(external_id)
    if existing is None:
        vessel = Vessel(
            id=new_id(),
            external_id=external_id,
            name=name,
            type=equipment_type,
            owner=owner,
            executor=owner,
            certificate_number=certificate_number,
            issue_date=issue_date,
            expiry_date=expiry_date,
            notes=notes,
        )
        return store.replace_vessel(vessel), vessel, UpsertOutcome.CREATED

    vessel = replace(
        existing,
        name=name,
        owner=_keep(owner, existing.owner),
        executor=_keep(owner, existing.executor),
        issue_date=issue_date or existing.issue_date,
        expiry_date=expiry_date or existing.expiry_date,
        certificate_number=_keep(certificate_number, existing.certificate_number),
        notes=_keep(notes, existing.notes),
    )
    return store.replace_vessel(vessel), vessel, UpsertOutcome.UPDATED


def upsert_tank(
    store: CalibrationStore,
    vessel: Vessel,
    external_id: str,
    tank_name: str,
    max_calibrated_height: float | None = None,
    max_volume: float | None = None,
) -> Tuple[CalibrationStore, VesselTank, UpsertOutcome]:
    """Create or update the tank keyed by external_id inside vessel (which must be in store)."""
    existing = vessel.find_tank_by_external_id(external_id)
    if existing is None:
        tank = VesselTank(
            id=new_id(),
            external_id=external_id,
            tank_name=tank_name,
            max_calibrated_height=max_calibrated_height if max_calibrated_height is not None else 0.0,
            max_volume=max_volume if max_volume is not None else 0.0,
        )
        tanks = vessel.tanks + (tank,)
        outcome = UpsertOutcome.CREATED
    else:
        tank = replace(
            existing,
            tank_name=tank_name,
            max_calibrated_height=(
                max_calibrated_height if max_calibrated_height is not None
                else existing.max_calibrated_height
            ),
            max_volume=max_volume if max_volume is not None else existing.max_volume,
        )
        tanks = tuple(tank if t.id == existing.id else t for t in vessel.tanks)
        outcome = UpsertOutcome.UPDATED
    return store.replace_vessel(replace(vessel, tanks=tanks)), tank, outcome


def upsert_calibration_point(
    store: CalibrationStore,
    vessel: Vessel,
    tank: VesselTank,
    point: CalibrationPoint,
) -> Tuple[CalibrationStore, UpsertOutcome]:
    """Create or update the point keyed by (trim, height) in tank (owned by vessel)."""
    existing = tank.find_point(point.trim, point.height)
    if existing is None:
        curve = tank.calibration_curve + (point,)
        outcome = UpsertOutcome.CREATED
    else:
        curve = tuple(
            point if (p.trim == point.trim and p.height == point.height) else p
            for p in tank.calibration_curve
        )
        outcome = UpsertOutcome.UPDATED
    new_tank = replace(tank, calibration_curve=curve)
    tanks = tuple(new_tank if t.id == tank.id else t for t in vessel.tanks)
    return store.replace_vessel(replace(vessel, tanks=tanks)), outcome
