from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Dict, List

from sqlalchemy import Date, Float, ForeignKey, Integer, String, Text, delete
from sqlalchemy.orm import Mapped, mapped_column, Session

from .database import Base
from ..models import CalibrationPoint, EquipmentType, Vessel, VesselTank
from ..services.calibration_store import CalibrationStore


class VesselORM(Base):
    __tablename__ = "vessels"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, default=0)
    external_id: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(32), default=EquipmentType.TANK_BARGE.value)
    owner: Mapped[str] = mapped_column(String(255), default="")
    executor: Mapped[str] = mapped_column(String(255), default="")
    certificate_number: Mapped[str] = mapped_column(String(64), default="")
    issue_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str] = mapped_column(Text, default="")
    total_theoretical_capacity: Mapped[float] = mapped_column(Float, default=0.0)


class VesselTankORM(Base):
    __tablename__ = "vessel_tanks"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    vessel_id: Mapped[str] = mapped_column(String(64), ForeignKey("vessels.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0)
    external_id: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    tank_name: Mapped[str] = mapped_column(String(255), nullable=False)
    max_calibrated_height: Mapped[float | None] = mapped_column(Float, nullable=True)
    max_volume: Mapped[float | None] = mapped_column(Float, nullable=True)


class CalibrationPointORM(Base):
    __tablename__ = "calibration_points"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tank_id: Mapped[str] = mapped_column(String(64), ForeignKey("vessel_tanks.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0)
    trim: Mapped[int] = mapped_column(Integer, nullable=False)
    height: Mapped[float] = mapped_column(Float, nullable=False)
    volume: Mapped[float] = mapped_column(Float, nullable=False)


class VesselRepository:
    """Loads and saves whole CalibrationStore snapshots."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def load_store(self) -> CalibrationStore:
        points_by_tank: Dict[str, List[CalibrationPoint]] = defaultdict(list)
        for obj in self._db.query(CalibrationPointORM).order_by(CalibrationPointORM.position).all():
            points_by_tank[obj.tank_id].append(
                CalibrationPoint(trim=obj.trim, height=obj.height, volume=obj.volume)
            )

        tanks_by_vessel: Dict[str, List[VesselTank]] = defaultdict(list)
        for obj in self._db.query(VesselTankORM).order_by(VesselTankORM.position).all():
            tanks_by_vessel[obj.vessel_id].append(
                VesselTank(
                    id=obj.id,
                    external_id=obj.external_id,
                    tank_name=obj.tank_name,
                    max_calibrated_height=obj.max_calibrated_height,
                    max_volume=obj.max_volume,
                    calibration_curve=tuple(points_by_tank.get(obj.id, [])),
                )
            )

        vessels: List[Vessel] = []
        for obj in self._db.query(VesselORM).order_by(VesselORM.position).all():
            vessels.append(
                Vessel(
                    id=obj.id,
                    external_id=obj.external_id,
                    name=obj.name,
                    type=EquipmentType(obj.type),
                    owner=obj.owner or "",
                    executor=obj.executor or "",
                    certificate_number=obj.certificate_number or "",
                    issue_date=obj.issue_date,
                    expiry_date=obj.expiry_date,
                    notes=obj.notes or "",
                    total_theoretical_capacity=obj.total_theoretical_capacity or 0.0,
                    tanks=tuple(tanks_by_vessel.get(obj.id, [])),
                )
            )
        return CalibrationStore.of(vessels)

    def save_store(self, store: CalibrationStore) -> None:
        """Replace all persisted vessels, tanks and points with the snapshot (one transaction)."""
        try:
            self._db.execute(delete(CalibrationPointORM))
            self._db.execute(delete(VesselTankORM))
            self._db.execute(delete(VesselORM))
            for v_pos, vessel in enumerate(store.vessels):
                self._db.add(
                    VesselORM(
                        id=vessel.id,
                        position=v_pos,
                        external_id=vessel.external_id,
                        name=vessel.name,
                        type=vessel.type.value,
                        owner=vessel.owner,
                        executor=vessel.executor,
                        certificate_number=vessel.certificate_number,
                        issue_date=vessel.issue_date,
                        expiry_date=vessel.expiry_date,
                        notes=vessel.notes,
                        total_theoretical_capacity=vessel.total_theoretical_capacity,
                    )
                )
                for t_pos, tank in enumerate(vessel.tanks):
                    self._db.add(
                        VesselTankORM(
                            id=tank.id,
                            vessel_id=vessel.id,
                            position=t_pos,
                            external_id=tank.external_id,
                            tank_name=tank.tank_name,
                            max_calibrated_height=tank.max_calibrated_height,
                            max_volume=tank.max_volume,
                        )
                    )
                    for p_pos, point in enumerate(tank.calibration_curve):
                        self._db.add(
                            CalibrationPointORM(
                                tank_id=tank.id,
                                position=p_pos,
                                trim=point.trim,
                                height=point.height,
                                volume=point.volume,
                            )
                        )
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise
