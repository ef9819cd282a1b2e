"""
Operation-time tank handling: seed tanks from a calibrated vessel, gauge them
through the calibration curve and the correction engine, and close the
operation as a MeasurementLog.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Iterable, List

from tankgauge_app.models import (
    MeasurementLog,
    MeasurementOperationType,
    ModalType,
    ProductType,
    Tank,
    TankMeasurement,
    Vessel,
    VesselTank,
)
from tankgauge_app.services.correction import calculate_tank_metrics
from tankgauge_app.services.interpolation import volume_at

_LOG = logging.getLogger(__name__)


def seed_operation_tanks(
    vessel: Vessel,
    product: ProductType = ProductType.HYDRATED,
    client: str = "",
    modal: ModalType = ModalType.RIVER,
) -> List[Tank]:
    """One pending operation tank per calibrated vessel tank, in vessel order."""
    return [
        Tank(
            id=uuid.uuid4().hex,
            product=product,
            modal=modal,
            ident=vessel.name,
            tank_name=vt.tank_name,
            client=client,
            vessel_tank_id=vt.id,
        )
        for vt in vessel.tanks
    ]


def mark_empty(tank: Tank) -> Tank:
    """Flag the tank as empty: readings are cleared and results zeroed."""
    cleared = replace(
        tank,
        is_empty=True,
        vamb_l=0.0,
        rho_obs=None,
        sample_temp_c=None,
        tank_temp_c=None,
        height_cm=0.0,
    )
    return calculate_tank_metrics(cleared)


def gauge_tank(tank: Tank, vessel_tank: VesselTank) -> Tank:
    """
    Resolve the ambient volume from the tank's trim and height, then correct it.

    Without a height reading the tank is only recomputed (results stay pending).

    Raises:
        NoCalibrationForTrim, HeightOutOfRange: reading outside the calibration
    """
    if tank.is_empty or tank.height_cm is None:
        return calculate_tank_metrics(tank)
    vamb = volume_at(vessel_tank.calibration_curve, tank.trim, tank.height_cm)
    _LOG.debug("Tank %s: trim %+d, height %.2f -> %.3f L",
               vessel_tank.tank_name, tank.trim, tank.height_cm, vamb)
    return calculate_tank_metrics(replace(tank, vamb_l=vamb))


def build_measurement_log(
    vessel: Vessel,
    tanks: Iterable[Tank],
    operation_type: MeasurementOperationType,
    operator: str = "",
    date_time: datetime | None = None,
    product: str = "",
    origin: str = "",
    destination: str = "",
) -> MeasurementLog:
    """MeasurementLog for the vessel's gauged tanks; total is the sum of ambient volumes."""
    tanks = list(tanks)
    measurements = []
    for tank in tanks:
        vessel_tank = vessel.find_tank(tank.vessel_tank_id) if tank.vessel_tank_id else None
        measurements.append(
            TankMeasurement(
                tank_id=vessel_tank.id if vessel_tank else None,
                tank_name=vessel_tank.tank_name if vessel_tank else tank.tank_name,
                trim=tank.trim,
                height=tank.height_cm or 0.0,
                calculated_volume=tank.vamb_l or 0.0,
            )
        )
    if not product and tanks:
        product = tanks[0].product.value
    return MeasurementLog(
        id=uuid.uuid4().hex,
        vessel_id=vessel.id,
        date_time=date_time or datetime.now(),
        operation_type=operation_type,
        product=product,
        operator=operator,
        total_volume=sum(m.calculated_volume for m in measurements),
        origin=origin,
        destination=destination,
        measurements=tuple(measurements),
    )


def add_seal(tank: Tank, seal: str) -> Tank:
    seal = seal.strip()
    if not seal or seal in tank.lacres:
        return tank
    return replace(tank, lacres=tank.lacres + (seal,))


def remove_seal(tank: Tank, seal: str) -> Tank:
    return replace(tank, lacres=tuple(s for s in tank.lacres if s != seal.strip()))
