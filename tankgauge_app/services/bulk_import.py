"""
Bulk reconciliation import of cadastral and measurement records.

Records are applied in file order as idempotent upserts against an immutable
CalibrationStore. MEDICAO lines are grouped in a first pass and resolved to
MeasurementLogs only after every BALSA/TANQUE record of the batch is applied,
so a measurement may precede the vessel or tank it refers to.

By default a bad record is reported and skipped. With strict=True the first
bad BALSA/TANQUE/CALIBRACAO record aborts the batch; records already applied
are kept in the partial result carried by ImportAbortedError.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Set, Tuple

from tankgauge_app.models import (
    UNKNOWN_TANK_NAME,
    CalibrationPoint,
    MeasurementLog,
    MeasurementOperationType,
    TankMeasurement,
)
from tankgauge_app.services.calibration_store import (
    CalibrationStore,
    UpsertOutcome,
    upsert_calibration_point,
    upsert_tank,
    upsert_vessel,
)
from tankgauge_app.services.interpolation import find_monotonicity_violations
from tankgauge_app.services.measurement_history import MeasurementHistoryService
from tankgauge_app.services.record_parser import (
    BalsaRecord,
    CalibracaoRecord,
    MedicaoRecord,
    RawRecord,
    RecordError,
    RecordReferenceError,
    TanqueRecord,
    UnknownRecord,
    parse_record,
    split_records,
)

_LOG = logging.getLogger(__name__)

# Record types whose failure aborts a strict import
_STRICT_TAGS = frozenset({"BALSA", "TANQUE", "CALIBRACAO"})


@dataclass(slots=True)
class ImportSummary:
    vessels_created: int = 0
    vessels_updated: int = 0
    tanks_created: int = 0
    tanks_updated: int = 0
    points_added: int = 0
    points_updated: int = 0
    measurement_logs_created: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def describe(self) -> str:
        return (
            f"Vessels: {self.vessels_created} created, {self.vessels_updated} updated; "
            f"tanks: {self.tanks_created} created, {self.tanks_updated} updated; "
            f"calibration points: {self.points_added} added, {self.points_updated} updated; "
            f"measurement logs: {self.measurement_logs_created}; "
            f"errors: {len(self.errors)}"
        )


@dataclass(slots=True)
class ImportResult:
    store: CalibrationStore
    summary: ImportSummary
    measurement_logs: Dict[str, List[MeasurementLog]] = field(default_factory=dict)


@dataclass(slots=True)
class ImportAbortedError(Exception):
    """Strict import stopped at a bad record; result holds what was applied before it."""
    message: str
    result: ImportResult | None = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.message


@dataclass(slots=True)
class _MeasurementGroup:
    line: int
    vessel_external_id: str
    date_time: datetime
    operation_type: MeasurementOperationType
    product: str
    operator: str
    origin: str
    destination: str
    total_volume: float = 0.0
    readings: List[MedicaoRecord] = field(default_factory=list)


_GroupKey = Tuple[str, datetime, MeasurementOperationType, str]


class BulkImporter:
    """Applies an import batch to a CalibrationStore and merges measurement history."""

    def __init__(
        self,
        history: MeasurementHistoryService | None = None,
        strict: bool = False,
    ) -> None:
        self._history = history
        self._strict = strict

    def import_text(self, store: CalibrationStore, text: str) -> ImportResult:
        """
        Import a raw text batch.

        Raises:
            BatchParseError: the text cannot be split into records
            ImportAbortedError: strict mode only, on the first bad cadastral record
        """
        raw_records = split_records(text)
        summary = ImportSummary()
        touched_vessels: Set[str] = set()
        calibrated_tanks: Set[str] = set()
        groups: Dict[_GroupKey, _MeasurementGroup] = {}

        for raw in raw_records:
            try:
                store = self._apply(
                    store, raw, summary, touched_vessels, calibrated_tanks, groups
                )
            except RecordError as exc:
                message = str(exc)
                if self._strict and raw.tag in _STRICT_TAGS:
                    summary.errors.append(message)
                    partial = ImportResult(
                        store=store.recompute_capacities(touched_vessels), summary=summary
                    )
                    _LOG.error("Import aborted: %s", message)
                    raise ImportAbortedError(message, result=partial) from exc
                _LOG.warning("Import record skipped: %s", message)
                summary.errors.append(message)

        logs_by_vessel = self._resolve_measurements(groups, store, summary)
        store = store.recompute_capacities(touched_vessels)
        self._warn_non_monotonic(store, calibrated_tanks, summary)

        if self._history is not None:
            for exc in self._history.append_all(logs_by_vessel).values():
                summary.errors.append(f"{exc}; new measurement logs were not stored")

        _LOG.info("Import finished. %s", summary.describe())
        return ImportResult(store=store, summary=summary, measurement_logs=logs_by_vessel)

    # --- Pass 1 ---

    def _apply(
        self,
        store: CalibrationStore,
        raw: RawRecord,
        summary: ImportSummary,
        touched_vessels: Set[str],
        calibrated_tanks: Set[str],
        groups: Dict[_GroupKey, _MeasurementGroup],
    ) -> CalibrationStore:
        match parse_record(raw):
            case BalsaRecord() as rec:
                store, vessel, outcome = upsert_vessel(
                    store,
                    rec.external_id,
                    rec.name,
                    owner=rec.owner,
                    issue_date=rec.issue_date,
                    expiry_date=rec.expiry_date,
                    certificate_number=rec.certificate_number,
                    notes=rec.notes,
                )
                touched_vessels.add(vessel.id)
                if outcome is UpsertOutcome.CREATED:
                    summary.vessels_created += 1
                else:
                    summary.vessels_updated += 1

            case TanqueRecord() as rec:
                vessel = store.find_vessel_by_external_id(rec.vessel_external_id)
                if vessel is None:
                    raise RecordReferenceError(
                        f"vessel {rec.vessel_external_id!r} not found for tank {rec.external_id!r}",
                        rec.line, raw.tag,
                    )
                owner = store.find_tank_by_external_id(rec.external_id)
                if owner is not None and owner[0].id != vessel.id:
                    raise RecordReferenceError(
                        f"tank {rec.external_id!r} already belongs to vessel "
                        f"{owner[0].external_id or owner[0].name!r}",
                        rec.line, raw.tag,
                    )
                store, _, outcome = upsert_tank(
                    store,
                    vessel,
                    rec.external_id,
                    rec.tank_name,
                    max_calibrated_height=rec.max_calibrated_height,
                    max_volume=rec.max_volume,
                )
                touched_vessels.add(vessel.id)
                if outcome is UpsertOutcome.CREATED:
                    summary.tanks_created += 1
                else:
                    summary.tanks_updated += 1

            case CalibracaoRecord() as rec:
                found = store.find_tank_by_external_id(rec.tank_external_id)
                if found is None:
                    raise RecordReferenceError(
                        f"tank {rec.tank_external_id!r} not found for calibration",
                        rec.line, raw.tag,
                    )
                vessel, tank = found
                point = CalibrationPoint(trim=rec.trim, height=rec.height, volume=rec.volume)
                store, outcome = upsert_calibration_point(store, vessel, tank, point)
                calibrated_tanks.add(tank.id)
                if outcome is UpsertOutcome.CREATED:
                    summary.points_added += 1
                else:
                    summary.points_updated += 1

            case MedicaoRecord() as rec:
                key = (rec.vessel_external_id, rec.date_time, rec.operation_type, rec.operator)
                group = groups.get(key)
                if group is None:
                    group = groups[key] = _MeasurementGroup(
                        line=rec.line,
                        vessel_external_id=rec.vessel_external_id,
                        date_time=rec.date_time,
                        operation_type=rec.operation_type,
                        product=rec.product,
                        operator=rec.operator,
                        origin=rec.origin,
                        destination=rec.destination,
                    )
                group.total_volume += rec.volume
                group.readings.append(rec)

            case UnknownRecord() as rec:
                message = f"Line {rec.line}: unknown record type {rec.tag[:40]!r} ignored"
                _LOG.warning(message)
                summary.warnings.append(message)

        return store

    # --- Pass 2 ---

    def _resolve_measurements(
        self,
        groups: Dict[_GroupKey, _MeasurementGroup],
        store: CalibrationStore,
        summary: ImportSummary,
    ) -> Dict[str, List[MeasurementLog]]:
        logs_by_vessel: Dict[str, List[MeasurementLog]] = {}
        for group in groups.values():
            vessel = store.find_vessel_by_external_id(group.vessel_external_id)
            if vessel is None:
                error = RecordReferenceError(
                    f"vessel {group.vessel_external_id!r} not found for measurement "
                    f"of {group.date_time.isoformat(sep=' ')}",
                    group.line, "MEDICAO",
                )
                _LOG.warning("Import record skipped: %s", error)
                summary.errors.append(str(error))
                continue

            measurements = []
            for reading in group.readings:
                tank = vessel.find_tank_by_external_id(reading.tank_external_id)
                measurements.append(
                    TankMeasurement(
                        tank_id=tank.id if tank else None,
                        tank_name=tank.tank_name if tank else UNKNOWN_TANK_NAME,
                        trim=reading.trim,
                        height=reading.height,
                        calculated_volume=reading.volume,
                    )
                )
            log = MeasurementLog(
                id=uuid.uuid4().hex,
                vessel_id=vessel.id,
                date_time=group.date_time,
                operation_type=group.operation_type,
                product=group.product,
                operator=group.operator,
                total_volume=group.total_volume,
                origin=group.origin,
                destination=group.destination,
                measurements=tuple(measurements),
            )
            logs_by_vessel.setdefault(vessel.id, []).append(log)
            summary.measurement_logs_created += 1
        return logs_by_vessel

    def _warn_non_monotonic(
        self,
        store: CalibrationStore,
        tank_ids: Set[str],
        summary: ImportSummary,
    ) -> None:
        for vessel in store:
            for tank in vessel.tanks:
                if tank.id not in tank_ids:
                    continue
                for trim, height in find_monotonicity_violations(tank.calibration_curve):
                    message = (
                        f"Tank {tank.external_id or tank.tank_name!r}: volume decreases "
                        f"at height {height:g} (trim {trim:+d})"
                    )
                    _LOG.warning(message)
                    summary.warnings.append(message)


def import_text(
    store: CalibrationStore,
    text: str,
    history: MeasurementHistoryService | None = None,
    strict: bool = False,
) -> ImportResult:
    """Convenience wrapper around BulkImporter.import_text."""
    return BulkImporter(history=history, strict=strict).import_text(store, text)
