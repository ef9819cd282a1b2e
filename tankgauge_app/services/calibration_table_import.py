"""
Import tank calibration (arqueação) tables from Excel or CSV.

Expected columns: Tank, Height and Volume; Trim is optional (defaults to 0).
Header names are flexible (e.g. "Altura (cm)", "Volume (L)", "Tanque").
A sheet without a tank column is keyed by its sheet name, so a workbook with
one sheet per tank works as well as a single long table.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Tuple

import pandas as pd

from tankgauge_app.models import CalibrationPoint
from tankgauge_app.services.bulk_import import ImportSummary
from tankgauge_app.services.calibration_store import (
    CalibrationStore,
    UpsertOutcome,
    upsert_calibration_point,
)
from tankgauge_app.services.interpolation import find_monotonicity_violations
from tankgauge_app.utils.parsing import br_to_number, parse_trim

_LOG = logging.getLogger(__name__)

# Column name variants (lowercase, strip; newlines in headers normalized to space)
_TANK_ALIASES = (
    "tank", "tank id", "tank name", "tankexternalid", "tank external id",
    "tanque", "id tanque", "tanque id", "nome tanque",
)
_TRIM_ALIASES = ("trim", "trim (%)", "banda", "condicao de trim", "condição de trim")
_HEIGHT_ALIASES = (
    "height", "height (cm)", "height(cm)", "sounding", "sounding (cm)",
    "altura", "altura (cm)", "altura(cm)", "sondagem", "sondagem (cm)",
)
_VOLUME_ALIASES = (
    "volume", "volume (l)", "volume(l)", "volume l", "vol", "volume (litros)", "volume litros",
)

_CANONICAL = {
    **{a: "tank" for a in _TANK_ALIASES},
    **{a: "trim" for a in _TRIM_ALIASES},
    **{a: "height" for a in _HEIGHT_ALIASES},
    **{a: "volume" for a in _VOLUME_ALIASES},
}


@dataclass(slots=True)
class CalibrationTableError(Exception):
    """The file cannot be read as a calibration table."""
    message: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.message


def _normalize_key(column) -> str:
    key = str(column).lower().replace("\n", " ").replace("\r", " ").replace("\t", " ")
    key = re.sub(r"[^\w\s.()%-]", "", key)
    return re.sub(r"\s+", " ", key).strip()


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Rename columns to canonical names (tank, trim, height, volume) when they match an alias."""
    rename = {}
    for c in df.columns:
        canonical = _CANONICAL.get(_normalize_key(c))
        if canonical and canonical not in rename.values():
            rename[c] = canonical
    return df.rename(columns=rename)


def _cell_number(value) -> float | None:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    return br_to_number(value if isinstance(value, (int, float)) else str(value))


def _rows_to_points(df: pd.DataFrame) -> List[CalibrationPoint]:
    """Points from the numeric rows of a normalized frame; other rows are skipped."""
    has_trim = "trim" in df.columns
    points: List[CalibrationPoint] = []
    for _, r in df.iterrows():
        try:
            height = _cell_number(r["height"])
            volume = _cell_number(r["volume"])
            trim_cell = r["trim"] if has_trim else 0
            trim = 0 if trim_cell is None or pd.isna(trim_cell) else parse_trim(
                trim_cell if isinstance(trim_cell, (int, float)) else str(trim_cell)
            )
        except (TypeError, ValueError):
            continue
        if height is None or volume is None or volume < 0:
            continue
        points.append(CalibrationPoint(trim=trim, height=height, volume=volume))
    points.sort(key=lambda p: (p.trim, p.height))
    return points


def _read_frame(df: pd.DataFrame, default_key: str, result: Dict[str, List[CalibrationPoint]]) -> None:
    df = _normalize_columns(df)
    if "height" not in df.columns or "volume" not in df.columns:
        _LOG.debug("Sheet %r skipped: no height/volume columns (found %s)", default_key, list(df.columns))
        return
    if "tank" in df.columns:
        df = df.copy()
        df["tank"] = df["tank"].ffill()
        for tank_key, group in df.groupby("tank", dropna=True, sort=False):
            key = str(tank_key).strip()
            if not key:
                continue
            points = _rows_to_points(group)
            if points:
                result.setdefault(key, []).extend(points)
        return
    points = _rows_to_points(df)
    if points and default_key:
        result.setdefault(default_key, []).extend(points)


def parse_calibration_file(file_path: str | Path) -> Dict[str, List[CalibrationPoint]]:
    """
    Parse calibration tables for one or more tanks from .xlsx or .csv.

    Returns points per tank external id. Sheets without the required
    columns or without numeric rows are skipped.

    Raises:
        FileNotFoundError: the file does not exist
        CalibrationTableError: unsupported format or no usable table in the file
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    result: Dict[str, List[CalibrationPoint]] = {}
    suffix = path.suffix.lower()
    if suffix in (".xlsx", ".xls"):
        sheets = pd.read_excel(path, sheet_name=None, engine="openpyxl")
        for sheet_name, df in sheets.items():
            _read_frame(df, str(sheet_name).strip(), result)
    elif suffix == ".csv":
        df = pd.read_csv(path, sep=None, engine="python", dtype=str)
        _read_frame(df, path.stem, result)
    else:
        raise CalibrationTableError(f"Unsupported format: {path.suffix}. Use .xlsx or .csv.")

    if not result:
        raise CalibrationTableError(
            f"No calibration rows found in {path.name}. Expected columns: Tank, Trim, Height, Volume."
        )
    _LOG.info("Read calibration tables for %d tank(s) from %s", len(result), path.name)
    return result


def apply_calibration_tables(
    store: CalibrationStore,
    tables: Mapping[str, List[CalibrationPoint]],
) -> Tuple[CalibrationStore, ImportSummary]:
    """
    Upsert parsed points into the store by tank external id.

    Unknown tanks are reported in summary.errors and skipped.
    """
    summary = ImportSummary()
    for tank_external_id, points in tables.items():
        found = store.find_tank_by_external_id(tank_external_id)
        if found is None:
            message = f"Tank {tank_external_id!r} not found; {len(points)} point(s) skipped"
            _LOG.warning(message)
            summary.errors.append(message)
            continue
        vessel_id, tank_id = found[0].id, found[1].id
        for point in points:
            vessel = store.find_vessel(vessel_id)
            tank = vessel.find_tank(tank_id)
            store, outcome = upsert_calibration_point(store, vessel, tank, point)
            if outcome is UpsertOutcome.CREATED:
                summary.points_added += 1
            else:
                summary.points_updated += 1
        tank = store.find_vessel(vessel_id).find_tank(tank_id)
        for trim, height in find_monotonicity_violations(tank.calibration_curve):
            summary.warnings.append(
                f"Tank {tank_external_id!r}: volume decreases at height {height:g} (trim {trim:+d})"
            )
    _LOG.info("Calibration tables applied. %s", summary.describe())
    return store, summary
