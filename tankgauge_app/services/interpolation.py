"""
Calibration table interpolation: (trim, height) → ambient volume for tank gauging.

Unlike display-oriented sounding lookups, gauging never clamps or extrapolates:
a height outside the calibrated range at the requested trim is an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from tankgauge_app.models import CalibrationPoint

# Tolerance for treating height step as zero (avoids div-by-zero in interpolation)
_HEIGHT_EPS = 1e-12


@dataclass(slots=True)
class InterpolationError(Exception):
    message: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.message


@dataclass(slots=True)
class NoCalibrationForTrim(InterpolationError):
    trim: int = 0
    available_trims: Tuple[int, ...] = ()


@dataclass(slots=True)
class HeightOutOfRange(InterpolationError):
    height: float = 0.0
    min_height: float = 0.0
    max_height: float = 0.0


def calibrated_trims(curve: Iterable[CalibrationPoint]) -> Tuple[int, ...]:
    """Distinct trims present in the curve, ascending."""
    return tuple(sorted({p.trim for p in curve}))


def _points_for_trim(curve: Iterable[CalibrationPoint], trim: int) -> List[CalibrationPoint]:
    """Points at exactly this trim, sorted by height (caller can rely on this order)."""
    return sorted((p for p in curve if p.trim == trim), key=lambda p: p.height)


def height_range(curve: Sequence[CalibrationPoint], trim: int) -> Tuple[float, float]:
    """(min, max) calibrated height at trim; raises NoCalibrationForTrim if absent."""
    points = _points_for_trim(curve, trim)
    if not points:
        trims = calibrated_trims(curve)
        raise NoCalibrationForTrim(
            f"No calibration for trim {trim:+d} (calibrated: {', '.join(f'{t:+d}' for t in trims) or 'none'})",
            trim=trim,
            available_trims=trims,
        )
    return points[0].height, points[-1].height


def volume_at(curve: Sequence[CalibrationPoint], trim: int, height: float) -> float:
    """
    Ambient volume at (trim, height) from a tank's calibration curve.

    Trim must match a calibrated trim exactly (no cross-trim interpolation).
    Within that trim, exact heights return the calibrated volume and heights
    between two points are linearly interpolated.

    Raises:
        NoCalibrationForTrim: trim is not in the curve
        HeightOutOfRange: height is below the lowest or above the highest
            calibrated height at that trim
    """
    min_h, max_h = height_range(curve, trim)
    if height < min_h or height > max_h:
        raise HeightOutOfRange(
            f"Height {height:g} outside calibrated range [{min_h:g}, {max_h:g}] at trim {trim:+d}",
            height=height,
            min_height=min_h,
            max_height=max_h,
        )
    points = _points_for_trim(curve, trim)
    for p in points:
        if p.height == height:
            return p.volume
    for p0, p1 in zip(points, points[1:]):
        if p0.height < height < p1.height:
            dh = p1.height - p0.height
            if dh < _HEIGHT_EPS:
                return p1.volume
            t = (height - p0.height) / dh
            return p0.volume + t * (p1.volume - p0.volume)
    # Unreachable for a bounded, sorted table
    raise HeightOutOfRange(
        f"Height {height:g} could not be resolved at trim {trim:+d}",
        height=height,
        min_height=min_h,
        max_height=max_h,
    )


def find_monotonicity_violations(curve: Iterable[CalibrationPoint]) -> List[Tuple[int, float]]:
    """
    Return (trim, height) of each point whose volume is lower than the
    volume at the previous (lower) height for the same trim.

    Calibrated volume is expected to be non-decreasing in height; this is
    reported, not enforced.
    """
    curve = list(curve)
    violations: List[Tuple[int, float]] = []
    for trim in calibrated_trims(curve):
        points = _points_for_trim(curve, trim)
        for p0, p1 in zip(points, points[1:]):
            if p1.volume < p0.volume:
                violations.append((trim, p1.height))
    return violations
