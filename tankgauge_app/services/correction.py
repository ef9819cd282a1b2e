"""
Volume/density correction for ethanol products (NBR 5992 / ANP).

Observed density at sample temperature → INPM (alcohol content, % mass) →
density at 20 °C (ρ@20) → volume correction factor (FCV) → V@20, plus the
ANP compliance verdict for the product.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Dict, List, Tuple

import numpy as np

from tankgauge_app.config.limits import (
    ANHYDROUS_INPM_MAX,
    ANHYDROUS_INPM_MIN,
    ANHYDROUS_RHO20_MAX,
    ANHYDROUS_RHO20_MIN,
    FCV_DECIMALS,
    FCV_GRID_STEP,
    FCV_RHO20_MAX,
    FCV_RHO20_MIN,
    FCV_TEMP_MAX_C,
    FCV_TEMP_MIN_C,
    HYDRATED_INPM_MAX,
    HYDRATED_INPM_MIN,
    HYDRATED_RHO20_MAX,
    HYDRATED_RHO20_MIN,
    INPM_BISECTION_ITERATIONS,
    INPM_BISECTION_TOLERANCE,
    INPM_SEARCH_MAX,
    INPM_SEARCH_MIN,
    REFERENCE_TEMP_C,
)
from tankgauge_app.models import ProductType, ResultStatus, Tank, TankResults

# NBR 5992 ethanol–water density polynomial: A in (w - 0.5), B in (T - 20),
# C_k cross terms (w - 0.5)^i * (T - 20)^k. w = INPM / 100.
_A = (
    913.76673, -221.75948, -59.61786, 146.82019, -566.5175, 621.18006,
    3782.4439, -9745.3133, -9573.4653, 32677.808, 8763.7383, -39026.437,
)
_B = (-0.7943755, -0.0012168407, 3.5017833e-06, 1.770944e-07, -3.4138828e-09, -9.9880242e-11)
_C = (
    (-0.39158709, 1.1518337, -5.0416999, 13.381608, 4.5899913, -118.21, 190.5402,
     339.81954, -900.32344, -349.32012, 1285.9318),
    (-1.2083196e-4, -5.7466248e-3, 0.12030894, -0.23519694, -1.0362738, 2.1804505,
     4.2763108, -6.8624848, -6.9384031, 7.4460428),
    (-3.8683211e-05, -0.00020911429, 0.0026713888, 0.0041042045, -0.049364385,
     -0.017952946, 0.29012506, 0.023001712, -0.54150139),
    (-5.6024906e-07, -1.2649169e-06, 3.486395e-06, -1.5168726e-06),
    (-1.4441741e-08, 1.3470542e-08),
)

BULK_MESSAGE = "Bulk product - NBR 5992 not applicable."


@dataclass(frozen=True, slots=True)
class ProductSpec:
    """ANP specification band for a liquid product."""
    rho20_min: float
    rho20_max: float
    inpm_min: float
    inpm_max: float


PRODUCT_SPECS: Dict[ProductType, ProductSpec] = {
    ProductType.ANHYDROUS: ProductSpec(
        ANHYDROUS_RHO20_MIN, ANHYDROUS_RHO20_MAX, ANHYDROUS_INPM_MIN, ANHYDROUS_INPM_MAX
    ),
    ProductType.HYDRATED: ProductSpec(
        HYDRATED_RHO20_MIN, HYDRATED_RHO20_MAX, HYDRATED_INPM_MIN, HYDRATED_INPM_MAX
    ),
}


def density_at(temp_c: float, inpm: float) -> float:
    """Density (kg/m³) of an ethanol–water mixture at temp_c with alcohol content inpm (% mass)."""
    dt = temp_c - REFERENCE_TEMP_C
    y = inpm / 100.0 - 0.5

    rho = _A[0]
    yp = y
    for a in _A[1:]:
        rho += a * yp
        yp *= y

    dtp = dt
    for b in _B:
        rho += b * dtp
        dtp *= dt

    dtp = dt
    for coeffs in _C:
        yp = y
        for c in coeffs:
            rho += c * yp * dtp
            yp *= y
        dtp *= dt
    return rho


def inpm_from_density(rho: float, temp_c: float) -> float:
    """Alcohol content (% mass) whose density at temp_c equals rho, by bisection on [0, 100]."""
    lo, hi = INPM_SEARCH_MIN, INPM_SEARCH_MAX
    f_lo = density_at(temp_c, lo) - rho
    for _ in range(INPM_BISECTION_ITERATIONS):
        mid = (lo + hi) / 2.0
        f_mid = density_at(temp_c, mid) - rho
        if abs(f_mid) < INPM_BISECTION_TOLERANCE:
            return mid
        if f_lo * f_mid <= 0.0:
            hi = mid
        else:
            lo = mid
            f_lo = f_mid
    return (lo + hi) / 2.0


def _axis(start: float, stop: float) -> np.ndarray:
    n = int(round((stop - start) / FCV_GRID_STEP)) + 1
    return np.round(start + FCV_GRID_STEP * np.arange(n), 1)


@lru_cache(maxsize=1)
def fcv_grid() -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Tabulated FCV: (rho20 axis, temperature axis, fcv matrix) with
    fcv[i, j] = ρ(T_j, INPM(ρ20_i)) / ρ20_i, rounded like the printed table.
    """
    rho20_axis = _axis(FCV_RHO20_MIN, FCV_RHO20_MAX)
    temp_axis = _axis(FCV_TEMP_MIN_C, FCV_TEMP_MAX_C)
    table = np.empty((rho20_axis.size, temp_axis.size), dtype=float)
    for i, r20 in enumerate(rho20_axis):
        inpm = inpm_from_density(float(r20), REFERENCE_TEMP_C)
        for j, temp in enumerate(temp_axis):
            table[i, j] = density_at(float(temp), inpm) / r20
    return rho20_axis, temp_axis, np.round(table, FCV_DECIMALS)


def _axis_position(axis: np.ndarray, x: float) -> Tuple[int, int, float]:
    """(i0, i1, fraction) for x on axis; clamps to the table edges."""
    if x <= axis[0]:
        return 0, 0, 0.0
    if x >= axis[-1]:
        last = axis.size - 1
        return last, last, 0.0
    i1 = int(np.searchsorted(axis, x))
    i0 = i1 - 1
    return i0, i1, (x - float(axis[i0])) / (float(axis[i1]) - float(axis[i0]))


def fcv_from_table(r20: float, temp_c: float) -> float:
    """Volume correction factor by bilinear interpolation on the FCV table."""
    if not (math.isfinite(r20) and math.isfinite(temp_c)):
        return math.nan
    rho_axis, temp_axis, table = fcv_grid()
    i0, i1, fx = _axis_position(rho_axis, r20)
    j0, j1, fy = _axis_position(temp_axis, temp_c)
    a = table[i0, j0] + (table[i0, j1] - table[i0, j0]) * fy
    b = table[i1, j0] + (table[i1, j1] - table[i1, j0]) * fy
    return float(a + (b - a) * fx)


def check_compliance(product: ProductType, r20: float, inpm: float) -> List[str]:
    """
    Messages for each metric outside the product's ANP band.

    Messages start with the metric name ("INPM" or "ρ@20") so callers can flag
    the specific field.
    """
    spec = PRODUCT_SPECS.get(product)
    if spec is None:
        return []
    messages: List[str] = []
    if math.isfinite(inpm) and not (spec.inpm_min <= inpm <= spec.inpm_max):
        messages.append(
            f"INPM {inpm:.2f} out of range [{spec.inpm_min} - {spec.inpm_max}]"
        )
    if math.isfinite(r20) and not (spec.rho20_min <= r20 <= spec.rho20_max):
        messages.append(
            f"ρ@20 {r20:.2f} out of range [{spec.rho20_min} - {spec.rho20_max}]"
        )
    return messages


def _finite(value: float | None) -> bool:
    return value is not None and math.isfinite(value)


def correct_volume(
    product: ProductType,
    vamb_l: float | None,
    rho_obs: float | None,
    sample_temp_c: float | None,
    tank_temp_c: float | None = None,
    is_empty: bool = False,
) -> TankResults:
    """
    Corrected measurement for one tank.

    - Bulk product: no density correction; V@20 is the ambient volume.
    - Empty tank (or zero ambient volume): all results zeroed, status pending.
    - Missing ambient volume, density or sample temperature: NaN results, pending.
    - Otherwise FCV uses the tank temperature when given, else the sample temperature.
    """
    if not product.is_liquid:
        v20 = vamb_l if _finite(vamb_l) else 0.0
        return TankResults(
            r20=0.0, fcv=1.0, inpm=0.0, v20=v20, status=ResultStatus.OK, messages=(BULK_MESSAGE,)
        )

    if is_empty or (_finite(vamb_l) and vamb_l == 0.0):
        return TankResults.zeroed()

    if not (_finite(vamb_l) and _finite(rho_obs) and _finite(sample_temp_c)):
        return TankResults.pending()

    inpm = inpm_from_density(rho_obs, sample_temp_c)
    r20 = density_at(REFERENCE_TEMP_C, inpm)
    temp_for_fcv = tank_temp_c if _finite(tank_temp_c) else sample_temp_c
    fcv = fcv_from_table(r20, temp_for_fcv)
    v20 = vamb_l * fcv

    messages = check_compliance(product, r20, inpm)
    return TankResults(
        r20=r20,
        fcv=fcv,
        inpm=inpm,
        v20=v20,
        status=ResultStatus.OUT_OF_SPEC if messages else ResultStatus.OK,
        messages=tuple(messages),
    )


def calculate_tank_metrics(tank: Tank) -> Tank:
    """Return a copy of the operation tank with recomputed results (input is not mutated)."""
    results = correct_volume(
        tank.product,
        tank.vamb_l,
        tank.rho_obs,
        tank.sample_temp_c,
        tank.tank_temp_c,
        is_empty=tank.is_empty,
    )
    if tank.is_empty and tank.product.is_liquid:
        return replace(tank, vamb_l=0.0, results=results)
    return replace(tank, results=results)
