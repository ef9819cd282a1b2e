"""
Regulatory limits and numerical settings for tank gauging.

Product bands follow the ANP ethanol specification (anhydrous / hydrated);
density and alcohol-content conversion follows NBR 5992 (OIML R22 tables).
"""

from __future__ import annotations

# Reference temperature (°C) for corrected density and volume
REFERENCE_TEMP_C = 20.0

# ANP: anhydrous ethanol (AEAC): density @20 °C (kg/m³) and INPM (% mass)
ANHYDROUS_RHO20_MIN = 789.0
ANHYDROUS_RHO20_MAX = 793.0
ANHYDROUS_INPM_MIN = 99.3
ANHYDROUS_INPM_MAX = 100.0

# ANP: hydrated ethanol (AEHC)
HYDRATED_RHO20_MIN = 805.2
HYDRATED_RHO20_MAX = 811.2
HYDRATED_INPM_MIN = 92.5
HYDRATED_INPM_MAX = 94.6

# FCV table axes: density @20 °C (kg/m³) and temperature (°C), 0.5 steps
FCV_RHO20_MIN = 730.0
FCV_RHO20_MAX = 860.0
FCV_TEMP_MIN_C = 10.0
FCV_TEMP_MAX_C = 40.0
FCV_GRID_STEP = 0.5
FCV_DECIMALS = 4

# INPM bisection: search interval (% mass), iterations and residual tolerance (kg/m³)
INPM_SEARCH_MIN = 0.0
INPM_SEARCH_MAX = 100.0
INPM_BISECTION_ITERATIONS = 60
INPM_BISECTION_TOLERANCE = 1e-9

# Certificates expiring within this many days are flagged
CERTIFICATE_WARNING_DAYS = 30

# Storage-key prefix for per-vessel measurement history
HISTORY_KEY_PREFIX = "qc_history"
