"""
climgrid
========
Regional temperature anomalies from per-month gridded CSV files:
dense lat/lon grids, calendar-month baselines, anomaly series,
month-over-month change and linear trends.

Quick start
-----------
>>> import asyncio
>>> import climgrid

# 1. Point the engine at the data
>>> engine = climgrid.AnomalyGridEngine.from_manifest("data/americas/manifest.json")

# 2. Analyse a region (preset name, RegionBounds or a 4-tuple)
>>> ctx = asyncio.run(engine.analyse_region("alaska"))
>>> ctx.baseline                 # K per calendar month
>>> ctx.series                   # mean_temp_k, anomaly_k per month
>>> ctx.trend.slope_per_decade   # K / decade

# 3. Narrow to a season and refit
>>> ctx.selected_season = "winter"
>>> ctx.selected_trend().slope_per_decade

# 4. Month-over-month change on the grid
>>> delta = asyncio.run(engine.rate_of_change("1990-07"))
>>> delta.values                 # xr.DataArray (lat × lon)
"""

# ── Engine ────────────────────────────────────────────────────────────
from .engine import AnomalyGridEngine, RegionContext

# ── Data model and loading ────────────────────────────────────────────
from .data import (
    MonthKey,
    Observation,
    RegionBounds,
    Grid,
    month_range,
    normalise_lon,
    set_lon_convention,
    to_kelvin,
    kelvin_to_celsius,
    read_grid_csv,
    build_grid,
    filter_by_region,
    regional_mean,
)
from .manifest import MonthEntry, normalise_manifest, load_manifest, entries_for_range
from .loader import GridLoader
from .regions import REGIONS, get_region

# ── Operations ────────────────────────────────────────────────────────
from .ops import rate_of_change, select_months, SEASONS

# ── Analysis ──────────────────────────────────────────────────────────
from .analysis import monthly_baseline, anomaly_series, TrendLine, fit_linear_trend

# ── Errors and logging ────────────────────────────────────────────────
from .exceptions import (
    ClimgridError,
    DataError,
    ShapeMismatchError,
    InsufficientDataError,
)
from .logging_utils import configure_logging

__version__ = "0.1.0"

__all__ = [
    # Engine
    "AnomalyGridEngine", "RegionContext",
    # Data
    "MonthKey", "Observation", "RegionBounds", "Grid",
    "month_range", "normalise_lon", "set_lon_convention",
    "to_kelvin", "kelvin_to_celsius",
    "read_grid_csv", "build_grid", "filter_by_region", "regional_mean",
    "MonthEntry", "normalise_manifest", "load_manifest", "entries_for_range",
    "GridLoader", "REGIONS", "get_region",
    # Ops
    "rate_of_change", "select_months", "SEASONS",
    # Analysis
    "monthly_baseline", "anomaly_series", "TrendLine", "fit_linear_trend",
    # Errors
    "ClimgridError", "DataError", "ShapeMismatchError", "InsufficientDataError",
    "configure_logging",
]
