"""
climgrid.ops
============
General-purpose operations on grids and anomaly series.

Functions
---------
rate_of_change  : cell-wise month-over-month difference of two grids
select_months   : keep only one calendar month or one season of a series
"""

from __future__ import annotations

from typing import Optional, Union

import numpy as np
import pandas as pd
import xarray as xr

from climgrid.data import Grid, grid_from_array
from climgrid.exceptions import ShapeMismatchError

SEASONS = {
    "winter": (12, 1, 2),
    "spring": (3, 4, 5),
    "summer": (6, 7, 8),
    "fall": (9, 10, 11),
}


# ── Grid arithmetic ───────────────────────────────────────────────────

def rate_of_change(current: Grid, previous: Grid) -> Grid:
    """Cell-wise ``current - previous``.

    Both grids must have identical lat and lon axes (same length, same
    coordinate values); otherwise ShapeMismatchError is raised rather than
    letting xarray align them. A cell is NaN where either input is NaN.

    Example
    -------
    >>> delta = rate_of_change(grid_july, grid_june)
    """
    if not current.same_axes(previous):
        raise ShapeMismatchError(
            f"Grids {current.month} {current.shape} and {previous.month} "
            f"{previous.shape} do not share the same lat/lon axes"
        )
    # plain numpy: axes are already known to match
    diff = np.asarray(current.values.values, dtype=float) - np.asarray(
        previous.values.values, dtype=float
    )
    da = xr.DataArray(
        diff,
        coords={"lat": current.lat, "lon": current.lon},
        dims=["lat", "lon"],
        name="value_k",
        attrs={
            "units": "K",
            "long_name": "Month-over-month temperature change",
            "month": str(current.month),
            "previous": str(previous.month),
        },
    )
    return grid_from_array(da, month=current.month)


# ── Series selection ──────────────────────────────────────────────────

def select_months(
    series: Union[pd.DataFrame, pd.Series],
    month: Optional[Union[int, str]] = None,
    season: Optional[str] = None,
) -> Union[pd.DataFrame, pd.Series]:
    """Filter a time-indexed series to one calendar month and/or one season.

    ``None`` or ``"all"`` means no filter on that axis. Seasons are
    meteorological: winter = DJF, spring = MAM, summer = JJA, fall = SON.

    Example
    -------
    >>> julys  = select_months(series, month=7)
    >>> winter = select_months(series, season="winter")
    """
    months = pd.DatetimeIndex(series.index).month
    mask = np.ones(len(series), dtype=bool)
    if month is not None and month != "all":
        month = int(month)
        if not 1 <= month <= 12:
            raise ValueError(f"month must be in 1..12, got {month}")
        mask &= months == month
    if season is not None and season != "all":
        if season not in SEASONS:
            raise ValueError(f"season must be one of {list(SEASONS)}, got '{season}'")
        mask &= np.isin(months, SEASONS[season])
    return series[mask]
