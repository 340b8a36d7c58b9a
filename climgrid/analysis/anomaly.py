"""
climgrid.analysis.anomaly
=========================
Calendar-month baselines and anomaly series from regional mean temperatures.

Both functions take a regional mean series: a ``pd.Series`` of Kelvin
values indexed by first-of-month timestamps (one value per month, NaN
where the region had no valid cell).

Functions
---------
monthly_baseline  : mean per calendar month over all years
anomaly_series    : mean_temp_k and anomaly_k per month, ascending
"""

from __future__ import annotations

import numpy as np
import pandas as pd


def monthly_baseline(means: pd.Series) -> pd.Series:
    """Climatological baseline per calendar month.

    baseline[m] = mean over years y of ( mean of means[y, m] )

    The inner mean collapses repeated entries for the same year and month,
    so every year carries equal weight. Calendar months with no valid year
    are NaN.

    Returns
    -------
    pd.Series indexed by month 1..12 (index name ``month``).
    """
    valid = means.dropna()
    if valid.empty:
        baseline = pd.Series(np.nan, index=range(1, 13), dtype=float)
    else:
        idx = pd.DatetimeIndex(valid.index)
        per_year = valid.groupby([idx.year, idx.month]).mean()
        baseline = per_year.groupby(level=1).mean()
        baseline = baseline.reindex(range(1, 13)).astype(float)
    baseline.index.name = "month"
    baseline.name = "baseline_k"
    return baseline


def anomaly_series(means: pd.Series, baseline: pd.Series) -> pd.DataFrame:
    """Anomaly of each month against its calendar-month baseline.

    anomaly_k[t] = means[t] - baseline[month(t)]

    Months whose mean or baseline is NaN are dropped. The result is sorted
    ascending by time; trend fitting and plotting rely on that order.

    Returns
    -------
    pd.DataFrame indexed by ``time`` with columns mean_temp_k, anomaly_k.
    """
    means = means.sort_index()
    idx = pd.DatetimeIndex(means.index, name="time")
    base = baseline.reindex(idx.month).to_numpy(dtype=float)
    values = means.to_numpy(dtype=float)

    frame = pd.DataFrame(
        {"mean_temp_k": values, "anomaly_k": values - base},
        index=idx,
    )
    keep = ~(np.isnan(values) | np.isnan(base))
    return frame[keep]
