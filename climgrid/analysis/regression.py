"""
climgrid.analysis.regression
============================
Linear trend of an anomaly series against time.

Functions
---------
fit_linear_trend  : OLS fit, slope per day and per decade
TrendLine         : the fitted line; evaluate it on any time axis

The fit is made once; :meth:`TrendLine.evaluate` and
:meth:`TrendLine.endpoints` reuse the same slope and intercept on whatever
time range the caller asks for, so one region's trend can be overlaid on
another region's axis.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd
from scipy.stats import linregress as _scipy_linregress

from climgrid import config
from climgrid.exceptions import InsufficientDataError

_ONE_DAY = pd.Timedelta(days=1)


@dataclass(frozen=True)
class TrendLine:
    """Least-squares line ``anomaly = intercept + slope * days_since(origin)``.

    Attributes
    ----------
    slope            : float, K per day.
    intercept        : float, K at ``origin``.
    slope_per_decade : float, K per decade (365.25-day years).
    origin           : pd.Timestamp, time of the first fitted point.
    r_value, p_value, stderr : float, from scipy.stats.linregress.
    n_points         : int
    """

    slope: float
    intercept: float
    slope_per_decade: float
    origin: pd.Timestamp
    r_value: float = float("nan")
    p_value: float = float("nan")
    stderr: float = float("nan")
    n_points: int = 0

    def evaluate(self, times) -> np.ndarray:
        """Fitted anomaly at each of ``times`` (any datetime-like values)."""
        elapsed = (pd.DatetimeIndex(np.atleast_1d(times)) - self.origin) / _ONE_DAY
        return self.intercept + self.slope * np.asarray(elapsed, dtype=float)

    def endpoints(self, start, end) -> pd.DataFrame:
        """The line at ``start`` and ``end``, ready to draw as a segment."""
        times = pd.DatetimeIndex([pd.Timestamp(start), pd.Timestamp(end)], name="time")
        return pd.DataFrame({"anomaly_k": self.evaluate(times)}, index=times)


def fit_linear_trend(
    series: pd.DataFrame,
    column: str = "anomaly_k",
) -> TrendLine:
    """Ordinary least-squares trend of ``series[column]`` against time.

    x = days elapsed since the first point, y = anomaly.
    slope = Σ(x-x̄)(y-ȳ) / Σ(x-x̄)²,  intercept = ȳ - slope·x̄.

    NaN anomalies are ignored. Raises InsufficientDataError when fewer than
    two points remain or all points share one timestamp.

    Example
    -------
    >>> trend = fit_linear_trend(ctx.series)
    >>> f"{trend.slope_per_decade:+.2f} K/decade"
    '+0.21 K/decade'
    """
    values = series[column].dropna()
    if len(values) < 2:
        raise InsufficientDataError(
            f"Trend undefined: need at least 2 points, got {len(values)}"
        )

    values = values.sort_index()
    times = pd.DatetimeIndex(values.index)
    origin = times[0]
    x = np.asarray((times - origin) / _ONE_DAY, dtype=float)
    y = values.to_numpy(dtype=float)

    x_m = x - x.mean()
    den = float((x_m ** 2).sum())
    if den == 0:
        raise InsufficientDataError("Trend undefined: all points share the same time")

    result = _scipy_linregress(x, y)
    return TrendLine(
        slope=float(result.slope),
        intercept=float(result.intercept),
        slope_per_decade=float(result.slope) * config.DAYS_PER_YEAR * 10.0,
        origin=origin,
        r_value=float(result.rvalue),
        p_value=float(result.pvalue),
        stderr=float(result.stderr),
        n_points=len(y),
    )
