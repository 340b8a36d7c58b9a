"""climgrid.analysis: Baselines, anomalies and trends."""

from .anomaly import monthly_baseline, anomaly_series
from .regression import TrendLine, fit_linear_trend

__all__ = [
    "monthly_baseline",
    "anomaly_series",
    "TrendLine",
    "fit_linear_trend",
]
