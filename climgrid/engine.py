"""
climgrid.engine
===============
AnomalyGridEngine: from monthly CSV grids to baselines, anomalies and trends.

Quick start
-----------
>>> import asyncio
>>> from climgrid import AnomalyGridEngine
>>> async def main():
...     async with AnomalyGridEngine.from_manifest("data/americas/manifest.json") as eng:
...         ctx = await eng.analyse_region("california")
...         return ctx
>>> ctx = asyncio.run(main())
>>> ctx.series.tail()                     # mean_temp_k, anomaly_k per month
>>> ctx.trend.slope_per_decade
>>> ctx.selected_season = "summer"
>>> ctx.selected_trend().slope_per_decade

Each region gets its own :class:`RegionContext`; nothing is shared between
regions except the grid cache.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Union

import pandas as pd

from climgrid import config
from climgrid.analysis.anomaly import anomaly_series, monthly_baseline
from climgrid.analysis.regression import TrendLine, fit_linear_trend
from climgrid.data import Grid, MonthKey, RegionBounds, filter_by_region, regional_mean
from climgrid.exceptions import InsufficientDataError
from climgrid.loader import GridLoader
from climgrid.manifest import entries_for_range, load_manifest
from climgrid.ops import rate_of_change, select_months
from climgrid.regions import get_region

logger = logging.getLogger(__name__)


def _baseline_from_means(means: pd.Series) -> pd.Series:
    baseline = monthly_baseline(means)
    empty = [int(m) for m in baseline.index[baseline.isna()]]
    if empty:
        logger.warning("No baseline data for calendar month(s) %s", empty)
    return baseline


@dataclass
class RegionContext:
    """Everything computed for one region, plus its month/season selection.

    Attributes
    ----------
    name     : str
    bounds   : RegionBounds
    baseline : pd.Series (month 1..12), BaselineTable
    series   : pd.DataFrame, AnomalySeries (time index; mean_temp_k, anomaly_k)
    trend    : TrendLine or None when the trend is undefined
    skipped  : list of MonthKey that could not be loaded
    selected_month, selected_season : "all" or a month number / season name
    """

    name: str
    bounds: RegionBounds
    baseline: Optional[pd.Series] = None
    series: Optional[pd.DataFrame] = None
    trend: Optional[TrendLine] = None
    skipped: list = field(default_factory=list)
    selected_month: Union[int, str] = "all"
    selected_season: str = "all"

    def selected_series(self) -> pd.DataFrame:
        """The anomaly series restricted to the current month/season selection."""
        if self.series is None:
            raise RuntimeError(f"Region '{self.name}' has not been analysed yet")
        return select_months(self.series, month=self.selected_month,
                             season=self.selected_season)

    def selected_trend(self) -> TrendLine:
        """Trend refitted on the selected months. Raises InsufficientDataError."""
        return fit_linear_trend(self.selected_series())


class AnomalyGridEngine:
    """Regional climate anomalies from per-month gridded temperature files.

    Parameters
    ----------
    entries        : iterable of MonthEntry, optional, resolved manifest.
    loader         : GridLoader, optional, use an existing cache instead.
    max_concurrent : int, bound on simultaneous file reads.

    Construct from a manifest with :meth:`from_manifest` or from a month
    range and file template with :meth:`from_range`.
    """

    def __init__(
        self,
        entries: Optional[Iterable] = None,
        loader: Optional[GridLoader] = None,
        max_concurrent: int = config.MAX_CONCURRENT_LOADS,
    ):
        if loader is None:
            if entries is None:
                raise ValueError("Pass either entries or loader.")
            loader = GridLoader(entries, max_concurrent=max_concurrent)
        self.loader = loader

    @classmethod
    def from_manifest(cls, path: Union[str, Path], **kwargs) -> "AnomalyGridEngine":
        return cls(entries=load_manifest(path), **kwargs)

    @classmethod
    def from_range(
        cls,
        start=config.DEFAULT_START,
        end=config.DEFAULT_END,
        base: Union[str, Path] = config.DATA_DIR,
        template: str = config.FILE_TEMPLATE,
        units: str = config.DEFAULT_UNITS,
        **kwargs,
    ) -> "AnomalyGridEngine":
        entries = entries_for_range(start, end, base=base, template=template, units=units)
        return cls(entries=entries, **kwargs)

    @property
    def month_keys(self) -> list:
        return self.loader.keys

    # ── Grids ─────────────────────────────────────────────────────────

    async def load_grid(self, month) -> Grid:
        """Grid for one month. Raises DataError if it cannot be loaded."""
        return await self.loader.load(month)

    @staticmethod
    def filter_by_region(grid: Grid, bounds: RegionBounds) -> pd.DataFrame:
        return filter_by_region(grid, bounds)

    @staticmethod
    def compute_rate_of_change(current: Grid, previous: Grid) -> Grid:
        return rate_of_change(current, previous)

    async def rate_of_change(self, month) -> Grid:
        """Change from the previous calendar month to ``month``."""
        key = MonthKey.parse(month)
        current = await self.load_grid(key)
        previous = await self.load_grid(key.previous())
        return rate_of_change(current, previous)

    # ── Regional aggregates ───────────────────────────────────────────

    async def regional_means(
        self,
        month_keys: Iterable,
        bounds: RegionBounds,
        skipped: Optional[list] = None,
    ) -> pd.Series:
        """Regional mean Kelvin per month, ascending by time.

        Months that fail to load are logged, appended to ``skipped`` and left
        out. Months where the region has no valid cell are NaN.
        """
        keys = sorted({MonthKey.parse(k) for k in month_keys})
        grids = await self.loader.load_many(keys)
        missing = [k for k in keys if k not in grids]
        if missing and skipped is not None:
            skipped.extend(k for k in missing if k not in skipped)

        loaded = [k for k in keys if k in grids]
        index = pd.DatetimeIndex([k.timestamp for k in loaded], name="time")
        return pd.Series([regional_mean(grids[k], bounds) for k in loaded],
                         index=index, dtype=float, name="mean_temp_k")

    async def compute_baseline(
        self,
        month_keys: Iterable,
        bounds: RegionBounds,
        skipped: Optional[list] = None,
    ) -> pd.Series:
        """BaselineTable: mean regional temperature per calendar month."""
        means = await self.regional_means(month_keys, bounds, skipped=skipped)
        return _baseline_from_means(means)

    async def compute_anomaly_series(
        self,
        month_keys: Iterable,
        bounds: RegionBounds,
        baseline: pd.Series,
        skipped: Optional[list] = None,
    ) -> pd.DataFrame:
        """AnomalySeries for ``month_keys`` against a precomputed baseline."""
        means = await self.regional_means(month_keys, bounds, skipped=skipped)
        return anomaly_series(means, baseline)

    @staticmethod
    def fit_linear_trend(series: pd.DataFrame) -> TrendLine:
        return fit_linear_trend(series)

    async def analyse_region(
        self,
        region: Union[str, RegionBounds, tuple],
        month_keys: Optional[Iterable] = None,
        name: Optional[str] = None,
    ) -> RegionContext:
        """Baseline, anomaly series and trend for one region.

        ``region`` is a preset name (see climgrid.regions), a RegionBounds or
        a (lat_min, lat_max, lon_min, lon_max) tuple. All months known to the
        loader are used unless ``month_keys`` is given.
        """
        bounds = get_region(region)
        if name is None:
            name = region if isinstance(region, str) else "custom"
        keys = self.month_keys if month_keys is None else list(month_keys)

        ctx = RegionContext(name=name, bounds=bounds)
        # one pass over the grids feeds both the baseline and the series
        means = await self.regional_means(keys, bounds, skipped=ctx.skipped)
        ctx.baseline = _baseline_from_means(means)
        ctx.series = anomaly_series(means, ctx.baseline)
        if ctx.series.empty:
            logger.warning("No data found for %s", name)
        try:
            ctx.trend = fit_linear_trend(ctx.series)
        except InsufficientDataError as exc:
            logger.warning("%s: %s", name, exc)
        logger.info(
            "%s: %d month(s) in series, %d skipped",
            name, len(ctx.series), len(ctx.skipped),
        )
        return ctx

    # ── Resources ─────────────────────────────────────────────────────

    async def close(self) -> None:
        await self.loader.close()

    async def __aenter__(self) -> "AnomalyGridEngine":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()
