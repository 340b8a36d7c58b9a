"""
climgrid.data
=============
Monthly grid loading, longitude handling and regional subsetting.

All functions are non-interactive: parameters are passed explicitly.
A month of data is one CSV file with ``lat``, ``lon`` and a temperature
column; it becomes a :class:`Grid`, a dense lat × lon ``xr.DataArray``
(lat north→south, lon west→east) plus the table of rows it was built from.

Typical workflow
----------------
>>> import climgrid.data as cd
>>> grid = cd.read_grid_csv("data/americas/1990-07.csv", month="1990-07")
>>> box  = cd.RegionBounds(lat_min=32, lat_max=42, lon_min=-125, lon_max=-114)
>>> rows = cd.filter_by_region(grid, box)
>>> cd.regional_mean(grid, box)
291.7
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import IO, NamedTuple, Optional, Union

import numpy as np
import pandas as pd
import xarray as xr

from climgrid import config
from climgrid.exceptions import DataError

logger = logging.getLogger(__name__)


# ── Calendar months ───────────────────────────────────────────────────

@dataclass(frozen=True, order=True)
class MonthKey:
    """A calendar month, ordered by time."""

    year: int
    month: int

    def __post_init__(self):
        if not 1 <= int(self.month) <= 12:
            raise ValueError(f"month must be in 1..12, got {self.month}")

    @classmethod
    def parse(cls, value: Union[str, "MonthKey", pd.Timestamp]) -> "MonthKey":
        """Build a MonthKey from '1990-07', '1990-07-01', '199007' or a timestamp."""
        if isinstance(value, MonthKey):
            return value
        if isinstance(value, str):
            text = value.strip()
            if len(text) == 6 and text.isdigit():
                return cls(int(text[:4]), int(text[4:]))
            if len(text) == 7 and text[4] in "-/":
                return cls(int(text[:4]), int(text[5:]))
            try:
                value = pd.Timestamp(text)
            except (ValueError, TypeError) as exc:
                raise ValueError(f"Cannot parse a month from '{value}'") from exc
        ts = pd.Timestamp(value)
        return cls(ts.year, ts.month)

    @property
    def timestamp(self) -> pd.Timestamp:
        """First day of the month."""
        return pd.Timestamp(year=self.year, month=self.month, day=1)

    def previous(self) -> "MonthKey":
        if self.month == 1:
            return MonthKey(self.year - 1, 12)
        return MonthKey(self.year, self.month - 1)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


def month_range(start, end) -> list:
    """All MonthKeys from ``start`` to ``end`` inclusive."""
    first, last = MonthKey.parse(start), MonthKey.parse(end)
    keys = []
    key = first
    while key <= last:
        keys.append(key)
        key = MonthKey(key.year + key.month // 12, key.month % 12 + 1)
    return keys


class Observation(NamedTuple):
    """One grid cell for one month. ``value_k`` is NaN when missing."""

    lat: float
    lon: float
    value_k: float


# ── Longitude conventions ─────────────────────────────────────────────

def normalise_lon(lon, convention: str = "[-180,180]"):
    """Map longitudes into one convention.

    ``[-180,180]`` sends 0..360 values above 180 to the western hemisphere
    (180 itself stays 180, -180 becomes 180). ``[0,360]`` wraps negatives.
    Works on scalars and arrays.
    """
    wrapped = np.mod(np.asarray(lon, dtype=float), 360.0)
    if convention == "[-180,180]":
        out = np.where(wrapped > 180.0, wrapped - 360.0, wrapped)
    elif convention == "[0,360]":
        out = wrapped
    else:
        raise ValueError(f"convention must be '[-180,180]' or '[0,360]', got '{convention}'")
    return float(out) if np.ndim(out) == 0 else out


@dataclass(frozen=True)
class RegionBounds:
    """Inclusive lat/lon box. Longitudes may be signed or 0..360."""

    lat_min: float
    lat_max: float
    lon_min: float
    lon_max: float

    def __post_init__(self):
        if self.lat_min > self.lat_max:
            raise ValueError(
                f"lat_min ({self.lat_min}) must not exceed lat_max ({self.lat_max})"
            )

    @property
    def spans_all_longitudes(self) -> bool:
        return self.lon_max - self.lon_min >= 360.0

    def lon_mask(self, lon) -> np.ndarray:
        """Boolean mask of longitudes inside the box, compared in [-180,180]."""
        lon = normalise_lon(np.atleast_1d(lon))
        if self.spans_all_longitudes:
            return np.ones(lon.shape, dtype=bool)
        lo = normalise_lon(self.lon_min)
        hi = normalise_lon(self.lon_max)
        if lo <= hi:
            return (lon >= lo) & (lon <= hi)
        # box crosses the antimeridian
        return (lon >= lo) | (lon <= hi)

    def lat_mask(self, lat) -> np.ndarray:
        lat = np.atleast_1d(np.asarray(lat, dtype=float))
        return (lat >= self.lat_min) & (lat <= self.lat_max)


# ── Units ─────────────────────────────────────────────────────────────

def to_kelvin(
    values,
    units: str = "auto",
    threshold: float = config.KELVIN_THRESHOLD,
):
    """Convert temperatures to Kelvin.

    units="K" leaves values as they are, units="C" adds 273.15.
    units="auto" decides per value by magnitude: anything above
    ``threshold`` (150 by default) is taken as Kelvin already, anything at
    or below it as Celsius. NaN stays NaN.
    """
    arr = np.asarray(values, dtype=float)
    if units == "K":
        return arr
    if units == "C":
        return arr + config.KELVIN_OFFSET
    if units != "auto":
        raise ValueError(f"units must be 'K', 'C' or 'auto', got '{units}'")
    return np.where(arr > threshold, arr, arr + config.KELVIN_OFFSET)


def kelvin_to_celsius(values):
    """Kelvin → °C, for display."""
    return np.asarray(values, dtype=float) - config.KELVIN_OFFSET


# ── Grid ──────────────────────────────────────────────────────────────

@dataclass
class Grid:
    """All observations of one month on a dense lat × lon mesh.

    Attributes
    ----------
    values : xr.DataArray (lat × lon)
        Lat descending, lon ascending. Cells with no source row are NaN.
    rows : pd.DataFrame
        One row per placed Observation (columns lat, lon, value_k).
    month : MonthKey, optional
    n_rows : int
        Number of source rows, including rows that could not be placed.
    """

    values: xr.DataArray
    rows: pd.DataFrame
    month: Optional[MonthKey] = None
    n_rows: int = 0

    @property
    def lat(self) -> np.ndarray:
        return self.values["lat"].values

    @property
    def lon(self) -> np.ndarray:
        return self.values["lon"].values

    @property
    def shape(self) -> tuple:
        return self.values.shape

    @property
    def is_empty(self) -> bool:
        return self.values.size == 0

    @property
    def n_valid(self) -> int:
        """Number of non-NaN cells."""
        return int(np.count_nonzero(~np.isnan(self.values.values)))

    def same_axes(self, other: "Grid") -> bool:
        return (
            self.shape == other.shape
            and np.array_equal(self.lat, other.lat)
            and np.array_equal(self.lon, other.lon)
        )

    def observations(self) -> list:
        return to_observations(self.rows)


def _empty_rows() -> pd.DataFrame:
    return pd.DataFrame({"lat": pd.Series(dtype=float),
                         "lon": pd.Series(dtype=float),
                         "value_k": pd.Series(dtype=float)})


def find_temperature_column(
    columns,
    candidates: tuple = config.TEMPERATURE_COLUMNS,
) -> str:
    """Return the first accepted temperature column name present in ``columns``."""
    present = {str(c).strip().lower(): c for c in columns}
    for name in candidates:
        if name in present:
            return present[name]
    raise DataError(
        f"No temperature column found. Expected one of {list(candidates)}, "
        f"got {list(columns)}"
    )


def parse_rows(
    frame: pd.DataFrame,
    units: str = config.DEFAULT_UNITS,
    lat_col: str = config.LAT_COLUMN,
    lon_col: str = config.LON_COLUMN,
) -> pd.DataFrame:
    """Turn raw CSV rows into numeric (lat, lon, value_k) rows.

    Fields that fail to parse become NaN; no row is dropped here.
    """
    lookup = {str(c).strip().lower(): c for c in frame.columns}
    for name in (lat_col, lon_col):
        if name not in lookup:
            raise DataError(f"Missing '{name}' column; got {list(frame.columns)}")
    temp_col = find_temperature_column(frame.columns)

    value = pd.to_numeric(frame[temp_col], errors="coerce").to_numpy(dtype=float)
    return pd.DataFrame({
        "lat": pd.to_numeric(frame[lookup[lat_col]], errors="coerce").to_numpy(dtype=float),
        "lon": pd.to_numeric(frame[lookup[lon_col]], errors="coerce").to_numpy(dtype=float),
        "value_k": to_kelvin(value, units=units),
    })


def build_grid(
    rows: pd.DataFrame,
    month: Optional[MonthKey] = None,
    n_rows: Optional[int] = None,
) -> Grid:
    """Rasterise numeric (lat, lon, value_k) rows into a dense Grid.

    Axes are the unique coordinates of these rows, sorted lat descending
    and lon ascending regardless of row order. Rows without a usable lat
    or lon are counted in ``n_rows`` but not placed. If a (lat, lon) pair
    repeats, the last row wins.
    """
    total = len(rows) if n_rows is None else n_rows
    placed = rows.dropna(subset=["lat", "lon"])
    dropped = len(rows) - len(placed)
    if dropped:
        logger.debug("%s: %d row(s) without coordinates", month, dropped)

    dupes = placed.duplicated(subset=["lat", "lon"], keep="last")
    if dupes.any():
        logger.debug("%s: %d duplicate cell(s), keeping last", month, int(dupes.sum()))
        placed = placed[~dupes]
    placed = placed.reset_index(drop=True)

    lats = np.sort(placed["lat"].unique())[::-1]
    lons = np.sort(placed["lon"].unique())

    data = np.full((len(lats), len(lons)), np.nan)
    i = pd.Index(lats).get_indexer(placed["lat"])
    j = pd.Index(lons).get_indexer(placed["lon"])
    data[i, j] = placed["value_k"].to_numpy(dtype=float)

    attrs = {"units": "K", "long_name": "Near-surface air temperature"}
    if month is not None:
        attrs["month"] = str(month)
    values = xr.DataArray(
        data,
        coords={"lat": lats, "lon": lons},
        dims=["lat", "lon"],
        name="value_k",
        attrs=attrs,
    )
    return Grid(values=values, rows=placed, month=month, n_rows=total)


def grid_from_array(
    values: xr.DataArray,
    month: Optional[MonthKey] = None,
) -> Grid:
    """Wrap a dense lat × lon DataArray as a Grid (every cell becomes a row)."""
    lat2d, lon2d = np.meshgrid(values["lat"].values, values["lon"].values, indexing="ij")
    rows = pd.DataFrame({
        "lat": lat2d.ravel().astype(float),
        "lon": lon2d.ravel().astype(float),
        "value_k": np.asarray(values.values, dtype=float).ravel(),
    })
    return Grid(values=values, rows=rows, month=month, n_rows=len(rows))


def read_grid_csv(
    source: Union[str, Path, IO],
    month=None,
    units: str = config.DEFAULT_UNITS,
) -> Grid:
    """Read one month's CSV into a Grid.

    Raises DataError if the file cannot be read or lacks the lat, lon or
    temperature column. A file with no data rows gives an empty Grid.
    """
    month = MonthKey.parse(month) if month is not None else None
    if isinstance(source, (str, Path)) and not Path(source).exists():
        raise DataError(f"File not found: {source}")
    try:
        frame = pd.read_csv(source)
    except pd.errors.EmptyDataError:
        logger.debug("%s: empty file", month)
        return build_grid(_empty_rows(), month=month)
    except (OSError, UnicodeDecodeError, pd.errors.ParserError) as exc:
        raise DataError(f"Cannot read {source}: {exc}") from exc

    return build_grid(parse_rows(frame, units=units), month=month, n_rows=len(frame))


def set_lon_convention(
    grid: Grid,
    convention: str = "[-180,180]",
) -> Grid:
    """Return a copy of ``grid`` with longitudes in another convention."""
    rows = grid.rows.copy()
    rows["lon"] = normalise_lon(rows["lon"].to_numpy(), convention)
    return build_grid(rows, month=grid.month, n_rows=grid.n_rows)


# ── Regional subsetting ───────────────────────────────────────────────

def filter_by_region(grid: Grid, bounds: RegionBounds) -> pd.DataFrame:
    """Observations of ``grid`` inside ``bounds`` (inclusive), one per row.

    Both sides are compared in the [-180,180] convention, so bounds and
    grid may use different longitude conventions. No match gives an empty
    frame.
    """
    rows = grid.rows
    if rows.empty:
        return rows.copy()
    mask = bounds.lat_mask(rows["lat"].to_numpy()) & bounds.lon_mask(rows["lon"].to_numpy())
    return rows[mask].reset_index(drop=True)


def regional_mean(grid: Grid, bounds: Optional[RegionBounds] = None) -> float:
    """Mean ``value_k`` over non-NaN cells in ``bounds`` (whole grid if None).

    NaN when no cell qualifies.
    """
    rows = grid.rows if bounds is None else filter_by_region(grid, bounds)
    values = rows["value_k"].dropna()
    if values.empty:
        return float("nan")
    return float(values.mean())


def to_observations(rows: pd.DataFrame) -> list:
    return [Observation(float(r.lat), float(r.lon), float(r.value_k))
            for r in rows.itertuples(index=False)]
