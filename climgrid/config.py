"""
climgrid.config
===============
Package defaults. Every function takes these as explicit keyword
arguments; the values here are only the fallbacks, and each can be
overridden with a ``CLIMGRID_*`` environment variable.
"""

import os
from pathlib import Path

# ── Data location ─────────────────────────────────────────────────────
DATA_DIR = Path(os.environ.get("CLIMGRID_DATA_DIR", "data/americas"))
FILE_TEMPLATE = os.environ.get("CLIMGRID_FILE_TEMPLATE", "{key}.csv")

# Month range of the Americas archive (1987-01 .. 2014-12)
DEFAULT_START = os.environ.get("CLIMGRID_START", "1987-01")
DEFAULT_END = os.environ.get("CLIMGRID_END", "2014-12")

# ── CSV columns ───────────────────────────────────────────────────────
LAT_COLUMN = "lat"
LON_COLUMN = "lon"
# Checked in order; the first one present in the file is used
TEMPERATURE_COLUMNS = ("tas_k", "tas", "temp", "temperature", "value")

# ── Units ─────────────────────────────────────────────────────────────
KELVIN_OFFSET = 273.15
# units="auto": values above this are Kelvin, the rest are Celsius
KELVIN_THRESHOLD = float(os.environ.get("CLIMGRID_KELVIN_THRESHOLD", 150.0))
DEFAULT_UNITS = os.environ.get("CLIMGRID_UNITS", "auto")

# ── Loading ───────────────────────────────────────────────────────────
MAX_CONCURRENT_LOADS = int(os.environ.get("CLIMGRID_MAX_CONCURRENT_LOADS", 8))
HTTP_TIMEOUT_SECONDS = float(os.environ.get("CLIMGRID_HTTP_TIMEOUT", 30.0))

# ── Trend ─────────────────────────────────────────────────────────────
DAYS_PER_YEAR = 365.25

# ── Logging ───────────────────────────────────────────────────────────
LOG_LEVEL = os.environ.get("CLIMGRID_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
