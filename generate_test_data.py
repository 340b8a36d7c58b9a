"""
generate_test_data.py
=====================
Generate a small synthetic monthly temperature archive in the layout
climgrid reads: one CSV per month plus a JSON manifest. Nothing needs to
be downloaded. Run once before trying the examples.

Output in data/americas/ :
  YYYY-MM.csv    : lat, lon, tas_k for a 2° grid over North America
                    and Hawaii, 1987-01 .. 2014-12, longitudes in 0..360
  manifest.json  : [{"date": "YYYY-MM", "path": "YYYY-MM.csv"}, ...]

Signals included:
  seasonal cycle (stronger toward the pole)
  + warming trend of 0.25 K/decade (0.5 K/decade north of 60°N)
  + white noise, with ~1 % of cells blank

Usage
-----
    python generate_test_data.py
"""

import json
from pathlib import Path

import numpy as np
import pandas as pd

# ── Configuration ─────────────────────────────────────────────────────

OUT_DIR    = Path("data/americas")
SEED       = 42
START      = "1987-01"
END        = "2014-12"
MISSING    = 0.01            # fraction of blank cells per month

OUT_DIR.mkdir(parents=True, exist_ok=True)
rng = np.random.default_rng(SEED)

# ── Grid ──────────────────────────────────────────────────────────────

lat = np.arange(16, 74, 2, dtype=float)        # 16°N – 72°N
lon = np.arange(190, 296, 2, dtype=float)      # 170°W – 66°W, 0..360 convention
lat2d, lon2d = np.meshgrid(lat, lon, indexing="ij")

months = pd.date_range(f"{START}-01", f"{END}-01", freq="MS")

# Annual mean: warm tropics, cold Arctic (K)
clim_mean = 300.0 - 0.55 * (lat2d - 16.0)
# Seasonal amplitude grows with latitude (K)
amplitude = 2.0 + 0.3 * (lat2d - 16.0)
trend_per_decade = np.where(lat2d > 60, 0.5, 0.25)

# ── Write monthly files ───────────────────────────────────────────────

print(f"Writing {len(months)} monthly files...", end=" ")

manifest = []
for t, date in enumerate(months):
    phase = 2.0 * np.pi * (date.month - 7) / 12.0          # peak in July
    decades = t / 120.0
    field = (clim_mean
             + amplitude * np.cos(phase)
             + trend_per_decade * decades
             + 0.6 * rng.standard_normal(lat2d.shape))

    values = np.round(field, 2).astype(object)
    values[rng.random(lat2d.shape) < MISSING] = ""

    frame = pd.DataFrame({
        "lat": lat2d.ravel(),
        "lon": lon2d.ravel(),
        "tas_k": values.ravel(),
    })
    # shuffle rows: the grid must not depend on file order
    frame = frame.sample(frac=1.0, random_state=SEED + t)

    name = f"{date:%Y-%m}.csv"
    frame.to_csv(OUT_DIR / name, index=False)
    manifest.append({"date": f"{date:%Y-%m}", "path": name})

(OUT_DIR / "manifest.json").write_text(json.dumps(manifest, indent=1))
print("done")

# ── Summary ───────────────────────────────────────────────────────────

print(f"\n{len(months)} CSV files + manifest.json → {OUT_DIR}/")
print(f"Grid: {len(lat)} lat × {len(lon)} lon, "
      f"{lat[0]:.0f}°N–{lat[-1]:.0f}°N, {lon[0]:.0f}°E–{lon[-1]:.0f}°E")
print("Now run examples/example_anomaly.py")
