"""
example_rate_of_change.py
=========================
Month-over-month temperature change on the grid, plus the Kelvin/Celsius
conversion a heatmap legend would use.

Run generate_test_data.py first.
"""

import asyncio
from pathlib import Path

import climgrid

# ── 1. Configuration (edit these) ────────────────────────────────────

DATA_DIR = Path("data/americas")
START    = "1987-01"
END      = "2014-12"
MONTH    = "2000-04"               # change from March to April 2000
REGION   = "us"


# ── 2. Compute ───────────────────────────────────────────────────────

async def main():
    climgrid.configure_logging("INFO")
    async with climgrid.AnomalyGridEngine.from_range(START, END, base=DATA_DIR) as engine:
        grid  = await engine.load_grid(MONTH)
        delta = await engine.rate_of_change(MONTH)

    bounds = climgrid.get_region(REGION)
    print(f"{MONTH}: grid {grid.shape}, {grid.n_valid} valid cells of {grid.n_rows} rows")
    print(f"{REGION} mean: {climgrid.kelvin_to_celsius(climgrid.regional_mean(grid, bounds)):.2f} °C")
    print(f"{REGION} mean change since previous month: "
          f"{climgrid.regional_mean(delta, bounds):+.2f} K")
    print(delta.values)


if __name__ == "__main__":
    asyncio.run(main())
