"""
example_anomaly.py
==================
Demonstrates the full climgrid pipeline for a set of regions:
baseline, monthly anomalies, trend per decade, and a seasonal refit.
Alaska's trend is then drawn on the California time axis.

All parameters are set at the top of the script, no interactive input().
Run generate_test_data.py first.
"""

import asyncio
from pathlib import Path

import climgrid

# ── 1. Configuration (edit these) ────────────────────────────────────

MANIFEST   = Path("data/americas/manifest.json")
OUT_DIR    = Path("output/anomalies")
REGIONS    = ["alaska", "california", "florida", "hawaii"]
SEASON     = "winter"          # "winter", "spring", "summer", "fall" or "all"
MONTHS     = None              # None → every month in the manifest


# ── 2. Run the analysis ──────────────────────────────────────────────

async def analyse(engine, regions, months):
    return [await engine.analyse_region(name, month_keys=months) for name in regions]


async def main():
    climgrid.configure_logging("INFO")
    async with climgrid.AnomalyGridEngine.from_manifest(MANIFEST) as engine:
        contexts = await analyse(engine, REGIONS, MONTHS)

    OUT_DIR.mkdir(parents=True, exist_ok=True)
    for ctx in contexts:
        if ctx.trend is None:
            print(f"{ctx.name:<12} trend undefined ({len(ctx.series)} months)")
            continue
        ctx.selected_season = SEASON
        try:
            seasonal = f"{ctx.selected_trend().slope_per_decade:+.2f}"
        except climgrid.InsufficientDataError:
            seasonal = "n/a"
        print(f"{ctx.name:<12} {len(ctx.series):>4} months   "
              f"trend {ctx.trend.slope_per_decade:+.2f} K/decade   "
              f"{SEASON} {seasonal} K/decade   "
              f"skipped {len(ctx.skipped)}")
        ctx.series.to_csv(OUT_DIR / f"{ctx.name}_anomalies.csv")

    # ── 3. Overlay one region's trend on another's axis ──────────────
    by_name = {c.name: c for c in contexts}
    alaska, california = by_name.get("alaska"), by_name.get("california")
    if alaska and california and alaska.trend and not california.series.empty:
        line = alaska.trend.endpoints(california.series.index[0],
                                      california.series.index[-1])
        print("\nAlaska trend on the California axis:")
        print(line)


if __name__ == "__main__":
    asyncio.run(main())
