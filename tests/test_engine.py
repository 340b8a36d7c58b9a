"""End-to-end tests for AnomalyGridEngine."""

import asyncio

import numpy as np
import numpy.testing as npt
import pandas as pd
import pytest

from climgrid import AnomalyGridEngine, RegionBounds
from climgrid.data import MonthKey
from climgrid.exceptions import InsufficientDataError, ShapeMismatchError
from climgrid.manifest import MonthEntry

from conftest import write_month

BOX = RegionBounds(lat_min=35, lat_max=45, lon_min=-105, lon_max=-95)
# the multi-year fixture grid, written in 0..360 longitudes
SW_BOX = RegionBounds(lat_min=29, lat_max=35, lon_min=-111, lon_max=-105)


def run(coro):
    return asyncio.run(coro)


def test_single_year_baseline_gives_zero_anomaly(small_grid_dir):
    _, entries = small_grid_dir
    engine = AnomalyGridEngine(entries)

    async def go():
        baseline = await engine.compute_baseline(["1990-01"], BOX)
        series = await engine.compute_anomaly_series(
            ["1990-01", "1990-02", "1990-03"], BOX, baseline)
        return baseline, series

    baseline, series = run(go())
    assert baseline[1] == 280.0
    assert baseline.drop(1).isna().all()
    # months 2 and 3 have no baseline and drop out
    assert list(series.index) == [pd.Timestamp("1990-01-01")]
    assert series["anomaly_k"].iloc[0] == 0.0
    assert series["mean_temp_k"].iloc[0] == 280.0


def test_analyse_region_mixed_conventions(multi_year_entries):
    engine = AnomalyGridEngine(multi_year_entries)
    ctx = run(engine.analyse_region(SW_BOX, name="southwest"))

    assert ctx.name == "southwest"
    assert len(ctx.series) == 48
    assert ctx.series.index.is_monotonic_increasing
    assert not ctx.baseline.isna().any()
    per_month = ctx.series["anomaly_k"].groupby(ctx.series.index.month).mean()
    npt.assert_allclose(per_month.to_numpy(), 0.0, atol=1e-9)
    # 0.02 K/month built into the fixture ≈ 2.4 K/decade
    assert ctx.trend.slope_per_decade == pytest.approx(2.4, abs=0.6)
    assert ctx.skipped == []


def test_missing_month_is_skipped(multi_year_entries, tmp_path, caplog):
    ghost = MonthEntry(MonthKey(2004, 1), str(tmp_path / "2004-01.csv"))
    engine = AnomalyGridEngine(multi_year_entries + [ghost])
    ctx = run(engine.analyse_region(SW_BOX))

    assert ctx.skipped == [MonthKey(2004, 1)]
    assert len(ctx.series) == 48
    assert caplog.text.count("Skipping 2004-01") == 1


def test_undecodable_url_month_is_skipped(tmp_path, csv_server, caplog):
    lats, lons = [40.0], [-100.0]
    local = write_month(tmp_path, "1990-01", lats, lons, 280.0)
    csv_server.bodies["1991-01.csv"] = b"lat,lon,tas_k\n40,-100,281\n# caf\xe9\n"
    engine = AnomalyGridEngine([local, csv_server.entry("1991-01")])

    async def go():
        async with engine:
            return await engine.analyse_region(BOX)

    ctx = run(go())
    assert ctx.skipped == [MonthKey(1991, 1)]
    assert list(ctx.series.index) == [pd.Timestamp("1990-01-01")]
    assert caplog.text.count("Skipping 1991-01") == 1


def test_region_outside_grid(multi_year_entries, caplog):
    engine = AnomalyGridEngine(multi_year_entries)
    ctx = run(engine.analyse_region("alaska"))
    assert ctx.series.empty
    assert ctx.trend is None
    assert ctx.baseline.isna().all()
    assert "No data found for alaska" in caplog.text


def test_all_nan_month_contributes_no_point(tmp_path):
    lats, lons = [40.0], [-100.0, -99.0]
    entries = [
        write_month(tmp_path, "1990-01", lats, lons, 280.0),
        write_month(tmp_path, "1991-01", lats, lons, np.nan),
        write_month(tmp_path, "1992-01", lats, lons, [[282.0, np.nan]]),
    ]
    engine = AnomalyGridEngine(entries)
    ctx = run(engine.analyse_region(BOX))

    assert ctx.baseline[1] == 281.0
    assert [t.year for t in ctx.series.index] == [1990, 1992]
    npt.assert_allclose(ctx.series["anomaly_k"], [-1.0, 1.0])


def test_selection_refits_trend(multi_year_entries):
    engine = AnomalyGridEngine(multi_year_entries)
    ctx = run(engine.analyse_region(SW_BOX))

    ctx.selected_season = "summer"
    assert set(ctx.selected_series().index.month) == {6, 7, 8}
    assert ctx.selected_trend().n_points == 12

    ctx.selected_season = "all"
    ctx.selected_month = 1
    assert len(ctx.selected_series()) == 4

    ctx.selected_month = 1
    ctx.selected_season = "summer"
    with pytest.raises(InsufficientDataError):
        ctx.selected_trend()


def test_rate_of_change(small_grid_dir):
    _, entries = small_grid_dir
    engine = AnomalyGridEngine(entries)
    delta = run(engine.rate_of_change("1990-02"))
    npt.assert_allclose(delta.values.values, 2.0)
    assert delta.month == MonthKey(1990, 2)


def test_rate_of_change_shape_mismatch(tmp_path):
    entries = [
        write_month(tmp_path, "1990-01", [40.0, 41.0], [-100.0], 280.0),
        write_month(tmp_path, "1990-02", [40.0, 41.0], [-100.0, -99.0], 281.0),
    ]
    engine = AnomalyGridEngine(entries)
    with pytest.raises(ShapeMismatchError):
        run(engine.rate_of_change("1990-02"))


def test_from_manifest(manifest_file):
    async def go():
        async with AnomalyGridEngine.from_manifest(manifest_file) as engine:
            grid = await engine.load_grid("1990-03")
            return engine.month_keys, grid

    keys, grid = run(go())
    assert keys == [MonthKey(1990, m) for m in (1, 2, 3)]
    assert grid.shape == (2, 2)
    npt.assert_array_equal(grid.lat, [41.0, 40.0])


def test_from_range(small_grid_dir):
    directory, _ = small_grid_dir
    engine = AnomalyGridEngine.from_range("1990-01", "1990-03", base=directory)
    grid = run(engine.load_grid("1990-01"))
    assert len(engine.filter_by_region(grid, BOX)) == 4


def test_requires_entries_or_loader():
    with pytest.raises(ValueError):
        AnomalyGridEngine()


def test_configure_logging(tmp_path):
    import logging
    from climgrid import configure_logging

    log_file = tmp_path / "logs" / "climgrid.log"
    logger = configure_logging("DEBUG", log_file=log_file)
    try:
        assert logger.name == "climgrid"
        assert len(logger.handlers) == 2
        logging.getLogger("climgrid.engine").debug("hello")
        for handler in logger.handlers:
            handler.flush()
        assert "climgrid.engine | DEBUG | hello" in log_file.read_text()
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)


def test_configure_logging_twice_closes_old_file(tmp_path):
    import logging
    from climgrid import configure_logging

    logger = configure_logging("INFO", log_file=tmp_path / "first.log")
    try:
        first = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
        configure_logging("INFO", log_file=tmp_path / "second.log")
        assert len(first) == 1
        assert first[0].stream is None
        assert first[0] not in logger.handlers
        assert len(logger.handlers) == 2
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)
