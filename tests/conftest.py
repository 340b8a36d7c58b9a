"""
Shared fixtures for climgrid tests.

Monthly CSV files are written into ``tmp_path``; URL months are served from
a local aiohttp server on 127.0.0.1. No files outside the temporary
directory are used. Async code is driven with ``asyncio.run`` inside
ordinary test functions.
"""

import asyncio
import json
import threading

import numpy as np
import pandas as pd
import pytest
from aiohttp import test_utils, web

from climgrid.data import MonthKey, month_range
from climgrid.manifest import MonthEntry


def write_month(directory, key, lats, lons, values, column="tas_k"):
    """Write one month as CSV (one row per lat/lon pair) and return its MonthEntry."""
    key = MonthKey.parse(key)
    lat2d, lon2d = np.meshgrid(lats, lons, indexing="ij")
    values = np.broadcast_to(np.asarray(values, dtype=float), lat2d.shape)
    frame = pd.DataFrame({
        "lat": lat2d.ravel(),
        "lon": lon2d.ravel(),
        column: values.ravel(),
    })
    path = directory / f"{key}.csv"
    frame.to_csv(path, index=False)
    return MonthEntry(key, str(path))


@pytest.fixture
def small_grid_dir(tmp_path):
    """Three months of a 2×2 grid: 280 K, 282 K, 281 K everywhere."""
    lats, lons = [40.0, 41.0], [-100.0, -99.0]
    entries = [
        write_month(tmp_path, "1990-01", lats, lons, 280.0),
        write_month(tmp_path, "1990-02", lats, lons, 282.0),
        write_month(tmp_path, "1990-03", lats, lons, 281.0),
    ]
    return tmp_path, entries


@pytest.fixture
def multi_year_entries(tmp_path):
    """Four years of monthly 3×3 grids with a seasonal cycle, trend and noise.

    Longitudes are written in the 0..360 convention.
    """
    rng = np.random.default_rng(42)
    lats, lons = [30.0, 32.0, 34.0], [250.0, 252.0, 254.0]
    entries = []
    for t, key in enumerate(month_range("2000-01", "2003-12")):
        base = 285.0 + 8.0 * np.cos(2 * np.pi * (key.month - 7) / 12) + 0.02 * t
        values = base + rng.normal(0.0, 0.5, size=(3, 3))
        entries.append(write_month(tmp_path, key, lats, lons, values))
    return entries


@pytest.fixture
def manifest_file(small_grid_dir):
    directory, entries = small_grid_dir
    doc = [{"date": str(e.key), "path": f"{e.key}.csv"} for e in entries]
    path = directory / "manifest.json"
    path.write_text(json.dumps(doc))
    return path


class CsvServer:
    """Serve in-memory CSV bodies over HTTP from a background event loop.

    The server has its own loop and thread, so it stays up across several
    ``asyncio.run`` calls in one test. Unknown names get a 404.
    """

    def __init__(self):
        self.bodies = {}
        self.requests = []
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, daemon=True)
        self._server = None

    async def _handle(self, request):
        name = request.match_info["name"]
        self.requests.append(name)
        if name not in self.bodies:
            raise web.HTTPNotFound()
        return web.Response(body=self.bodies[name], content_type="text/csv")

    async def _start(self):
        app = web.Application()
        app.router.add_get("/{name}", self._handle)
        self._server = test_utils.TestServer(app, host="127.0.0.1")
        await self._server.start_server()

    def _call(self, coro):
        return asyncio.run_coroutine_threadsafe(coro, self._loop).result(timeout=10)

    def start(self):
        self._thread.start()
        self._call(self._start())

    def stop(self):
        self._call(self._server.close())
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=10)
        self._loop.close()

    def url(self, name):
        return str(self._server.make_url(f"/{name}"))

    def entry(self, key, units="auto"):
        """MonthEntry pointing at ``<key>.csv`` on this server."""
        key = MonthKey.parse(key)
        return MonthEntry(key, self.url(f"{key}.csv"), units)


@pytest.fixture
def csv_server():
    server = CsvServer()
    server.start()
    yield server
    server.stop()
