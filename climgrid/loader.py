"""
climgrid.loader
===============
Asynchronous, per-month grid cache.

A :class:`GridLoader` knows where every month lives (a list of
:class:`~climgrid.manifest.MonthEntry`) and loads each month at most once:
concurrent requests for the same month share one ``asyncio.Task``, and a
finished load is kept for the lifetime of the loader. A failed load is
forgotten so it can be retried. At most ``max_concurrent`` files are read
at the same time.

Every file is parsed with pandas in a worker thread; http(s) locators are
first fetched with aiohttp. A session the loader creates itself belongs to
the event loop it was made on and is replaced when the loader is used from
another loop (for example a second ``asyncio.run``).

>>> loader = GridLoader(entries)
>>> grid = await loader.load("1990-07")
>>> grids = await loader.load_many(keys)      # {MonthKey: Grid}, failures skipped
"""

from __future__ import annotations

import asyncio
import io
import logging
from typing import Iterable, Optional

import aiohttp

from climgrid import config
from climgrid.data import Grid, MonthKey, read_grid_csv
from climgrid.exceptions import DataError
from climgrid.manifest import MonthEntry

logger = logging.getLogger(__name__)


class GridLoader:
    """Load and cache monthly Grids by MonthKey.

    Parameters
    ----------
    entries        : iterable of MonthEntry, the resolved manifest.
    max_concurrent : int, upper bound on simultaneous file reads.
    session        : aiohttp.ClientSession, optional, reused for URL
                     locators. One is created on demand otherwise and closed
                     by :meth:`close`.
    """

    def __init__(
        self,
        entries: Iterable[MonthEntry],
        max_concurrent: int = config.MAX_CONCURRENT_LOADS,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = config.HTTP_TIMEOUT_SECONDS,
    ):
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {max_concurrent}")
        self._entries = {e.key: e for e in entries}
        self._max_concurrent = max_concurrent
        self._session = session
        self._owns_session = session is None
        self._timeout = timeout
        self._tasks: dict = {}
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._semaphore_loop = None
        self._session_loop = None

    # ── Introspection ─────────────────────────────────────────────────

    @property
    def keys(self) -> list:
        """All months the loader can resolve, ascending."""
        return sorted(self._entries)

    def entry(self, key) -> MonthEntry:
        key = MonthKey.parse(key)
        try:
            return self._entries[key]
        except KeyError:
            raise DataError(f"No file listed for {key}") from None

    def is_cached(self, key) -> bool:
        task = self._tasks.get(MonthKey.parse(key))
        if task is None or not task.done() or task.cancelled():
            return False
        return task.exception() is None

    # ── Loading ───────────────────────────────────────────────────────

    async def load(self, key) -> Grid:
        """Return the Grid for ``key``, loading it on first use.

        Raises DataError if the month is not listed or its file cannot be read.
        """
        key = MonthKey.parse(key)
        task = self._tasks.get(key)
        if task is None:
            entry = self.entry(key)
            task = asyncio.ensure_future(self._read(entry))
            task.add_done_callback(lambda t, k=key: self._forget_failure(k, t))
            self._tasks[key] = task
        else:
            logger.debug("%s: cache hit", key)
        return await asyncio.shield(task) if not task.done() else task.result()

    async def load_many(self, keys: Iterable) -> dict:
        """Load several months concurrently.

        Returns ``{MonthKey: Grid}`` in ascending month order. Months that
        fail are logged and left out.
        """
        keys = sorted({MonthKey.parse(k) for k in keys})
        results = await asyncio.gather(*(self.load(k) for k in keys),
                                       return_exceptions=True)
        grids = {}
        for key, result in zip(keys, results):
            if isinstance(result, DataError):
                logger.warning("Skipping %s: %s", key, result)
                continue
            if isinstance(result, BaseException):
                raise result
            grids[key] = result
        return grids

    def _forget_failure(self, key: MonthKey, task: asyncio.Future) -> None:
        if task.cancelled() or task.exception() is not None:
            if self._tasks.get(key) is task:
                del self._tasks[key]

    def _get_semaphore(self) -> asyncio.Semaphore:
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._semaphore_loop is not loop:
            self._semaphore = asyncio.Semaphore(self._max_concurrent)
            self._semaphore_loop = loop
        return self._semaphore

    async def _read(self, entry: MonthEntry) -> Grid:
        async with self._get_semaphore():
            logger.debug("Loading %s from %s", entry.key, entry.locator)
            if entry.is_url:
                source = io.BytesIO(await self._fetch(entry.locator))
            else:
                source = entry.locator
            return await asyncio.to_thread(read_grid_csv, source, entry.key, entry.units)

    def _get_session(self) -> aiohttp.ClientSession:
        loop = asyncio.get_running_loop()
        stale = self._owns_session and self._session_loop is not loop
        if self._session is None or self._session.closed or stale:
            # a session is bound to the loop it was created on
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout)
            )
            self._session_loop = loop
            self._owns_session = True
        return self._session

    async def _fetch(self, url: str) -> bytes:
        try:
            async with self._get_session().get(url) as resp:
                resp.raise_for_status()
                return await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise DataError(f"Failed to fetch {url}: {exc}") from exc

    async def close(self) -> None:
        if not self._owns_session or self._session is None or self._session.closed:
            return
        if self._session_loop is asyncio.get_running_loop():
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "GridLoader":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()
