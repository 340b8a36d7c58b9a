"""
climgrid.manifest
=================
Turn a manifest document into an ordered list of :class:`MonthEntry`.

Accepted JSON shapes
--------------------
1. ``[{"date": "1990-07", "path": "1990-07.csv"}, ...]``
   (date key: date | time | timestamp | month; locator key: path | file | url)
2. ``["1990-07", "1990-08", ...]``: locator built from a file template
3. ``{"1990-07": "1990-07.csv", "1990-08": {"url": "..."}}``

Any entry may carry ``"units": "K" | "C" | "auto"``. The engine only ever
sees the normalised entries.

>>> from climgrid.manifest import load_manifest
>>> entries = load_manifest("data/americas/manifest.json")
>>> entries[0]
MonthEntry(key=MonthKey(year=1987, month=1), locator='data/americas/1987-01.csv', units='auto')
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import NamedTuple, Optional, Union

from climgrid import config
from climgrid.data import MonthKey, month_range
from climgrid.exceptions import DataError

logger = logging.getLogger(__name__)

DATE_KEYS = ("date", "time", "timestamp", "month")
LOCATOR_KEYS = ("path", "file", "url")
UNITS = ("K", "C", "auto")


class MonthEntry(NamedTuple):
    """One month and where to read it from (local path or http(s) URL)."""

    key: MonthKey
    locator: str
    units: str = "auto"

    @property
    def is_url(self) -> bool:
        return is_url(self.locator)


def is_url(locator: str) -> bool:
    return locator.startswith(("http://", "https://"))


def _resolve(locator: str, base: Optional[Path]) -> str:
    if is_url(locator) or base is None or Path(locator).is_absolute():
        return locator
    return str(base / locator)


def _first(record: dict, names: tuple) -> Optional[str]:
    for name in names:
        if record.get(name) not in (None, ""):
            return record[name]
    return None


def _units(record: dict, default: str) -> str:
    units = record.get("units", default)
    if units not in UNITS:
        raise DataError(f"Unknown units '{units}'; expected one of {UNITS}")
    return units


def _entry_from_record(
    record: dict,
    date: Optional[str],
    base: Optional[Path],
    template: str,
    units: str,
) -> MonthEntry:
    date = date if date is not None else _first(record, DATE_KEYS)
    if date is None:
        raise DataError(f"Manifest entry has no date field ({'|'.join(DATE_KEYS)}): {record}")
    key = MonthKey.parse(str(date))
    locator = _first(record, LOCATOR_KEYS)
    if locator is None:
        locator = template.format(key=key, year=key.year, month=key.month)
    return MonthEntry(key, _resolve(str(locator), base), _units(record, units))


def normalise_manifest(
    document,
    base: Optional[Union[str, Path]] = None,
    template: str = config.FILE_TEMPLATE,
    units: str = config.DEFAULT_UNITS,
) -> list:
    """Normalise any accepted manifest shape into MonthEntries sorted by month.

    Parameters
    ----------
    document : list or dict, parsed JSON.
    base     : directory that relative locators are resolved against.
    template : locator for entries that only give a date. ``{key}``,
               ``{year}`` and ``{month}`` are substituted.
    units    : default units for entries without a ``units`` field.

    If a month appears twice, the later entry wins.
    """
    base = Path(base) if base is not None else None
    entries = []
    try:
        if isinstance(document, dict):
            for date, value in document.items():
                record = value if isinstance(value, dict) else {"path": value}
                entries.append(_entry_from_record(record, date, base, template, units))
        elif isinstance(document, list):
            for item in document:
                if isinstance(item, dict):
                    entries.append(_entry_from_record(item, None, base, template, units))
                elif isinstance(item, str):
                    entries.append(_entry_from_record({}, item, base, template, units))
                else:
                    raise DataError(f"Unsupported manifest item: {item!r}")
        else:
            raise DataError(f"Manifest must be a list or an object, got {type(document).__name__}")
    except ValueError as exc:
        raise DataError(f"Bad date in manifest: {exc}") from exc

    by_key = {}
    for entry in entries:
        if entry.key in by_key:
            logger.warning("Manifest lists %s twice; using %s", entry.key, entry.locator)
        by_key[entry.key] = entry
    return [by_key[k] for k in sorted(by_key)]


def load_manifest(
    path: Union[str, Path],
    template: str = config.FILE_TEMPLATE,
    units: str = config.DEFAULT_UNITS,
) -> list:
    """Read a JSON manifest file; relative locators resolve next to it."""
    path = Path(path)
    if not path.exists():
        raise DataError(f"Manifest not found: {path}")
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise DataError(f"Cannot read manifest {path}: {exc}") from exc
    return normalise_manifest(document, base=path.parent, template=template, units=units)


def entries_for_range(
    start,
    end,
    base: Union[str, Path] = config.DATA_DIR,
    template: str = config.FILE_TEMPLATE,
    units: str = config.DEFAULT_UNITS,
) -> list:
    """MonthEntries for every month in [start, end] following a file template.

    This is how the dashboard located its files: ``data/americas/YYYY-MM.csv``.
    """
    return [
        MonthEntry(key, _resolve(template.format(key=key, year=key.year, month=key.month),
                                 Path(base)), units)
        for key in month_range(start, end)
    ]
