"""
climgrid.regions
================
Named region boxes used by the dashboard tabs, in signed longitudes.
"""

from __future__ import annotations

from typing import Union

from climgrid.data import RegionBounds

REGIONS = {
    "alaska":     RegionBounds(lat_min=51, lat_max=72, lon_min=-170, lon_max=-125),
    "us":         RegionBounds(lat_min=25, lat_max=49, lon_min=-125, lon_max=-66),
    "hawaii":     RegionBounds(lat_min=18, lat_max=23, lon_min=-161, lon_max=-153),
    "kansas":     RegionBounds(lat_min=36, lat_max=40, lon_min=-102, lon_max=-94),
    "florida":    RegionBounds(lat_min=24, lat_max=31, lon_min=-87,  lon_max=-80),
    "ny":         RegionBounds(lat_min=40, lat_max=45, lon_min=-80,  lon_max=-73),
    "california": RegionBounds(lat_min=32, lat_max=42, lon_min=-125, lon_max=-114),
    "washington": RegionBounds(lat_min=46, lat_max=49, lon_min=-125, lon_max=-116),
}


def get_region(region: Union[str, RegionBounds, tuple]) -> RegionBounds:
    """Resolve a preset name, a RegionBounds, or a (lat_min, lat_max, lon_min, lon_max) tuple."""
    if isinstance(region, RegionBounds):
        return region
    if isinstance(region, str):
        try:
            return REGIONS[region.lower()]
        except KeyError:
            raise ValueError(
                f"Unknown region '{region}'. Available: {sorted(REGIONS)}"
            ) from None
    lat_min, lat_max, lon_min, lon_max = region
    return RegionBounds(float(lat_min), float(lat_max), float(lon_min), float(lon_max))
