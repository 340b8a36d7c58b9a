"""
climgrid.exceptions
===================
Errors raised by climgrid.
"""


class ClimgridError(Exception):
    "Base exception for all climgrid errors."
    pass


class DataError(ClimgridError):
    """A month's file is missing, unreadable or lacks required columns."""
    pass


class ShapeMismatchError(ClimgridError):
    """Two grids do not share the same lat/lon axes."""
    pass


class InsufficientDataError(ClimgridError):
    """Too few points (or no time spread) to define a trend."""
    pass
