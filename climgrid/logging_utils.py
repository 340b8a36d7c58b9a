"""Logging setup for scripts that use climgrid.

The library itself only creates module loggers; call
:func:`configure_logging` from an application entry point.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from climgrid import config


def configure_logging(
    level: Union[int, str] = config.LOG_LEVEL,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Attach a stream handler (and optionally a file handler) to the
    ``climgrid`` logger and return it."""
    logger = logging.getLogger("climgrid")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(level)

    formatter = logging.Formatter(config.LOG_FORMAT)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    return logger


__all__ = ["configure_logging"]
