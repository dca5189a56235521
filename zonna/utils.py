"""
Utility Functions for the Zonna Territory Engine

This module provides helpers for value conversion, rounding and logging
setup used by the loaders, the exporters and the entry points.
"""

import logging
import numpy as np
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def safe_float(value) -> float:
    """
    Safely convert a value to float, returning NaN on failure.

    Args:
        value: Value to convert (string, number, etc.).

    Returns:
        Float value, or np.nan if conversion fails.
    """
    try:
        return float(value)
    except (TypeError, ValueError):
        return np.nan


def optional_float(value) -> Optional[float]:
    """Like safe_float, but maps missing and unparsable values to None."""
    number = safe_float(value)
    if np.isnan(number):
        return None
    return number


def round_float(value, digits: int = 3) -> Optional[float]:
    """
    Round a float value, handling None, NaN, and Inf.

    Args:
        value: Value to round.
        digits: Number of decimal places. Default 3.

    Returns:
        Rounded float, or None if value is None, NaN, or Inf.
    """
    if value is None or (isinstance(value, float) and (np.isnan(value) or np.isinf(value))):
        return None
    return round(float(value), digits)


def configure_logging(level: Union[int, str] = logging.INFO) -> logging.Logger:
    """
    Install one timestamped stream handler on the ``zonna`` logger.

    Entry points call this; library modules only create module loggers.
    Calling it again replaces the level without stacking handlers.
    """
    root = logging.getLogger("zonna")
    if isinstance(level, str):
        level = level.upper()
    root.setLevel(level)

    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    return root
