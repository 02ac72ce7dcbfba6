"""
utils.py — Shared Utility Functions and Logging Setup
======================================================

Common helpers used across the simulation engine modules.
"""

import logging
import math
from typing import Optional

from . import config


def setup_logging(level: str = None) -> None:
    """
    Configure structured logging for the simulation engine.

    Sets up a console handler with timestamp, logger name, level,
    and message. All simulation.* loggers inherit this configuration.

    Args:
        level: Log level string (DEBUG/INFO/WARNING/ERROR/CRITICAL).
               Defaults to config.LOG_LEVEL.
    """
    level = level or config.LOG_LEVEL
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(name)s] %(levelname)s — %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    sim_logger = logging.getLogger("simulation")
    sim_logger.setLevel(numeric_level)

    # Avoid duplicate handlers on repeated calls
    if not sim_logger.handlers:
        sim_logger.addHandler(handler)


def coerce_reading(value) -> Optional[float]:
    """
    Convert a raw sensor value to a finite float.

    Returns:
        The float value, or None for missing, non-numeric, NaN or
        infinite readings.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def numeric_readings(values) -> dict:
    """Keep only the parameters whose reading coerces to a finite float."""
    if not isinstance(values, dict):
        return {}
    readings = {}
    for name, raw in values.items():
        number = coerce_reading(raw)
        if number is not None:
            readings[name] = number
    return readings


def validate_buoy(buoy) -> bool:
    """
    Validate that a buoy can be ticked.

    Args:
        buoy: Buoy instance.

    Returns:
        True if it has a non-empty id and a dict of sensors, False otherwise.
    """
    buoy_id = getattr(buoy, "id", None)
    if not isinstance(buoy_id, str) or not buoy_id:
        return False
    return isinstance(getattr(buoy, "sensors", None), dict)
