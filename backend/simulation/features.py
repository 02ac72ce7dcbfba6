"""
features.py — Window Statistics over Buoy History
==================================================

Turns a window of tick snapshots into per-parameter numeric series and
the summary statistics the anomaly and insight rules are built on.

Every helper tolerates gaps: snapshots that lack the parameter, or hold a
non-numeric / non-finite value for it, are dropped from the series rather
than poisoning the statistic with NaN.
"""

from typing import Optional, Sequence

import numpy as np

from .models import Snapshot
from .utils import coerce_reading


def parameter_series(snapshots: Sequence[Snapshot], parameter: str) -> np.ndarray:
    """
    Extract one parameter's readings from a window of snapshots.

    Args:
        snapshots: Oldest-first snapshots.
        parameter: Parameter name, e.g. "do".

    Returns:
        1-D float array in snapshot order, gaps removed.
    """
    values = []
    for snapshot in snapshots:
        number = coerce_reading(snapshot.get(parameter))
        if number is not None:
            values.append(number)
    return np.asarray(values, dtype=np.float64)


def window_mean(snapshots: Sequence[Snapshot], parameter: str) -> Optional[float]:
    """Mean of a parameter over the window, None if the window has no readings."""
    series = parameter_series(snapshots, parameter)
    if series.size == 0:
        return None
    return float(series.mean())


def window_std(snapshots: Sequence[Snapshot], parameter: str) -> float:
    """
    Population standard deviation (ddof=0) of a parameter over the window.

    Fewer than two readings carry no spread and give 0.0.
    """
    series = parameter_series(snapshots, parameter)
    if series.size < 2:
        return 0.0
    return float(series.std(ddof=0))
