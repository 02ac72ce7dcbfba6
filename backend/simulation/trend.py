"""
trend.py — Linear Trend Analyzer
=================================

Fits an ordinary least-squares line through a window of readings and
reports where the parameter is heading.

The x-axis is sample order (0..n-1), not wall-clock time: callers pass an
evenly spaced window of consecutive tick readings, so the slope is in
parameter units per reading.

    direction   — stable when |slope| < config.STABLE_SLOPE,
                  otherwise increasing / decreasing by sign
    rate        — |slope|
    confidence  — coefficient of determination (R²) of the fit,
                  clamped to [0, 1]
"""

import logging
from typing import Sequence

import numpy as np
from sklearn.linear_model import LinearRegression
from sklearn.metrics import r2_score

from . import config
from .features import parameter_series
from .models import STABLE_TREND, Snapshot, TrendResult

logger = logging.getLogger("simulation.trend")

MIN_POINTS = 3


class TrendAnalyzer:
    """
    OLS trend fitter built on scikit-learn's LinearRegression.

    Attributes:
        stable_slope (float): Slope magnitude below which a trend is stable.
    """

    def __init__(self, stable_slope: float = None):
        self.stable_slope = (
            stable_slope if stable_slope is not None else config.STABLE_SLOPE
        )

    def fit(self, values: Sequence[float]) -> TrendResult:
        """
        Fit a linear trend to an ordered window of readings.

        Args:
            values: Oldest-first readings.

        Returns:
            TrendResult. Fewer than three finite points give
            (stable, 0, 0).
        """
        y = np.asarray(values, dtype=np.float64)
        if y.size < MIN_POINTS or not np.all(np.isfinite(y)):
            return STABLE_TREND

        X = np.arange(y.size, dtype=np.float64).reshape(-1, 1)
        model = LinearRegression().fit(X, y)
        slope = float(model.coef_[0])
        if not np.isfinite(slope):
            return STABLE_TREND

        # A flat series has no variance to explain; R² is undefined there
        if np.allclose(y, y[0]):
            slope = 0.0
            confidence = 0.0
        else:
            confidence = float(r2_score(y, model.predict(X)))
            if not np.isfinite(confidence):
                confidence = 0.0
        confidence = min(1.0, max(0.0, confidence))

        if abs(slope) < self.stable_slope:
            direction = "stable"
        elif slope > 0:
            direction = "increasing"
        else:
            direction = "decreasing"

        result = TrendResult(direction=direction, rate=abs(slope), confidence=confidence)
        logger.debug(f"Trend over {y.size} points: {result}")
        return result

    def fit_parameter(self, history: Sequence[Snapshot], parameter: str,
                      window: int = None) -> TrendResult:
        """Fit the trend of one parameter over the last ``window`` snapshots."""
        window = window if window is not None else config.TREND_WINDOW
        return self.fit(parameter_series(list(history)[-window:], parameter))
