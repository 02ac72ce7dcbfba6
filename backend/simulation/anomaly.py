"""
anomaly.py — Buoy Anomaly Detector
===================================

Inspects a buoy's readings after each tick and reports anomalies. Three
independent rule families run on every call; any number may fire:

    1. Statistical deviation — a reading more than 50% away from the mean
       of the last 24 snapshots (critical beyond 100%).
    2. Cross-parameter correlation — combinations that point at a process
       rather than a single bad value:
         low oxygen + warm water      → thermal stratification
         acidic water + high phosphate → algal decomposition
    3. Hyacinth coverage — infestation levels and rapid growth against the
       mean of the last 6 snapshots.

The detector never raises: missing or non-numeric readings are skipped and
degenerate statistics (zero or non-finite mean) count as "no anomaly".
"""

import logging
import math
from datetime import datetime
from typing import Mapping, Optional, Sequence

from . import config
from .features import window_mean
from .models import CORRELATION, Anomaly, Snapshot
from .utils import numeric_readings

logger = logging.getLogger("simulation.anomaly")


def relative_deviation(current: float, mean: float) -> float:
    """Distance between a reading and its recent mean, as a fraction of the mean."""
    return abs(current - mean) / abs(mean)


class AnomalyDetector:
    """
    Rule-based anomaly detector for buoy readings.

    Attributes:
        statistical_window (int): Snapshots required for, and averaged by,
            the deviation rule.
        growth_window (int): Snapshots averaged by the hyacinth growth rule.
    """

    def __init__(self, statistical_window: int = None, growth_window: int = None):
        self.statistical_window = (
            statistical_window if statistical_window is not None
            else config.STATISTICAL_WINDOW
        )
        self.growth_window = (
            growth_window if growth_window is not None else config.GROWTH_WINDOW
        )
        if self.statistical_window <= 0 or self.growth_window <= 0:
            raise config.ConfigurationError("Detector windows must be positive")

    def detect(self, buoy_id: str, current_values: Mapping[str, float],
               history: Sequence[Snapshot], now: Optional[datetime] = None) -> list[Anomaly]:
        """
        Run every rule family against the current readings.

        Args:
            buoy_id: Buoy identifier.
            current_values: Parameter -> reading after this tick.
            history: Oldest-first snapshots preceding the current readings.
            now: Timestamp for the emitted anomalies. Defaults to now.

        Returns:
            Anomalies found, possibly empty.
        """
        now = now or datetime.now().astimezone()
        readings = numeric_readings(current_values)
        history = list(history)

        anomalies = []
        anomalies.extend(self._statistical(buoy_id, readings, history, now))
        anomalies.extend(self._correlations(buoy_id, readings, now))
        anomalies.extend(self._hyacinth(buoy_id, readings, history, now))

        for anomaly in anomalies:
            if anomaly.severity == "critical":
                logger.warning(f"{buoy_id}: {anomaly.description} "
                               f"(likelihood={anomaly.likelihood:.2f})")
        return anomalies

    # ── 1. Statistical deviation ──────────────────────────────────

    def _statistical(self, buoy_id, readings, history, now) -> list[Anomaly]:
        if len(history) < self.statistical_window:
            return []
        recent = history[-self.statistical_window:]

        found = []
        for parameter, current in readings.items():
            mean = window_mean(recent, parameter)
            if mean is None or mean == 0 or not math.isfinite(mean):
                continue
            deviation = relative_deviation(current, mean)
            if not math.isfinite(deviation) or deviation <= config.DEVIATION_THRESHOLD:
                continue
            extreme = deviation > config.CRITICAL_DEVIATION
            found.append(Anomaly(
                buoy_id=buoy_id,
                parameter=parameter,
                severity="critical" if extreme else "high",
                description=(
                    f"Unusual {parameter} reading: "
                    f"{'extreme' if extreme else 'significant'} deviation "
                    f"from normal patterns"
                ),
                timestamp=now,
                likelihood=min(config.MAX_DEVIATION_LIKELIHOOD, deviation),
            ))
        return found

    # ── 2. Cross-parameter correlation ────────────────────────────

    @staticmethod
    def _correlations(buoy_id, readings, now) -> list[Anomaly]:
        found = []
        oxygen = readings.get("do")
        temperature = readings.get("temperature")
        if oxygen is not None and temperature is not None:
            if oxygen < 4 and temperature > 25:
                found.append(Anomaly(
                    buoy_id=buoy_id,
                    parameter=CORRELATION,
                    severity="high",
                    description=("High temperature with low oxygen detected - "
                                 "potential thermal stratification"),
                    timestamp=now,
                    likelihood=0.85,
                ))

        ph = readings.get("ph")
        phosphate = readings.get("phosphate")
        if ph is not None and phosphate is not None:
            if ph < 6.5 and phosphate > 0.3:
                found.append(Anomaly(
                    buoy_id=buoy_id,
                    parameter=CORRELATION,
                    severity="medium",
                    description="Low pH with high phosphate may indicate algal decomposition",
                    timestamp=now,
                    likelihood=0.7,
                ))
        return found

    # ── 3. Hyacinth coverage ──────────────────────────────────────

    def _hyacinth(self, buoy_id, readings, history, now) -> list[Anomaly]:
        coverage = readings.get("hyacinth")
        if coverage is None:
            return []

        found = []
        if coverage >= config.HYACINTH_CRITICAL_COVERAGE:
            found.append(Anomaly(
                buoy_id=buoy_id,
                parameter="hyacinth",
                severity="critical",
                description="Critical hyacinth infestation detected - immediate intervention required",
                timestamp=now,
                likelihood=1.0,
            ))
        elif coverage >= config.HYACINTH_HIGH_COVERAGE:
            found.append(Anomaly(
                buoy_id=buoy_id,
                parameter="hyacinth",
                severity="high",
                description="Elevated hyacinth levels - increased monitoring recommended",
                timestamp=now,
                likelihood=0.9,
            ))

        if len(history) >= self.growth_window:
            average = window_mean(history[-self.growth_window:], "hyacinth")
            if average is not None and coverage - average > config.GROWTH_THRESHOLD:
                found.append(Anomaly(
                    buoy_id=buoy_id,
                    parameter="hyacinth",
                    severity="high",
                    description="Rapid hyacinth growth detected - early intervention recommended",
                    timestamp=now,
                    likelihood=0.85,
                ))
        return found
