"""
config.py — Simulation Engine Configuration Constants
======================================================

Centralizes the tick cadence, variability, retention policy, detection
thresholds and physical ranges used by the buoy simulation engine. Tuning
these values adjusts how noisy the simulated sensors are, how sensitive the
anomaly rules are and how many insights reach the dashboard.

The monitored buoys report:
- Dissolved oxygen "do" (mg/L)
- pH
- Total suspended solids "tss" (mg/L)
- Phosphate, nitrogen, nitrate, ammonia (mg/L)
- Water temperature (°C)
- Water hyacinth coverage (% of surface)
"""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Mapping, Optional, Union

# ═══════════════════════════════════════════════════════════════════
# TICK CADENCE
# ═══════════════════════════════════════════════════════════════════

# Seconds between simulation ticks. The dashboard refreshes every 5 s.
TICK_INTERVAL_SECONDS = float(os.environ.get("SIM_TICK_INTERVAL", "5"))

# Scales every generated pattern and noise delta (0 = frozen, 1 = full swing).
# 0.15 keeps readings visibly alive without drifting out of band in minutes.
VARIABILITY_FACTOR = float(os.environ.get("SIM_VARIABILITY", "0.15"))

# Master switch for the anomaly rule families.
ENABLE_ANOMALIES = os.environ.get("SIM_ENABLE_ANOMALIES", "true").lower() in (
    "1", "true", "yes", "on",
)

# Optional seed for the default random source. Unset = nondeterministic.
RANDOM_SEED = (
    int(os.environ["SIM_RANDOM_SEED"]) if os.environ.get("SIM_RANDOM_SEED") else None
)

# ═══════════════════════════════════════════════════════════════════
# HISTORY RETENTION
# ═══════════════════════════════════════════════════════════════════

# 7 days × 24 hours × 6 readings per hour.
HISTORY_CAPACITY = 7 * 24 * 6

# Snapshots older than this (relative to the newest) are evicted on append.
HISTORY_MAX_AGE = timedelta(days=7)

# Bounded in-memory logs kept for callers that poll instead of subscribing.
ANOMALY_LOG_SIZE = 500
INSIGHT_LOG_SIZE = 100

# ═══════════════════════════════════════════════════════════════════
# ANOMALY DETECTION
# ═══════════════════════════════════════════════════════════════════

# Statistical deviation: compare against the mean of this many snapshots.
STATISTICAL_WINDOW = 24

# Relative deviation from the recent mean that counts as anomalous,
# and the level above which it is escalated to critical.
DEVIATION_THRESHOLD = 0.5
CRITICAL_DEVIATION = 1.0
MAX_DEVIATION_LIKELIHOOD = 0.95

# Hyacinth coverage (% of surface) levels.
HYACINTH_CRITICAL_COVERAGE = 60.0
HYACINTH_HIGH_COVERAGE = 35.0

# Rapid growth: coverage points above the mean of the last GROWTH_WINDOW.
GROWTH_WINDOW = 6
GROWTH_THRESHOLD = 3.0

# ═══════════════════════════════════════════════════════════════════
# TRENDS AND INSIGHTS
# ═══════════════════════════════════════════════════════════════════

# Slopes smaller than this (units per reading) are reported as stable.
STABLE_SLOPE = 0.01

# Number of readings fitted for the oxygen depletion rule.
TREND_WINDOW = 12

# Oxygen level (mg/L) below which fish stress sets in.
OXYGEN_CRITICAL_FLOOR = 4.0

# Sensor drift: population std of TSS over DRIFT_WINDOW readings.
DRIFT_WINDOW = 24
DRIFT_STD_THRESHOLD = 500.0

# Global cap on insights emitted by one generation pass over all buoys.
MAX_INSIGHTS_PER_RUN = 2

# Insights are generated on every Nth tick (~30% of ticks).
INSIGHT_EVERY_N_TICKS = 3
INSIGHT_PROBABILITY = 0.3

# ═══════════════════════════════════════════════════════════════════
# PHYSICAL RANGES
# ═══════════════════════════════════════════════════════════════════

# Hard clamp applied to every simulated reading.
PARAMETER_RANGES = {
    "do": (0.0, 15.0),
    "ph": (4.0, 11.0),
    "tss": (0.0, 20000.0),
    "phosphate": (0.0, 2.0),
    "temperature": (5.0, 35.0),
    "hyacinth": (0.0, 100.0),
    "nitrogen": (0.0, 10.0),
    "nitrate": (0.0, 5.0),
    "ammonia": (0.0, 1.0),
}

# ═══════════════════════════════════════════════════════════════════
# LOGGING
# ═══════════════════════════════════════════════════════════════════

# Log level for the simulation engine (DEBUG, INFO, WARNING, ERROR, CRITICAL)
LOG_LEVEL = os.environ.get("SIM_LOG_LEVEL", "INFO")


class ConfigurationError(ValueError):
    """Raised at construction time for an invalid engine configuration."""


Level = Union[float, tuple]

_DIRECTIONS = ("below", "above", "outside")


@dataclass(frozen=True)
class AlertThreshold:
    """
    Critical/warning pair for one tracked parameter.

    ``direction`` says which side is unhealthy: ``below`` for floors (oxygen),
    ``above`` for ceilings (turbidity, nutrients) and ``outside`` for bands,
    where ``critical`` and ``warning`` are ``(low, high)`` tuples (pH).
    """

    critical: Level
    warning: Level
    direction: str = "above"

    def __post_init__(self):
        if self.direction not in _DIRECTIONS:
            raise ConfigurationError(f"Unknown threshold direction: {self.direction!r}")
        banded = self.direction == "outside"
        for value in (self.critical, self.warning):
            if banded and not (isinstance(value, tuple) and len(value) == 2):
                raise ConfigurationError("Band thresholds need (low, high) tuples")
            if not banded and isinstance(value, tuple):
                raise ConfigurationError("Scalar thresholds cannot be tuples")

    def _breached(self, limit: Level, value: float) -> bool:
        if self.direction == "below":
            return value < limit
        if self.direction == "above":
            return value > limit
        low, high = limit
        return value < low or value > high

    def level(self, value: float) -> Optional[str]:
        """Return ``"critical"``, ``"warning"`` or None for a reading."""
        if self._breached(self.critical, value):
            return "critical"
        if self._breached(self.warning, value):
            return "warning"
        return None


DEFAULT_ALERT_THRESHOLDS = {
    "do": AlertThreshold(critical=4.5, warning=6.0, direction="below"),
    "ph": AlertThreshold(critical=(6.5, 8.5), warning=(6.8, 8.2), direction="outside"),
    "tss": AlertThreshold(critical=6000.0, warning=4000.0),
    "phosphate": AlertThreshold(critical=0.35, warning=0.25),
}


@dataclass(frozen=True)
class SimulationConfig:
    """
    Immutable configuration for one engine instance.

    Reconfiguring a running simulation means building a new engine.
    Invalid values raise ConfigurationError immediately.
    """

    tick_interval: float = TICK_INTERVAL_SECONDS
    variability_factor: float = VARIABILITY_FACTOR
    enable_anomalies: bool = ENABLE_ANOMALIES
    alert_thresholds: Mapping[str, AlertThreshold] = field(
        default_factory=lambda: dict(DEFAULT_ALERT_THRESHOLDS)
    )
    history_capacity: int = HISTORY_CAPACITY
    history_max_age: Optional[timedelta] = HISTORY_MAX_AGE
    max_insights_per_run: int = MAX_INSIGHTS_PER_RUN
    anomaly_log_size: int = ANOMALY_LOG_SIZE
    insight_log_size: int = INSIGHT_LOG_SIZE

    def __post_init__(self):
        if self.tick_interval is None or self.tick_interval <= 0:
            raise ConfigurationError(
                f"tick_interval must be positive, got {self.tick_interval!r}"
            )
        if not 0.0 <= self.variability_factor <= 1.0:
            raise ConfigurationError(
                f"variability_factor must be within [0, 1], got {self.variability_factor!r}"
            )
        if not self.alert_thresholds:
            raise ConfigurationError("alert_thresholds must not be empty")
        for name, threshold in self.alert_thresholds.items():
            if not isinstance(threshold, AlertThreshold):
                raise ConfigurationError(f"Threshold for {name!r} is not an AlertThreshold")
        for attr in ("history_capacity", "max_insights_per_run",
                     "anomaly_log_size", "insight_log_size"):
            if getattr(self, attr) <= 0:
                raise ConfigurationError(f"{attr} must be positive")
        if self.history_max_age is not None and self.history_max_age <= timedelta(0):
            raise ConfigurationError("history_max_age must be positive when set")

    @classmethod
    def from_env(cls) -> "SimulationConfig":
        """Build a config from the module constants (and their env overrides)."""
        return cls()
