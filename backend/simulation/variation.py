"""
variation.py — Parameter Variation Model
=========================================

Advances one sensor reading by one tick. Each step combines:

    pattern  — deterministic function of time (and, for hyacinth, of the
               current coverage): daily sinusoid of hour-of-day, seasonal
               sinusoid of day-of-year, and slower environmental cycles.
    noise    — random component drawn from an injectable source.

    next = clamp(current + (pattern + noise) × variability_factor)

Daily/seasonal shapes by parameter:
    do          — photosynthesis peak at noon (±0.8), seasonal ±1.2
    ph          — small biological daily swing (±0.05)
    tss         — 6-hour weather cycle (±0.15)
    phosphate   — weekly agricultural runoff cycle (±0.02)
    temperature — afternoon peak (±3 °C), seasonal ±8 °C peaking mid-year
    hyacinth    — growth bias: faster above 30% coverage and in daylight,
                  asymmetric noise and a 1% chance of a sudden jump
                  (new mats drifting in from upstream)
    nitrogen    — monthly rainfall cycle (±0.1)
    nitrate     — bi-weekly fertiliser cycle (±0.05)
    ammonia     — decomposition peak in the afternoon (±0.01)

Splitting pattern from noise lets tests pin the random source and assert
exact values for the deterministic part.
"""

import logging
import math
from datetime import datetime

import numpy as np

from . import config

logger = logging.getLogger("simulation.variation")

# Width of the symmetric uniform noise band, (u - 0.5) × span
NOISE_SPAN = {
    "do": 0.3,
    "ph": 0.1,
    "tss": 0.2,
    "phosphate": 0.05,
    "temperature": 0.5,
    "nitrogen": 0.08,
    "nitrate": 0.06,
    "ammonia": 0.02,
}

# Hyacinth noise is centred below the draw so growth wins on average
HYACINTH_NOISE_CENTER = 0.6
HYACINTH_NOISE_SPAN = 0.5
SUDDEN_INCREASE_PROBABILITY = 0.01
SUDDEN_INCREASE_MAX = 5.0


def _daily(now: datetime, peak_offset: int, amplitude: float) -> float:
    return math.sin((now.hour - peak_offset) * math.pi / 12) * amplitude


def _cycle(day_of_year: int, period_days: float, amplitude: float, shift: int = 0) -> float:
    return math.sin((day_of_year - shift) * 2 * math.pi / period_days) * amplitude


class ParameterVariationModel:
    """
    Stochastic next-value generator for buoy sensor parameters.

    Attributes:
        variability_factor (float): Scales pattern and noise (0-1).
        rng: Random source exposing random() -> float in [0, 1).
            Defaults to numpy's default_rng seeded from config.RANDOM_SEED.
        ranges (dict): Clamp range per parameter.
    """

    def __init__(self, variability_factor: float = None, rng=None, ranges: dict = None):
        self.variability_factor = (
            variability_factor if variability_factor is not None
            else config.VARIABILITY_FACTOR
        )
        self.rng = rng if rng is not None else np.random.default_rng(config.RANDOM_SEED)
        self.ranges = ranges or config.PARAMETER_RANGES

    def pattern(self, parameter: str, current_value: float, now: datetime) -> float:
        """
        Deterministic delta for one tick, before variability scaling.

        Unknown parameters have no pattern and return 0.0.
        """
        day = now.timetuple().tm_yday

        if parameter == "do":
            return _daily(now, 6, 0.8) + _cycle(day, 365, 1.2)
        if parameter == "ph":
            return _daily(now, 6, 0.05)
        if parameter == "tss":
            return math.sin(now.timestamp() / (60 * 60 * 6)) * 0.15
        if parameter == "phosphate":
            return _cycle(day, 7, 0.02)
        if parameter == "temperature":
            return _daily(now, 6, 3.0) + _cycle(day, 365, 8.0, shift=90)
        if parameter == "hyacinth":
            density = 0.03 if current_value > 30 else 0.01
            daylight = 0.02 if 10 < now.hour < 18 else 0.0
            return density + daylight
        if parameter == "nitrogen":
            return _cycle(day, 30, 0.1)
        if parameter == "nitrate":
            return _cycle(day, 14, 0.05)
        if parameter == "ammonia":
            return _daily(now, 12, 0.01)
        return 0.0

    def noise(self, parameter: str, current_value: float, now: datetime) -> float:
        """Random delta for one tick, before variability scaling."""
        if parameter == "hyacinth":
            base = (self.rng.random() - HYACINTH_NOISE_CENTER) * HYACINTH_NOISE_SPAN
            if self.rng.random() < SUDDEN_INCREASE_PROBABILITY:
                jump = self.rng.random() * SUDDEN_INCREASE_MAX
                logger.debug(f"Sudden hyacinth increase of {jump:.2f} points")
                base += jump
            return base
        span = NOISE_SPAN.get(parameter)
        if span is None:
            return 0.0
        return (self.rng.random() - 0.5) * span

    def clamp(self, parameter: str, value: float) -> float:
        """Clamp to the parameter's physical range; unknown parameters pass through."""
        bounds = self.ranges.get(parameter)
        if bounds is None:
            return value
        low, high = bounds
        return max(low, min(high, value))

    def deterministic_next(self, parameter: str, current_value: float, now: datetime) -> float:
        """The next value with the noise component removed."""
        delta = self.pattern(parameter, current_value, now) * self.variability_factor
        return self.clamp(parameter, current_value + delta)

    def next(self, parameter: str, current_value: float, buoy_id: str, now: datetime) -> float:
        """
        Produce the next reading for one parameter of one buoy.

        Args:
            parameter: Parameter name, e.g. "do".
            current_value: Current reading.
            buoy_id: Buoy being advanced (for diagnostics).
            now: Simulation time of the tick.

        Returns:
            New reading, clamped to the parameter's physical range.
        """
        delta = (
            self.pattern(parameter, current_value, now)
            + self.noise(parameter, current_value, now)
        )
        new_value = self.clamp(parameter, current_value + delta * self.variability_factor)
        logger.debug(f"{buoy_id}.{parameter}: {current_value:.3f} -> {new_value:.3f}")
        return new_value
