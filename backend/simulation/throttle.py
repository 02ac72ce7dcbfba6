"""
throttle.py — Insight Generation Throttles
===========================================

Decides, once per tick, whether the insight rules run at all. Insight
generation is the most expensive and the noisiest step, so only a fraction
of ticks run it.

    TickCounterThrottle   — every Nth tick (deterministic, default)
    ProbabilisticThrottle — each tick with a fixed probability
"""

import numpy as np

from . import config


class TickCounterThrottle:
    """
    Allows insight generation on every ``every``-th tick.

    With every=3 the 3rd, 6th, 9th ... calls return True.
    """

    def __init__(self, every: int = None):
        self.every = every if every is not None else config.INSIGHT_EVERY_N_TICKS
        if self.every <= 0:
            raise config.ConfigurationError("every must be positive")
        self._ticks = 0

    def should_run(self) -> bool:
        self._ticks += 1
        return self._ticks % self.every == 0

    def reset(self) -> None:
        self._ticks = 0


class ProbabilisticThrottle:
    """
    Allows insight generation with a fixed probability per tick.

    Attributes:
        probability (float): Chance per tick (0-1).
        rng: Random source exposing random() -> float in [0, 1).
    """

    def __init__(self, probability: float = None, rng=None):
        self.probability = (
            probability if probability is not None else config.INSIGHT_PROBABILITY
        )
        if not 0.0 <= self.probability <= 1.0:
            raise config.ConfigurationError("probability must be within [0, 1]")
        self.rng = rng if rng is not None else np.random.default_rng(config.RANDOM_SEED)

    def should_run(self) -> bool:
        return self.rng.random() < self.probability

    def reset(self) -> None:
        """Stateless; present for interface parity."""
