"""
status.py — Composite Buoy Health Classifier
=============================================

Maps a buoy's readings and its number of active alerts to one of three
states:

States:
    good      — score ≥ 70
    warning   — 30 ≤ score < 70
    critical  — score < 30

Scoring starts at 100 and subtracts, per parameter, a linear penalty for
the distance past a soft threshold and a flat penalty past a hard one:

    do         < 6   : (6 − do) × 10        < 4   : 30
    ph   outside 6.5–8.5 : |7.5 − ph| × 15  outside 6–9 : 25
    tss        > 3000: (tss − 3000) / 100   > 6000: 20
    phosphate  > 0.25: (p − 0.25) × 80      > 0.4 : 25
    hyacinth   > 20  : (h − 20) × 0.5       > 40  : 20,  > 60 : 30 more

Every active alert costs a further 15 points, so simultaneous alerts
compound. The classifier is pure: no history, no side effects.
"""

import logging
from typing import Mapping

from .models import CRITICAL, GOOD, WARNING
from .utils import numeric_readings

logger = logging.getLogger("simulation.status")

START_SCORE = 100.0
ALERT_PENALTY = 15.0
CRITICAL_BELOW = 30.0
WARNING_BELOW = 70.0


def _oxygen_penalty(do: float) -> float:
    penalty = 0.0
    if do < 6:
        penalty += (6 - do) * 10
    if do < 4:
        penalty += 30  # critical oxygen depletion
    return penalty


def _ph_penalty(ph: float) -> float:
    penalty = 0.0
    if ph < 6.5 or ph > 8.5:
        penalty += abs(7.5 - ph) * 15
    if ph < 6 or ph > 9:
        penalty += 25
    return penalty


def _tss_penalty(tss: float) -> float:
    penalty = 0.0
    if tss > 3000:
        penalty += (tss - 3000) / 100
    if tss > 6000:
        penalty += 20  # critical turbidity
    return penalty


def _phosphate_penalty(phosphate: float) -> float:
    penalty = 0.0
    if phosphate > 0.25:
        penalty += (phosphate - 0.25) * 80
    if phosphate > 0.4:
        penalty += 25  # eutrophication risk
    return penalty


def _hyacinth_penalty(coverage: float) -> float:
    penalty = 0.0
    if coverage > 20:
        penalty += (coverage - 20) * 0.5
    if coverage > 40:
        penalty += 20
    if coverage > 60:
        penalty += 30
    return penalty


PENALTIES = {
    "do": _oxygen_penalty,
    "ph": _ph_penalty,
    "tss": _tss_penalty,
    "phosphate": _phosphate_penalty,
    "hyacinth": _hyacinth_penalty,
}


class StatusClassifier:
    """Composite health score and tri-state status for one buoy."""

    def score(self, current_values: Mapping[str, float], active_alert_count: int = 0) -> float:
        """
        Composite health score (100 = perfect, may go negative).

        Missing or non-numeric parameters contribute no penalty.
        """
        readings = numeric_readings(dict(current_values))
        score = START_SCORE
        for parameter, penalty in PENALTIES.items():
            value = readings.get(parameter)
            if value is not None:
                score -= penalty(value)
        score -= max(0, active_alert_count) * ALERT_PENALTY
        return score

    def classify(self, current_values: Mapping[str, float], active_alert_count: int = 0) -> str:
        """
        Classify a buoy as good, warning or critical.

        Args:
            current_values: Parameter -> reading.
            active_alert_count: Number of active alerts on the buoy.

        Returns:
            "good", "warning" or "critical".
        """
        score = self.score(current_values, active_alert_count)
        if score < CRITICAL_BELOW:
            status = CRITICAL
        elif score < WARNING_BELOW:
            status = WARNING
        else:
            status = GOOD
        logger.debug(f"Health score {score:.1f} -> {status}")
        return status
