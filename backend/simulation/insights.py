"""
insights.py — Predictive Insight Generator
===========================================

Applies a fixed rule set to each buoy's trend and readings and produces
forward-looking insights for the dashboard and the notification layer.

Rules, in priority order:
    oxygen-depletion  (warning)        — falling oxygen trend over the last
                                         12 readings, with hours until the
                                         critical floor at the current rate
    bloom-risk        (forecast)       — warm, phosphate-rich water
    sensor-drift      (recommendation) — TSS too noisy over the last 24
                                         readings to be trusted

A single generation pass over all buoys emits at most
config.MAX_INSIGHTS_PER_RUN insights (global cap, not per buoy). Repeat
firing across passes is not suppressed; ids embed buoy, rule and timestamp
so downstream consumers can deduplicate.
"""

import logging
import math
from datetime import datetime
from typing import Iterable, Mapping, Optional, Sequence

from . import config
from .features import parameter_series, window_std
from .history import HistoricalStore
from .models import Buoy, Insight, Snapshot
from .trend import TrendAnalyzer
from .utils import numeric_readings

logger = logging.getLogger("simulation.insights")

OXYGEN_RULE = "do"
BLOOM_RULE = "algae"
DRIFT_RULE = "maintenance"

# History needed before the trend-based rules are trusted
MIN_HISTORY = 12

DRIFT_CONFIDENCE = 0.75


def insight_id(buoy_id: str, rule: str, now: datetime) -> str:
    """Identifier unique per buoy, rule and millisecond timestamp."""
    return f"insight-{buoy_id}-{rule}-{int(now.timestamp() * 1000)}"


class InsightGenerator:
    """
    Rule-based predictive insight generator.

    Attributes:
        trend_analyzer (TrendAnalyzer): Fits the oxygen trend.
        max_per_run (int): Global cap per generation pass.
    """

    def __init__(self, trend_analyzer: TrendAnalyzer = None, max_per_run: int = None):
        self.trend_analyzer = trend_analyzer or TrendAnalyzer()
        self.max_per_run = (
            max_per_run if max_per_run is not None else config.MAX_INSIGHTS_PER_RUN
        )
        if self.max_per_run <= 0:
            raise config.ConfigurationError("max_per_run must be positive")

    def generate(self, buoy_id: str, current_values: Mapping[str, float],
                 history: Sequence[Snapshot], now: Optional[datetime] = None,
                 limit: int = None) -> list[Insight]:
        """
        Evaluate the rules for one buoy in priority order.

        Args:
            buoy_id: Buoy identifier.
            current_values: Parameter -> current reading.
            history: Oldest-first snapshots for the buoy.
            now: Timestamp embedded in ids. Defaults to now.
            limit: Stop after this many insights. Defaults to max_per_run.

        Returns:
            Insights generated, at most ``limit``.
        """
        now = now or datetime.now().astimezone()
        limit = self.max_per_run if limit is None else limit
        readings = numeric_readings(dict(current_values))
        history = list(history)

        insights = []
        for rule in (self._oxygen_depletion, self._bloom_risk, self._sensor_drift):
            if len(insights) >= limit:
                break
            insight = rule(buoy_id, readings, history, now)
            if insight is not None:
                insights.append(insight)
        return insights

    def generate_batch(self, buoys: Iterable[Buoy], store: HistoricalStore,
                       now: Optional[datetime] = None) -> list[Insight]:
        """
        One generation pass over all buoys sharing the global cap.

        Args:
            buoys: Buoys in processing order.
            store: History store the buoys' snapshots live in.
            now: Timestamp embedded in ids. Defaults to now.

        Returns:
            At most max_per_run insights across all buoys.
        """
        now = now or datetime.now().astimezone()
        needed = max(config.TREND_WINDOW, config.DRIFT_WINDOW)

        insights = []
        for buoy in buoys:
            remaining = self.max_per_run - len(insights)
            if remaining <= 0:
                break
            history = store.recent(buoy.id, needed)
            insights.extend(self.generate(buoy.id, buoy.sensors, history, now, remaining))

        if insights:
            logger.info(f"Generated {len(insights)} insight(s): "
                        f"{', '.join(i.id for i in insights)}")
        return insights

    # ── Rules ─────────────────────────────────────────────────────

    def _oxygen_depletion(self, buoy_id, readings, history, now) -> Optional[Insight]:
        oxygen = readings.get("do")
        if oxygen is None or len(history) < MIN_HISTORY:
            return None

        window = history[-config.TREND_WINDOW:]
        series = parameter_series(window, "do")
        if series.size < config.TREND_WINDOW:
            return None
        trend = self.trend_analyzer.fit(series)
        if trend.direction != "decreasing" or trend.rate <= 0.1:
            return None

        hours = max(0, math.floor((oxygen - config.OXYGEN_CRITICAL_FLOOR) / trend.rate))
        return Insight(
            id=insight_id(buoy_id, OXYGEN_RULE, now),
            buoy_id=buoy_id,
            kind="warning",
            title="Oxygen Depletion Trend Detected",
            description=(
                f"Dissolved oxygen levels are declining at {trend.rate:.2f} mg/L per "
                f"reading. At this rate, critical levels may be reached within "
                f"{hours} hours."
            ),
            confidence=trend.confidence,
            timeframe="Next 6-12 hours",
            impact="high" if trend.rate > 0.3 else "medium",
            action_required=trend.rate > 0.2,
            rule=OXYGEN_RULE,
            created_at=now,
        )

    @staticmethod
    def _bloom_risk(buoy_id, readings, history, now) -> Optional[Insight]:
        phosphate = readings.get("phosphate")
        temperature = readings.get("temperature")
        if phosphate is None or temperature is None:
            return None
        if not (phosphate > 0.3 and temperature > 24):
            return None

        risk = (phosphate - 0.2) * (temperature - 20) * 10
        return Insight(
            id=insight_id(buoy_id, BLOOM_RULE, now),
            buoy_id=buoy_id,
            kind="forecast",
            title="Algae Bloom Risk Assessment",
            description=(
                f"Current conditions (phosphate: {phosphate:g} mg/L, temp: "
                f"{temperature:g}°C) indicate {'high' if risk > 50 else 'moderate'} "
                f"risk of algae bloom development."
            ),
            confidence=min(0.9, risk / 100),
            timeframe="Next 3-7 days",
            impact="high" if risk > 50 else "medium",
            action_required=risk > 60,
            rule=BLOOM_RULE,
            created_at=now,
        )

    @staticmethod
    def _sensor_drift(buoy_id, readings, history, now) -> Optional[Insight]:
        if len(history) < MIN_HISTORY:
            return None
        variability = window_std(history[-config.DRIFT_WINDOW:], "tss")
        if variability <= config.DRIFT_STD_THRESHOLD:
            return None

        return Insight(
            id=insight_id(buoy_id, DRIFT_RULE, now),
            buoy_id=buoy_id,
            kind="recommendation",
            title="Sensor Calibration Recommended",
            description=(
                f"High variability in TSS readings (std {variability:.0f} mg/L) suggests "
                f"potential sensor drift or contamination. Calibration may improve "
                f"data accuracy."
            ),
            confidence=DRIFT_CONFIDENCE,
            timeframe="Next maintenance window",
            impact="medium",
            action_required=False,
            rule=DRIFT_RULE,
            created_at=now,
        )
