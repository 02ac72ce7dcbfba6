"""
engine.py — Simulation Engine
==============================

Owns the simulated buoys and everything derived from them, and advances
them one tick at a time:

    for each buoy (sequentially):
        1. Vary every parameter          (ParameterVariationModel)
        2. Detect anomalies              (AnomalyDetector, prior history)
        3. Classify health               (StatusClassifier)
        4. Commit snapshot and state     (HistoricalStore)
    then, if the throttle allows:
        5. Generate predictive insights  (InsightGenerator, global cap)

tick() is a plain method call, so it can be unit-tested with a fixed clock
without any timer. All engine state is guarded by one re-entrant lock;
callers on other threads use update_buoy() and the read accessors, which
return copies, never references into engine state.

A failure inside one buoy never aborts the tick: it is reported to the
error sink; the buoy keeps its previous state and its history is not
extended.
"""

import logging
import threading
from collections import deque
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from .anomaly import AnomalyDetector
from .config import SimulationConfig
from .history import HistoricalStore
from .insights import InsightGenerator
from .models import Anomaly, Buoy, Insight, Snapshot, TickResult
from .status import StatusClassifier
from .throttle import TickCounterThrottle
from .utils import coerce_reading, numeric_readings, validate_buoy
from .variation import ParameterVariationModel

logger = logging.getLogger("simulation.engine")

ErrorSink = Callable[[Optional[str], Exception], None]


def local_now() -> datetime:
    """Timezone-aware local time; hour-of-day patterns follow the dam's clock."""
    return datetime.now().astimezone()


def log_error(buoy_id: Optional[str], error: Exception) -> None:
    """Default error sink: log and carry on."""
    if isinstance(error, ValueError):
        logger.warning(f"Skipped input for {buoy_id}: {error}")
    else:
        logger.error(f"Tick failure for {buoy_id}: {error}", exc_info=error)


class SimulationEngine:
    """
    Tick-driven state owner for the buoy simulation.

    Usage:
        engine = SimulationEngine(SimulationConfig())
        engine.load(buoys)
        result = engine.tick()
    """

    def __init__(self, config: SimulationConfig = None,
                 variation: ParameterVariationModel = None,
                 store: HistoricalStore = None,
                 detector: AnomalyDetector = None,
                 classifier: StatusClassifier = None,
                 generator: InsightGenerator = None,
                 throttle=None,
                 clock: Callable[[], datetime] = None,
                 on_error: ErrorSink = None):
        self.config = config or SimulationConfig()
        self.variation = variation or ParameterVariationModel(self.config.variability_factor)
        self.store = store or HistoricalStore(
            self.config.history_capacity, self.config.history_max_age
        )
        self.detector = detector or AnomalyDetector()
        self.classifier = classifier or StatusClassifier()
        self.generator = generator or InsightGenerator(
            max_per_run=self.config.max_insights_per_run
        )
        self.throttle = throttle or TickCounterThrottle()
        self.clock = clock or local_now
        self.on_error = on_error or log_error

        self.lock = threading.RLock()
        self._buoys: dict[str, Buoy] = {}
        self._anomalies: deque = deque(maxlen=self.config.anomaly_log_size)
        self._insights: deque = deque(maxlen=self.config.insight_log_size)
        self._tick_errors = 0
        self.tick_count = 0

    # ── Buoy set ──────────────────────────────────────────────────

    def load(self, buoys: Iterable[Buoy]) -> None:
        """Replace the simulated buoy set with copies of ``buoys``."""
        with self.lock:
            self._buoys = {}
            for buoy in buoys:
                if not isinstance(buoy, Buoy):
                    self._report(getattr(buoy, "id", None),
                                 TypeError(f"Expected Buoy, got {type(buoy).__name__}"))
                    continue
                self._buoys[buoy.id] = buoy.copy()
            logger.info(f"Loaded {len(self._buoys)} buoys")

    def update_buoy(self, buoy_id: str, **attributes) -> None:
        """
        Merge non-simulated attributes (name, zone, location ...) into a buoy.

        Takes effect between ticks.

        Raises:
            KeyError: If the buoy is not part of the simulation.
        """
        with self.lock:
            buoy = self._buoys[buoy_id]
            buoy.attributes.update(attributes)

    def buoys(self) -> list[Buoy]:
        """Copies of the current buoy set."""
        with self.lock:
            return [buoy.copy() for buoy in self._buoys.values()]

    # ── Tick ──────────────────────────────────────────────────────

    def tick(self, now: datetime = None) -> TickResult:
        """
        Advance every buoy by one tick.

        Args:
            now: Simulation time. Defaults to the engine clock.

        Returns:
            TickResult with copies of the updated buoys, the anomalies
            detected and any insights generated this tick.
        """
        with self.lock:
            now = now or self.clock()
            self.tick_count += 1
            self._tick_errors = 0

            anomalies: list[Anomaly] = []
            for buoy_id, buoy in list(self._buoys.items()):
                if not validate_buoy(buoy):
                    self._report(buoy_id, ValueError("Malformed buoy, skipped this tick"))
                    continue
                try:
                    updated, found = self._advance(buoy, now)
                except Exception as e:
                    self._report(buoy_id, e)
                    continue
                self._buoys[buoy_id] = updated
                anomalies.extend(found)
            self._anomalies.extend(anomalies)

            insights: list[Insight] = []
            if self.throttle.should_run():
                valid = [b for b in self._buoys.values() if validate_buoy(b)]
                try:
                    insights = self.generator.generate_batch(valid, self.store, now)
                except Exception as e:
                    self._report(None, e)
                self._insights.extend(insights)

            logger.debug(f"Tick {self.tick_count}: {len(self._buoys)} buoys, "
                         f"{len(anomalies)} anomalies, {len(insights)} insights")

            return TickResult(
                timestamp=now,
                buoys=tuple(buoy.copy() for buoy in self._buoys.values()),
                anomalies=tuple(anomalies),
                insights=tuple(insights),
                errors=self._tick_errors,
            )

    def _advance(self, buoy: Buoy, now: datetime) -> tuple:
        """Vary, detect, classify, then store one buoy."""
        prior = self.store.recent(
            buoy.id, max(self.detector.statistical_window, self.detector.growth_window)
        )

        sensors = dict(buoy.sensors)
        for parameter, raw in buoy.sensors.items():
            value = coerce_reading(raw)
            if value is None:
                self._report(buoy.id, ValueError(
                    f"Non-numeric reading for {parameter!r}: {raw!r}"
                ))
                continue
            sensors[parameter] = round(
                self.variation.next(parameter, value, buoy.id, now), 2
            )

        found = []
        if self.config.enable_anomalies:
            found = self.detector.detect(buoy.id, sensors, prior, now)

        # dict.fromkeys keeps first-seen order while dropping duplicates
        alerts = list(dict.fromkeys(a.description for a in found if a.is_alert))
        status = self.classifier.classify(sensors, len(alerts))

        # Commit only once every stage has succeeded
        self.store.append(buoy.id, Snapshot(now, numeric_readings(sensors)))
        updated = Buoy(
            id=buoy.id,
            sensors=sensors,
            status=status,
            alerts=alerts,
            last_update=now,
            attributes=dict(buoy.attributes),
        )
        if status != buoy.status:
            logger.info(f"{buoy.id}: status {buoy.status} -> {status}")
        return updated, found

    def _report(self, buoy_id: Optional[str], error: Exception) -> None:
        self._tick_errors += 1
        try:
            self.on_error(buoy_id, error)
        except Exception:
            logger.exception("Error sink raised")

    # ── Read accessors ────────────────────────────────────────────

    def recent_anomalies(self, limit: int = 10) -> list[Anomaly]:
        """Most recent anomalies, newest first."""
        with self.lock:
            ordered = sorted(reversed(self._anomalies), key=lambda a: a.timestamp, reverse=True)
        return ordered[:limit]

    def insights(self) -> list[Insight]:
        """Insights still held in the bounded log, oldest first."""
        with self.lock:
            return list(self._insights)

    def history(self, buoy_id: str, hours: float = 24) -> list[Snapshot]:
        """A buoy's snapshots from the last ``hours`` of the engine clock."""
        with self.lock:
            return self.store.since(buoy_id, timedelta(hours=hours), now=self.clock())
