"""
scheduler.py — Simulation Tick Scheduler
=========================================

Drives a SimulationEngine on a fixed cadence and delivers each tick's
results to the caller's callbacks.

States:
    STOPPED — no ticker thread.
    RUNNING — one daemon thread ticking every config.tick_interval seconds.

Transitions:
    start() while STOPPED  -> RUNNING
    start() while RUNNING  -> prior ticker cancelled and joined, new one started
    stop()                 -> STOPPED (idempotent)

Cancellation is synchronous: stop() sets the ticker's event and joins the
thread, so an in-flight tick finishes its deliveries first and nothing is
delivered after stop() returns. When stop() is called from inside a
callback, the rest of that tick's deliveries are dropped.

Delivery order per tick: on_insight once per insight, then on_update once
with the full buoy set. Callbacks run on the ticker thread after the
engine lock is released, so a slow callback never blocks update_buoy() or
the engine's read accessors. A failing callback is logged and never stops
the loop.

Ticks follow a fixed-rate schedule against time.monotonic(): the time a
tick and its callbacks take is not added to the interval.
"""

import logging
import threading
import time
from typing import Callable, Iterable, Optional

from .config import SimulationConfig
from .engine import ErrorSink, SimulationEngine
from .models import Buoy, Insight

logger = logging.getLogger("simulation.scheduler")

# State constants
STOPPED = "STOPPED"
RUNNING = "RUNNING"


class SimulationScheduler:
    """
    Periodic ticker around one SimulationEngine.

    Usage:
        scheduler = SimulationScheduler(SimulationConfig(tick_interval=5))
        scheduler.start(buoys, on_update=publish, on_insight=notify)
        ...
        scheduler.stop()

    Attributes:
        engine (SimulationEngine): Exclusively owned engine.
        interval (float): Seconds between ticks.
    """

    def __init__(self, config: SimulationConfig = None,
                 engine: SimulationEngine = None):
        if engine is None:
            engine = SimulationEngine(config or SimulationConfig())
        self.engine = engine
        self.interval = engine.config.tick_interval

        self._control = threading.Lock()
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None
        self._state = STOPPED

    @property
    def state(self) -> str:
        return self._state

    @property
    def running(self) -> bool:
        return self._state == RUNNING

    @property
    def tick_count(self) -> int:
        return self.engine.tick_count

    def start(self, buoys: Iterable[Buoy],
              on_update: Callable[[list[Buoy]], None],
              on_insight: Callable[[Insight], None],
              on_error: ErrorSink = None) -> None:
        """
        Load ``buoys`` and begin ticking.

        Any ticker already running is cancelled first, so there is never
        more than one.

        Args:
            buoys: Initial buoy set (copied into the engine).
            on_update: Receives the full updated buoy set once per tick.
            on_insight: Receives each generated insight.
            on_error: Optional sink for skipped input and tick failures.
        """
        with self._control:
            previous = self._detach()
        self._join(previous)

        with self._control:
            # Another start() may have slipped in while we were joining
            leftover = self._detach()
            if on_error is not None:
                self.engine.on_error = on_error
            self.engine.load(buoys)

            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(stop_event, on_update, on_insight),
                name="buoy-simulation",
                daemon=True,
            )
            self._stop_event = stop_event
            self._thread = thread
            self._state = RUNNING
        self._join(leftover)
        thread.start()
        logger.info(f"Simulation started: interval={self.interval}s")

    def stop(self) -> None:
        """Cancel the ticker. Safe to call repeatedly or from a callback."""
        with self._control:
            thread = self._detach()
        self._join(thread)
        if thread is not None:
            logger.info(f"Simulation stopped after {self.engine.tick_count} ticks")

    def _detach(self) -> Optional[threading.Thread]:
        """Signal the current ticker to exit and forget it. Caller holds _control."""
        thread = self._thread
        if self._stop_event is not None:
            self._stop_event.set()
        self._stop_event = None
        self._thread = None
        self._state = STOPPED
        return thread

    @staticmethod
    def _join(thread: Optional[threading.Thread]) -> None:
        if thread is None or thread is threading.current_thread():
            return
        if thread.is_alive():
            thread.join()

    def _run(self, stop_event: threading.Event, on_update, on_insight) -> None:
        deadline = time.monotonic()
        while True:
            deadline += self.interval
            if stop_event.wait(max(0.0, deadline - time.monotonic())):
                return

            with self.engine.lock:
                if stop_event.is_set():
                    return
                try:
                    result = self.engine.tick()
                except Exception as e:
                    logger.error(f"Simulation tick failed: {e}", exc_info=True)
                    continue

            for insight in result.insights:
                if stop_event.is_set():
                    return
                self._deliver(on_insight, insight)
            if stop_event.is_set():
                return
            self._deliver(on_update, list(result.buoys))

    @staticmethod
    def _deliver(callback, payload) -> None:
        try:
            callback(payload)
        except Exception as e:
            logger.error(f"Callback {getattr(callback, '__name__', callback)!r} "
                         f"raised: {e}", exc_info=True)

    def update_buoy(self, buoy_id: str, **attributes) -> None:
        """Merge non-simulated attributes into a running buoy between ticks."""
        self.engine.update_buoy(buoy_id, **attributes)
