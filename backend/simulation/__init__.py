"""
backend.simulation — Buoy Sensor Simulation and Predictive-Insight Engine
==========================================================================

This package advances the simulated water-quality buoys shown on the dam
monitoring dashboard and derives anomalies, health status and predictive
insights from their history.

Architecture:
    SimulationScheduler (timer thread, start/stop)
            ↓ every tick
    SimulationEngine, per buoy:
        1. Parameter variation   (daily / seasonal pattern + noise, clamped)
        2. Anomaly detection     (deviation, correlation, hyacinth)
        3. Status classification (composite score → good / warning / critical)
        4. History append        (bounded ring buffer per buoy)
    then, throttled:
        5. Predictive insights   (oxygen trend, bloom risk, sensor drift)
            ↓
    on_insight(insight) ×N, on_update(buoys) — persistence, notifications
    and the REST layer are wired up by the caller.

Modules:
    config      — Constants, env overrides, SimulationConfig
    models      — Buoy, Snapshot, Anomaly, TrendResult, Insight
    utils       — Logging setup and reading validation
    features    — Window statistics over history
    variation   — Parameter variation model
    history     — Bounded per-buoy history store
    anomaly     — Anomaly detector
    trend       — Linear trend analyzer
    status      — Health status classifier
    insights    — Predictive insight generator
    throttle    — Insight generation throttles
    engine      — Tick-driven state owner
    scheduler   — Periodic ticker with synchronous cancellation
"""

from .config import AlertThreshold, ConfigurationError, SimulationConfig
from .engine import SimulationEngine
from .models import Anomaly, Buoy, Insight, Snapshot, TickResult, TrendResult
from .scheduler import SimulationScheduler

__version__ = "1.0.0"
__author__ = "Water Monitoring IoT Team"

__all__ = [
    "AlertThreshold",
    "Anomaly",
    "Buoy",
    "ConfigurationError",
    "Insight",
    "SimulationConfig",
    "SimulationEngine",
    "SimulationScheduler",
    "Snapshot",
    "TickResult",
    "TrendResult",
]
