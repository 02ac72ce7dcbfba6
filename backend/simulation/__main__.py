"""
__main__.py — Run the Simulation from the Command Line
=======================================================

Starts the scheduler against the dashboard's default buoys (or a JSON file
of buoys) and logs every update and insight. Useful for tuning the
variability factor and thresholds without the API or UI running.

Run:
    python -m backend.simulation --interval 1 --duration 60
    python -m backend.simulation --buoys buoys.json --log-level DEBUG
"""

import argparse
import json
import logging
import sys
import time

from .config import SimulationConfig
from .models import Buoy
from .scheduler import SimulationScheduler
from .utils import setup_logging

logger = logging.getLogger("simulation.main")

DEFAULT_BUOYS = [
    {
        "id": "buoy-1", "name": "North Sensor", "zone": "zone1",
        "location": {"x": 55.6, "y": 24.2}, "status": "good",
        "sensors": {"tss": 2100, "do": 8.2, "phosphate": 0.15, "ph": 7.8,
                    "temperature": 22.5, "hyacinth": 15, "nitrogen": 1.2,
                    "nitrate": 0.8, "ammonia": 0.05},
    },
    {
        "id": "buoy-2", "name": "Central Sensor", "zone": "zone3",
        "location": {"x": 46.3, "y": 49.4}, "status": "warning",
        "sensors": {"tss": 4500, "do": 5.8, "phosphate": 0.28, "ph": 7.2,
                    "temperature": 24.1, "hyacinth": 42, "nitrogen": 2.3,
                    "nitrate": 1.5, "ammonia": 0.12},
    },
    {
        "id": "buoy-3", "name": "South Sensor", "zone": "zone5",
        "location": {"x": 59.3, "y": 64.5}, "status": "good",
        "sensors": {"tss": 1800, "do": 8.5, "phosphate": 0.12, "ph": 7.9,
                    "temperature": 21.8, "hyacinth": 8, "nitrogen": 1.0,
                    "nitrate": 0.6, "ammonia": 0.03},
    },
]


def _load_buoys(path: str = None) -> list[Buoy]:
    if path is None:
        return [Buoy.from_dict(b) for b in DEFAULT_BUOYS]
    with open(path, encoding="utf-8") as fh:
        return [Buoy.from_dict(b) for b in json.load(fh)]


def _on_update(buoys: list[Buoy]) -> None:
    summary = ", ".join(f"{b.id}={b.status}" for b in buoys)
    logger.info(f"Update: {summary}")


def _on_insight(insight) -> None:
    log = logger.warning if insight.action_required else logger.info
    log(f"Insight [{insight.kind}] {insight.buoy_id}: {insight.title}: "
        f"{insight.description}")


def main(argv: list[str] = None) -> int:
    parser = argparse.ArgumentParser(description="Buoy sensor simulation")
    parser.add_argument("--interval", type=float, default=None,
                        help="Seconds between ticks (default: SIM_TICK_INTERVAL)")
    parser.add_argument("--duration", type=float, default=30.0,
                        help="Seconds to run before stopping")
    parser.add_argument("--variability", type=float, default=None,
                        help="Variability factor 0-1 (default: SIM_VARIABILITY)")
    parser.add_argument("--buoys", default=None, help="JSON file with a list of buoys")
    parser.add_argument("--log-level", default=None, help="Log level")
    args = parser.parse_args(argv)

    setup_logging(args.log_level)

    overrides = {}
    if args.interval is not None:
        overrides["tick_interval"] = args.interval
    if args.variability is not None:
        overrides["variability_factor"] = args.variability
    config = SimulationConfig(**overrides)

    scheduler = SimulationScheduler(config)
    scheduler.start(_load_buoys(args.buoys), _on_update, _on_insight)
    try:
        time.sleep(args.duration)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        scheduler.stop()
    return 0


# ── CLI entry point ──────────────────────────────────────────────
if __name__ == "__main__":
    sys.exit(main())
