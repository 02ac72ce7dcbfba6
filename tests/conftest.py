"""
Shared fixtures for the simulation engine test suite.
"""

from datetime import datetime, timedelta, timezone

import pytest

from backend.simulation.config import SimulationConfig
from backend.simulation.engine import SimulationEngine
from backend.simulation.models import Buoy, Snapshot
from backend.simulation.variation import ParameterVariationModel

NOON = datetime(2024, 6, 21, 12, 0, tzinfo=timezone.utc)


class FixedRandom:
    """Random source that always returns the same draw."""

    def __init__(self, value: float = 0.5):
        self.value = value

    def random(self) -> float:
        return self.value


class ScriptedRandom:
    """Random source that replays a list of draws, then repeats the last one."""

    def __init__(self, draws):
        self.draws = list(draws)
        self.calls = 0

    def random(self) -> float:
        index = min(self.calls, len(self.draws) - 1)
        self.calls += 1
        return self.draws[index]


class AlwaysThrottle:
    def should_run(self) -> bool:
        return True

    def reset(self) -> None:
        pass


class NeverThrottle:
    def should_run(self) -> bool:
        return False

    def reset(self) -> None:
        pass


def make_history(values_per_tick, start=NOON, step=timedelta(minutes=10)):
    """Build oldest-first snapshots from a list of parameter dicts."""
    return [
        Snapshot(start + i * step, values)
        for i, values in enumerate(values_per_tick)
    ]


@pytest.fixture
def now():
    return NOON


@pytest.fixture
def healthy_sensors():
    return {
        "tss": 2100.0, "do": 8.2, "phosphate": 0.15, "ph": 7.8,
        "temperature": 22.5, "hyacinth": 15.0, "nitrogen": 1.2,
        "nitrate": 0.8, "ammonia": 0.05,
    }


@pytest.fixture
def buoys(healthy_sensors):
    return [
        Buoy(id="buoy-1", sensors=dict(healthy_sensors), attributes={"name": "North Sensor"}),
        Buoy(id="buoy-2", sensors=dict(healthy_sensors, do=5.8, hyacinth=42.0),
             attributes={"name": "Central Sensor"}),
    ]


@pytest.fixture
def errors():
    """Collects (buoy_id, exception) pairs reported to the error sink."""
    return []


@pytest.fixture
def frozen_engine(errors):
    """Engine with no variability, a fixed clock and insights disabled."""
    config = SimulationConfig(tick_interval=1, variability_factor=0.0)
    return SimulationEngine(
        config,
        variation=ParameterVariationModel(0.0, rng=FixedRandom()),
        throttle=NeverThrottle(),
        clock=lambda: NOON,
        on_error=lambda buoy_id, exc: errors.append((buoy_id, exc)),
    )
