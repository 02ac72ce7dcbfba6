"""
Tests for configuration validation and the insight throttles.
"""

from datetime import timedelta

import pytest

from backend.simulation.config import (
    DEFAULT_ALERT_THRESHOLDS,
    AlertThreshold,
    ConfigurationError,
    SimulationConfig,
)
from backend.simulation.engine import SimulationEngine
from backend.simulation.history import HistoricalStore
from backend.simulation.insights import InsightGenerator
from backend.simulation.scheduler import SimulationScheduler
from backend.simulation.throttle import ProbabilisticThrottle, TickCounterThrottle

from conftest import FixedRandom


class TestSimulationConfig:
    def test_defaults_are_valid(self):
        config = SimulationConfig()
        assert config.tick_interval > 0
        assert 0.0 <= config.variability_factor <= 1.0
        assert set(config.alert_thresholds) == set(DEFAULT_ALERT_THRESHOLDS)
        assert config.history_capacity == 7 * 24 * 6

    @pytest.mark.parametrize("interval", [0, -1, -0.5])
    def test_non_positive_tick_interval(self, interval):
        with pytest.raises(ConfigurationError):
            SimulationConfig(tick_interval=interval)

    def test_empty_threshold_table(self):
        with pytest.raises(ConfigurationError):
            SimulationConfig(alert_thresholds={})

    def test_threshold_entries_must_be_typed(self):
        with pytest.raises(ConfigurationError):
            SimulationConfig(alert_thresholds={"do": (4.5, 6.0)})

    @pytest.mark.parametrize("factor", [-0.1, 1.5])
    def test_variability_out_of_range(self, factor):
        with pytest.raises(ConfigurationError):
            SimulationConfig(variability_factor=factor)

    @pytest.mark.parametrize("field", [
        "history_capacity", "max_insights_per_run", "anomaly_log_size", "insight_log_size",
    ])
    def test_non_positive_sizes(self, field):
        with pytest.raises(ConfigurationError):
            SimulationConfig(**{field: 0})

    def test_non_positive_max_age(self):
        with pytest.raises(ConfigurationError):
            SimulationConfig(history_max_age=timedelta(0))

    def test_errors_surface_at_construction(self):
        with pytest.raises(ConfigurationError):
            SimulationScheduler(SimulationConfig(tick_interval=0))

    def test_config_is_immutable(self):
        config = SimulationConfig()
        with pytest.raises(AttributeError):
            config.tick_interval = 1

    def test_configuration_error_is_value_error(self):
        assert issubclass(ConfigurationError, ValueError)

    def test_engine_uses_config_capacity(self):
        engine = SimulationEngine(SimulationConfig(history_capacity=10))
        assert engine.store.capacity == 10


class TestAlertThresholdValidation:
    def test_unknown_direction(self):
        with pytest.raises(ConfigurationError):
            AlertThreshold(critical=1.0, warning=2.0, direction="sideways")

    def test_band_needs_tuples(self):
        with pytest.raises(ConfigurationError):
            AlertThreshold(critical=6.5, warning=(6.8, 8.2), direction="outside")

    def test_scalar_rejects_tuples(self):
        with pytest.raises(ConfigurationError):
            AlertThreshold(critical=(1.0, 2.0), warning=1.0)

    def test_levels(self):
        band = AlertThreshold(critical=(6.5, 8.5), warning=(6.8, 8.2), direction="outside")
        assert band.level(7.5) is None
        assert band.level(6.7) == "warning"
        assert band.level(9.0) == "critical"
        floor = AlertThreshold(critical=4.5, warning=6.0, direction="below")
        assert floor.level(5.0) == "warning"
        assert floor.level(7.0) is None


class TestThrottles:
    def test_tick_counter_every_third(self):
        throttle = TickCounterThrottle(every=3)
        assert [throttle.should_run() for _ in range(9)] == [
            False, False, True, False, False, True, False, False, True,
        ]

    def test_tick_counter_reset(self):
        throttle = TickCounterThrottle(every=2)
        throttle.should_run()
        throttle.reset()
        assert throttle.should_run() is False
        assert throttle.should_run() is True

    @pytest.mark.parametrize("every", [0, -1])
    def test_tick_counter_rejects_non_positive(self, every):
        with pytest.raises(ConfigurationError):
            TickCounterThrottle(every=every)

    def test_zero_is_not_replaced_by_defaults(self):
        with pytest.raises(ConfigurationError):
            HistoricalStore(capacity=0)
        with pytest.raises(ConfigurationError):
            InsightGenerator(max_per_run=0)

    def test_probabilistic_uses_injected_source(self):
        assert ProbabilisticThrottle(0.3, rng=FixedRandom(0.29)).should_run() is True
        assert ProbabilisticThrottle(0.3, rng=FixedRandom(0.3)).should_run() is False

    def test_probability_out_of_range(self):
        with pytest.raises(ConfigurationError):
            ProbabilisticThrottle(1.5)
