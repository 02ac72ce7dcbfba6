"""
Tests for the predictive insight rules and the global per-pass cap.
"""

import pytest

from backend.simulation.history import HistoricalStore
from backend.simulation.insights import InsightGenerator, insight_id
from backend.simulation.models import Buoy

from conftest import NOON, make_history


@pytest.fixture
def generator():
    return InsightGenerator(max_per_run=3)


def _declining_oxygen(count=12, start=8.0, step=0.25, **extra):
    return make_history([dict(extra, do=start - step * i) for i in range(count)])


class TestOxygenDepletion:
    def test_warning_with_hours_to_critical(self, generator):
        history = _declining_oxygen()
        insights = generator.generate("buoy-1", {"do": 5.1}, history, NOON)
        assert len(insights) == 1
        insight = insights[0]
        assert insight.kind == "warning"
        assert insight.rule == "do"
        assert "within 4 hours" in insight.description
        assert insight.confidence == pytest.approx(1.0)
        assert insight.impact == "medium"
        assert insight.action_required is True

    def test_slow_decline_needs_no_action(self, generator):
        history = _declining_oxygen(step=0.15)
        insight = generator.generate("buoy-1", {"do": 6.3}, history, NOON)[0]
        assert insight.action_required is False

    def test_fast_decline_is_high_impact(self, generator):
        history = _declining_oxygen(start=12.0, step=0.5)
        insight = generator.generate("buoy-1", {"do": 6.5}, history, NOON)[0]
        assert insight.impact == "high"

    def test_requires_twelve_snapshots(self, generator):
        history = _declining_oxygen(count=11)
        assert generator.generate("buoy-1", {"do": 5.1}, history, NOON) == []

    def test_rising_oxygen_is_quiet(self, generator):
        history = _declining_oxygen(step=-0.25)
        assert generator.generate("buoy-1", {"do": 11.0}, history, NOON) == []

    def test_below_floor_reports_zero_hours(self, generator):
        history = _declining_oxygen()
        insight = generator.generate("buoy-1", {"do": 3.0}, history, NOON)[0]
        assert "within 0 hours" in insight.description


class TestBloomRisk:
    def test_moderate_risk(self, generator):
        insight = generator.generate(
            "buoy-1", {"phosphate": 0.5, "temperature": 28.0}, [], NOON
        )[0]
        # (0.5 - 0.2) × (28 - 20) × 10 = 24
        assert insight.kind == "forecast"
        assert insight.confidence == pytest.approx(0.24)
        assert insight.impact == "medium"
        assert insight.action_required is False

    def test_high_risk(self, generator):
        insight = generator.generate(
            "buoy-1", {"phosphate": 1.0, "temperature": 30.0}, [], NOON
        )[0]
        # (1.0 - 0.2) × (30 - 20) × 10 = 80
        assert insight.confidence == pytest.approx(0.8)
        assert insight.impact == "high"
        assert insight.action_required is True

    def test_confidence_capped(self, generator):
        insight = generator.generate(
            "buoy-1", {"phosphate": 2.0, "temperature": 35.0}, [], NOON
        )[0]
        assert insight.confidence == pytest.approx(0.9)

    @pytest.mark.parametrize("values", [
        {"phosphate": 0.3, "temperature": 30.0},
        {"phosphate": 0.8, "temperature": 24.0},
        {"phosphate": 0.8},
    ])
    def test_conditions_not_met(self, generator, values):
        assert generator.generate("buoy-1", values, [], NOON) == []


class TestSensorDrift:
    def test_noisy_tss_recommends_calibration(self, generator):
        history = make_history([{"tss": 1000.0 if i % 2 else 3000.0} for i in range(24)])
        insights = generator.generate("buoy-1", {"tss": 2000.0}, history, NOON)
        assert [i.kind for i in insights] == ["recommendation"]
        assert insights[0].confidence == pytest.approx(0.75)
        assert insights[0].action_required is False

    def test_steady_tss_is_quiet(self, generator):
        history = make_history([{"tss": 2000.0 + i} for i in range(24)])
        assert generator.generate("buoy-1", {"tss": 2000.0}, history, NOON) == []


class TestCapAndIds:
    def _all_rules_history(self):
        return make_history([
            {"do": 8.0 - 0.25 * i, "tss": 1000.0 if i % 2 else 3000.0}
            for i in range(24)
        ])

    def test_priority_order_and_limit(self, generator):
        values = {"do": 5.1, "phosphate": 0.5, "temperature": 28.0, "tss": 2000.0}
        insights = generator.generate("buoy-1", values, self._all_rules_history(), NOON, limit=2)
        assert [i.kind for i in insights] == ["warning", "forecast"]

    def test_batch_cap_is_global(self):
        generator = InsightGenerator(max_per_run=2)
        store = HistoricalStore()
        buoys = [
            Buoy(id=f"buoy-{n}", sensors={"phosphate": 0.5, "temperature": 28.0})
            for n in range(5)
        ]
        insights = generator.generate_batch(buoys, store, NOON)
        assert len(insights) == 2
        assert [i.buoy_id for i in insights] == ["buoy-0", "buoy-1"]

    def test_ids_embed_buoy_rule_and_time(self, generator):
        values = {"do": 5.1, "phosphate": 0.5, "temperature": 28.0, "tss": 2000.0}
        insights = generator.generate("buoy-7", values, self._all_rules_history(), NOON)
        ids = [i.id for i in insights]
        assert len(set(ids)) == 3
        assert all(i.startswith("insight-buoy-7-") for i in ids)
        assert ids[0] == insight_id("buoy-7", "do", NOON)

    def test_to_dict_uses_wire_names(self, generator):
        insight = generator.generate(
            "buoy-1", {"phosphate": 0.5, "temperature": 28.0}, [], NOON
        )[0]
        payload = insight.to_dict()
        assert payload["buoyId"] == "buoy-1"
        assert payload["type"] == "forecast"
        assert payload["actionRequired"] is False
