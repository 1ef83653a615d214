"""Tests for MetricsCollector."""

import pytest

from worldsim.core.agent import Agent
from worldsim.core.needs import NeedsState
from worldsim.core.settlement import Settlement
from worldsim.core.wellbeing import Soul
from worldsim.metrics.collector import MetricsCollector, TickMetrics, gini_coefficient


def _make_agent(agent_id: int, wealth: int = 10, coherence: float = 0.0, **kwargs) -> Agent:
    defaults = dict(id=agent_id, name=f"A-{agent_id}", age=30, wealth=wealth,
                    soul=Soul(coherence=coherence))
    defaults.update(kwargs)
    return Agent(**defaults)


class TestGini:
    def test_equal_distribution(self):
        assert gini_coefficient([5, 5, 5, 5]) == pytest.approx(0.0)

    def test_one_holder(self):
        assert gini_coefficient([0, 0, 0, 100]) == pytest.approx(0.75)

    def test_order_does_not_matter(self):
        assert gini_coefficient([100, 0, 0, 0]) == pytest.approx(0.75)

    def test_empty_and_zero(self):
        assert gini_coefficient([]) == 0.0
        assert gini_coefficient([0, 0]) == 0.0


class TestCollect:
    def test_aggregates(self):
        agents = [
            _make_agent(1, wealth=10, coherence=0.1, needs=NeedsState(survival=0.4)),
            _make_agent(2, wealth=30, coherence=0.5, needs=NeedsState(survival=0.8)),
            _make_agent(3, wealth=99, coherence=0.9, is_alive=False),
        ]
        settlements = [Settlement(1, "Ashford", treasury=100, population=2)]
        m = MetricsCollector().collect(
            1440, "Spring Day 2, 0:00 Year 1", agents, settlements, deaths=1, trade_volume=7,
        )
        assert isinstance(m, TickMetrics)
        assert m.population == 2
        assert m.deaths == 1
        assert m.avg_survival == pytest.approx(0.6)
        assert m.avg_coherence == pytest.approx(0.3)
        assert m.total_agent_wealth == 40
        assert m.total_treasury == 100
        assert m.total_crowns == 140
        assert m.trade_volume == 7
        assert m.band_counts == {"torment": 1, "well_being": 1, "liberation": 0}
        assert set(m.settlement_health) == {1}

    def test_empty_world(self):
        m = MetricsCollector().collect(0, "", [], [])
        assert m.population == 0
        assert m.avg_effective_mood == 0.0
        assert m.gini == 0.0

    def test_to_dict(self):
        m = MetricsCollector().collect(0, "t", [_make_agent(1)], [])
        d = m.to_dict()
        assert d["population"] == 1
        assert d["total_crowns"] == 10


class TestHistory:
    def test_bounded(self):
        collector = MetricsCollector(history_size=3)
        for tick in range(5):
            collector.record(collector.collect(tick, "", [_make_agent(1)], []))
        assert len(collector.history) == 3
        assert collector.get_time_series("tick") == [2, 3, 4]
        assert collector.latest().tick == 4

    def test_latest_empty(self):
        assert MetricsCollector().latest() is None
