"""
Metrics collector: per-tick world aggregates.

``collect`` reduces the living population and the settlements to a
``TickMetrics`` record.  The simulation stores one record per simulated day
in a bounded history and computes a fresh one whenever asked.
"""

from __future__ import annotations

from collections import deque
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any, Iterable

import numpy as np

from worldsim.core.needs import overall_satisfaction
from worldsim.core.wellbeing import CoherenceBand

if TYPE_CHECKING:
    from worldsim.core.agent import Agent
    from worldsim.core.settlement import Settlement


@dataclass
class TickMetrics:
    """World aggregates at one tick."""

    tick: int
    sim_time: str
    population: int
    deaths: int

    # Wellbeing averages
    avg_satisfaction: float
    avg_alignment: float
    avg_effective_mood: float
    avg_survival: float
    avg_coherence: float
    avg_needs_satisfaction: float

    # Currency
    total_agent_wealth: int
    total_treasury: int
    total_crowns: int
    gini: float

    # Trade
    trade_volume: int

    band_counts: dict[str, int] = field(default_factory=dict)
    settlement_health: dict[int, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def gini_coefficient(values: Iterable[float]) -> float:
    """Gini index of a wealth distribution; 0 for empty or all-zero input."""
    arr = np.sort(np.asarray(list(values), dtype=np.float64))
    n = arr.size
    if n == 0 or arr.sum() <= 0:
        return 0.0
    ranks = np.arange(1, n + 1)
    return float((2.0 * np.sum(ranks * arr)) / (n * arr.sum()) - (n + 1) / n)


class MetricsCollector:
    """Computes ``TickMetrics`` and keeps a bounded history of them."""

    def __init__(self, history_size: int = 365) -> None:
        self.history: deque[TickMetrics] = deque(maxlen=history_size)

    def collect(
        self,
        tick: int,
        sim_time: str,
        agents: Iterable[Agent],
        settlements: Iterable[Settlement],
        deaths: int = 0,
        trade_volume: int = 0,
    ) -> TickMetrics:
        living = [a for a in agents if a.is_alive]
        settlements = list(settlements)
        n = len(living)

        if n:
            satisfaction = np.array([a.wellbeing.satisfaction for a in living])
            alignment = np.array([a.wellbeing.alignment for a in living])
            mood = np.array([a.wellbeing.effective_mood for a in living])
            survival = np.array([a.needs.survival for a in living])
            coherence = np.array([a.soul.coherence for a in living])
            needs_sat = np.array([overall_satisfaction(a.needs) for a in living])
            means = [float(x.mean()) for x in (
                satisfaction, alignment, mood, survival, coherence, needs_sat,
            )]
        else:
            means = [0.0] * 6

        bands = {band.value: 0 for band in CoherenceBand}
        for a in living:
            bands[a.soul.band.value] += 1

        agent_wealth = int(sum(a.wealth for a in living))
        treasury = int(sum(s.treasury for s in settlements))

        return TickMetrics(
            tick=tick,
            sim_time=sim_time,
            population=n,
            deaths=deaths,
            avg_satisfaction=means[0],
            avg_alignment=means[1],
            avg_effective_mood=means[2],
            avg_survival=means[3],
            avg_coherence=means[4],
            avg_needs_satisfaction=means[5],
            total_agent_wealth=agent_wealth,
            total_treasury=treasury,
            total_crowns=agent_wealth + treasury,
            gini=gini_coefficient(a.wealth for a in living),
            trade_volume=trade_volume,
            band_counts=bands,
            settlement_health={s.id: round(s.health(), 4) for s in settlements},
        )

    def record(self, metrics: TickMetrics) -> None:
        self.history.append(metrics)

    def latest(self) -> TickMetrics | None:
        return self.history[-1] if self.history else None

    def get_time_series(self, field_name: str) -> list[Any]:
        """Extract one field across the recorded history."""
        return [getattr(m, field_name) for m in self.history]
