"""
Needs hierarchy.

Agents track five layered needs (survival, safety, belonging, esteem,
purpose) in [0, 1].  Every tick the needs decay, survival fastest and
purpose slowest; actions replenish them.  The most urgent layer is the first
one, bottom-up, whose level is strictly below its threshold.  When no layer
is urgent the agent is free to pursue purpose.

The module functions are pure apart from mutating the ``NeedsState`` they
are handed.  ``NeedsSystem`` binds them to an injected ``WorldConfig`` and
adds the starvation rule.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import numpy as np

if TYPE_CHECKING:
    from worldsim.core.agent import Agent
    from worldsim.core.config import WorldConfig


# ---------------------------------------------------------------------------
# NeedLayer enum
# ---------------------------------------------------------------------------

class NeedLayer(str, Enum):
    """Need layers, lowest (most basic) first."""

    SURVIVAL = "survival"
    SAFETY = "safety"
    BELONGING = "belonging"
    ESTEEM = "esteem"
    PURPOSE = "purpose"


# Layers checked by priority(), in order.  PURPOSE is the fallthrough.
PRIORITY_ORDER: tuple[NeedLayer, ...] = (
    NeedLayer.SURVIVAL,
    NeedLayer.SAFETY,
    NeedLayer.BELONGING,
    NeedLayer.ESTEEM,
)

SATISFACTION_WEIGHTS: dict[NeedLayer, float] = {
    NeedLayer.SURVIVAL: 5.0,
    NeedLayer.SAFETY: 4.0,
    NeedLayer.BELONGING: 3.0,
    NeedLayer.ESTEEM: 2.0,
    NeedLayer.PURPOSE: 1.0,
}

DEFAULT_DECAY_WEIGHTS: dict[str, float] = {
    "survival": 2.0,
    "safety": 1.0,
    "belonging": 0.5,
    "esteem": 0.3,
    "purpose": 0.1,
}

DEFAULT_THRESHOLD = 0.3

# Uniform spawn ranges for a freshly created agent.
SPAWN_RANGES: dict[NeedLayer, tuple[float, float]] = {
    NeedLayer.SURVIVAL: (0.7, 1.0),
    NeedLayer.SAFETY: (0.6, 0.9),
    NeedLayer.BELONGING: (0.5, 0.8),
    NeedLayer.ESTEEM: (0.3, 0.6),
    NeedLayer.PURPOSE: (0.2, 0.5),
}


# ---------------------------------------------------------------------------
# NeedsState
# ---------------------------------------------------------------------------

@dataclass
class NeedsState:
    """Five need levels, each kept in [0, 1]."""

    survival: float = 1.0
    safety: float = 1.0
    belonging: float = 1.0
    esteem: float = 1.0
    purpose: float = 1.0

    def get(self, layer: NeedLayer) -> float:
        return getattr(self, layer.value)

    def adjust(self, layer: NeedLayer, delta: float) -> None:
        """Add ``delta`` to one layer and clamp it."""
        value = getattr(self, layer.value) + delta
        setattr(self, layer.value, min(1.0, max(0.0, value)))

    def to_dict(self) -> dict[str, float]:
        return {layer.value: float(self.get(layer)) for layer in NeedLayer}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> NeedsState:
        return cls(**{layer.value: float(d.get(layer.value, 1.0)) for layer in NeedLayer})


# ---------------------------------------------------------------------------
# Pure operations
# ---------------------------------------------------------------------------

def clamp_needs(needs: NeedsState) -> None:
    for layer in NeedLayer:
        setattr(needs, layer.value, min(1.0, max(0.0, needs.get(layer))))


def priority(
    needs: NeedsState,
    thresholds: dict[str, float] | None = None,
    default_threshold: float = DEFAULT_THRESHOLD,
) -> NeedLayer:
    """
    Return the most urgent need layer.

    Layers are checked in the fixed order survival, safety, belonging,
    esteem.  The first whose level is below its threshold wins, however far
    below it is.  ``PURPOSE`` means nothing is urgent.
    """
    thresholds = thresholds or {}
    for layer in PRIORITY_ORDER:
        if needs.get(layer) < thresholds.get(layer.value, default_threshold):
            return layer
    return NeedLayer.PURPOSE


def decay(
    needs: NeedsState,
    rate: float,
    weights: dict[str, float] | None = None,
) -> None:
    """Subtract ``rate`` times each layer's weight, then clamp."""
    weights = weights or DEFAULT_DECAY_WEIGHTS
    for layer in NeedLayer:
        name = layer.value
        setattr(needs, name, needs.get(layer) - rate * weights.get(name, 0.0))
    clamp_needs(needs)


def overall_satisfaction(needs: NeedsState) -> float:
    """Weighted average of all layers; survival counts five times purpose."""
    total = sum(SATISFACTION_WEIGHTS[layer] * needs.get(layer) for layer in NeedLayer)
    return total / sum(SATISFACTION_WEIGHTS.values())


def spawn_needs(rng: np.random.Generator) -> NeedsState:
    """Near-satisfied starting needs for a new agent."""
    return NeedsState(**{
        layer.value: float(rng.uniform(lo, hi))
        for layer, (lo, hi) in SPAWN_RANGES.items()
    })


# ---------------------------------------------------------------------------
# NeedsSystem
# ---------------------------------------------------------------------------

class NeedsSystem:
    """
    Per-tick needs decay plus the starvation rule.

    All rates and thresholds come from the injected config.
    """

    def __init__(self, config: WorldConfig) -> None:
        self.threshold = config.need_threshold
        self.decay_rate = config.need_decay_rate
        self.decay_weights = dict(config.need_decay_weights)
        self.starvation_threshold = config.starvation_threshold
        self.starvation_damage = config.starvation_damage
        self.drift_rate = config.satisfaction_drift_rate

    def priority(
        self, needs: NeedsState, overrides: dict[str, float] | None = None,
    ) -> NeedLayer:
        return priority(needs, overrides, self.threshold)

    def tick(self, agent: Agent) -> bool:
        """
        Apply one tick of decay to *agent*.

        Returns True when starvation drove the agent's health to zero; the
        caller owns the death bookkeeping.
        """
        decay(agent.needs, self.decay_rate, self.decay_weights)

        starved = False
        if agent.needs.survival < self.starvation_threshold:
            agent.health = max(0.0, agent.health - self.starvation_damage)
            starved = agent.health <= 0.0

        # Material satisfaction drifts toward what the needs support.
        target = overall_satisfaction(agent.needs) * 2.0 - 1.0
        wb = agent.wellbeing
        wb.satisfaction += (target - wb.satisfaction) * self.drift_rate
        wb.satisfaction = min(1.0, max(-1.0, wb.satisfaction))
        return starved
