"""
Coherence and the dual-register wellbeing model.

Each agent carries a ``Soul`` whose coherence scalar (0-1) is the master
variable of its inner life, and a ``WellbeingState`` with two registers:

* satisfaction (-1..1), driven by material needs and action effects;
* alignment (0..1), a pure function of coherence and accumulated wisdom.

Effective mood blends the two, leaning on alignment as coherence rises.

Alignment is piecewise over three coherence bands:

* low (c < T1 = Psyche): ``c * Matter``, reaching Agnosis at the seam;
* mid (T1 <= c < 0.7): the valley.  Alignment drops at the T1 seam by the
  valley depth and climbs back along a parabola to Agnosis at 0.7;
* high (c >= 0.7): ``Matter + (c - Matter) * Being`` plus a capped wisdom
  bonus.

The function is non-decreasing inside each band and jumps only at the two
seams.  The drop into the valley is part of the model, not a defect.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import numpy as np

from worldsim.core.needs import overall_satisfaction
from worldsim.core.phi import AGNOSIS, BEING, MATTER, PSYCHE

if TYPE_CHECKING:
    from worldsim.core.agent import Agent
    from worldsim.core.config import WorldConfig


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class CoherenceBand(str, Enum):
    """Three coherence ranges; derived, never stored."""

    TORMENT = "torment"         # c < 0.4
    WELL_BEING = "well_being"   # 0.4 <= c < 0.7
    LIBERATION = "liberation"   # c >= 0.7


class SoulClass(str, Enum):
    DEVOTIONALIST = "devotionalist"
    RITUALIST = "ritualist"
    NIHILIST = "nihilist"
    TRANSCENDENTALIST = "transcendentalist"


class Element(str, Enum):
    """Classification on the mass x drive axes."""

    HELIUM = "helium"       # low mass, low drive
    HYDROGEN = "hydrogen"   # low mass, high drive
    GOLD = "gold"           # high mass, low drive
    URANIUM = "uranium"     # high mass, high drive


# Cumulative draw boundaries for soul classes.
_CLASS_CUTOFFS: tuple[tuple[float, SoulClass], ...] = (
    (0.45, SoulClass.DEVOTIONALIST),
    (0.80, SoulClass.RITUALIST),
    (0.97, SoulClass.NIHILIST),
    (1.01, SoulClass.TRANSCENDENTALIST),
)


def coherence_band(coherence: float) -> CoherenceBand:
    if coherence >= 0.7:
        return CoherenceBand.LIBERATION
    if coherence >= 0.4:
        return CoherenceBand.WELL_BEING
    return CoherenceBand.TORMENT


def classify_element(mass: float, drive: float) -> Element:
    high_mass = mass > 0.5
    high_drive = drive > 0.5
    if high_mass:
        return Element.URANIUM if high_drive else Element.GOLD
    return Element.HYDROGEN if high_drive else Element.HELIUM


# ---------------------------------------------------------------------------
# State containers
# ---------------------------------------------------------------------------

@dataclass
class Soul:
    """Coherence plus the auxiliary classification scalars."""

    coherence: float = 0.0
    mass: float = 0.35
    drive: float = 0.35
    wisdom: float = 0.0
    soul_class: SoulClass = SoulClass.DEVOTIONALIST

    @property
    def band(self) -> CoherenceBand:
        return coherence_band(self.coherence)

    @property
    def element(self) -> Element:
        return classify_element(self.mass, self.drive)

    def adjust_coherence(self, delta: float) -> None:
        """Add ``delta`` to coherence, clamped to [0, 1]."""
        self.coherence = min(1.0, max(0.0, self.coherence + delta))

    def add_wisdom(self, amount: float) -> None:
        self.wisdom = max(0.0, self.wisdom + amount)

    def wisdom_contribution(self) -> float:
        """Cultural imprint this soul leaves behind on death."""
        return self.wisdom * PSYCHE

    def to_dict(self) -> dict[str, Any]:
        return {
            "coherence": float(self.coherence),
            "mass": float(self.mass),
            "drive": float(self.drive),
            "wisdom": float(self.wisdom),
            "soul_class": self.soul_class.value,
            "band": self.band.value,
            "element": self.element.value,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Soul:
        return cls(
            coherence=float(d.get("coherence", 0.0)),
            mass=float(d.get("mass", 0.35)),
            drive=float(d.get("drive", 0.35)),
            wisdom=float(d.get("wisdom", 0.0)),
            soul_class=SoulClass(d.get("soul_class", SoulClass.DEVOTIONALIST.value)),
        )


@dataclass
class WellbeingState:
    satisfaction: float = 0.0    # -1..1, material register
    alignment: float = 0.0       # 0..1, coherence register
    effective_mood: float = 0.0  # -1..1, derived every tick

    def adjust_satisfaction(self, delta: float) -> None:
        self.satisfaction = min(1.0, max(-1.0, self.satisfaction + delta))

    def to_dict(self) -> dict[str, float]:
        return {
            "satisfaction": float(self.satisfaction),
            "alignment": float(self.alignment),
            "effective_mood": float(self.effective_mood),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> WellbeingState:
        return cls(
            satisfaction=float(d.get("satisfaction", 0.0)),
            alignment=float(d.get("alignment", 0.0)),
            effective_mood=float(d.get("effective_mood", 0.0)),
        )


# ---------------------------------------------------------------------------
# Pure functions
# ---------------------------------------------------------------------------

def compute_alignment(
    coherence: float,
    wisdom: float = 0.0,
    *,
    low_threshold: float = PSYCHE,
    high_threshold: float = 0.7,
    slope: float = MATTER,
    low_ceiling: float = AGNOSIS,
    steepness: float = BEING,
    valley_depth: float = 0.15,
    wisdom_weight: float = PSYCHE,
    wisdom_cap: float = 0.1,
) -> float:
    """Coherence-derived alignment in [0, 1]."""
    c = min(1.0, max(0.0, coherence))

    if c < low_threshold:
        alignment = min(c * slope, low_ceiling)
    elif c < high_threshold:
        x = (c - low_threshold) / (high_threshold - low_threshold)
        alignment = max(0.0, low_ceiling - valley_depth * (1.0 - x * x))
    else:
        bonus = min(max(wisdom, 0.0) * wisdom_weight, wisdom_cap)
        alignment = slope + (c - slope) * steepness + bonus

    return min(1.0, max(0.0, alignment))


def effective_mood(
    satisfaction: float,
    alignment: float,
    coherence: float,
    alignment_weight: float = MATTER,
) -> float:
    """Blend the two registers; alignment's share grows with coherence squared."""
    w_align = coherence * coherence * alignment_weight
    w_sat = 1.0 - w_align
    mood = w_sat * satisfaction + w_align * (2.0 * alignment - 1.0)
    return min(1.0, max(-1.0, mood))


def mood_word(mood: float) -> str:
    if mood > 0.5:
        return "elated"
    if mood > 0.2:
        return "content"
    if mood > -0.2:
        return "uneasy"
    if mood > -0.5:
        return "anxious"
    return "despairing"


def spawn_soul(rng: np.random.Generator) -> Soul:
    """A new soul: low coherence, moderate mass and drive."""
    coherence = float(rng.random() * MATTER * rng.random())
    mass = float(np.clip(rng.normal(0.35, 0.2), 0.0, 1.0))
    drive = float(np.clip(rng.normal(0.35, 0.2), 0.0, 1.0))
    draw = rng.random()
    soul_class = next(cls for cut, cls in _CLASS_CUTOFFS if draw < cut)
    return Soul(coherence=coherence, mass=mass, drive=drive, soul_class=soul_class)


# ---------------------------------------------------------------------------
# WellbeingModel
# ---------------------------------------------------------------------------

class WellbeingModel:
    """Recomputes alignment and effective mood from the injected constants."""

    def __init__(self, config: WorldConfig) -> None:
        self._cfg = config

    def alignment(self, coherence: float, wisdom: float) -> float:
        cfg = self._cfg
        return compute_alignment(
            coherence, wisdom,
            low_threshold=cfg.psyche,
            high_threshold=cfg.liberation_threshold,
            slope=cfg.matter,
            low_ceiling=cfg.agnosis,
            steepness=cfg.being,
            valley_depth=cfg.valley_depth,
            wisdom_weight=cfg.psyche,
            wisdom_cap=cfg.wisdom_bonus_cap,
        )

    def update(self, agent: Agent) -> None:
        """Refresh alignment, then effective mood.  Run after satisfaction moves."""
        wb = agent.wellbeing
        wb.alignment = self.alignment(agent.soul.coherence, agent.soul.wisdom)
        wb.effective_mood = effective_mood(
            wb.satisfaction, wb.alignment, agent.soul.coherence, self._cfg.matter,
        )

    def baseline_growth(self, agent: Agent) -> bool:
        """Daily coherence drift for settled, contented adults."""
        cfg = self._cfg
        if (
            agent.age > cfg.baseline_growth_min_age
            and overall_satisfaction(agent.needs) > cfg.baseline_growth_min_satisfaction
        ):
            agent.soul.adjust_coherence(cfg.agnosis * 0.001)
            return True
        return False
