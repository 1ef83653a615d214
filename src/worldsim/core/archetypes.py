"""
Tier-1 behaviour templates.

An archetype shifts the need thresholds an agent reacts to, names the action
it takes when nothing is urgent, adds a daily coherence bonus and carries a
social bias.  A social bias above 0.2 turns a belonging response straight
into socializing.  Archetypes are assigned once, when an agent is promoted
to tier 1.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from worldsim.core.actions import ActionKind
from worldsim.core.agent import Occupation
from worldsim.core.phi import AGNOSIS
from worldsim.core.wellbeing import Element, SoulClass

if TYPE_CHECKING:
    from worldsim.core.agent import Agent


@dataclass(frozen=True)
class Archetype:
    name: str
    threshold_overrides: dict[str, float] = field(default_factory=dict)
    preferred_action: ActionKind = ActionKind.WORK
    coherence_growth: float = 0.0   # per simulated day
    social_bias: float = 0.0        # -1..1


AMBITIOUS_MERCHANT = "AmbitiousMerchant"
DEVOUT_TRADITIONALIST = "DevoutTraditionalist"
FRONTIER_EXPLORER = "FrontierExplorer"
DISGRUNTLED_LABORER = "DisgruntledLaborer"
SCHEMING_NOBLE = "SchemingNoble"
HEALER_SAGE = "HealerSage"
MILITANT_GUARD = "MilitantGuard"
CURIOUS_SCHOLAR = "CuriousScholar"


ARCHETYPES: dict[str, Archetype] = {
    AMBITIOUS_MERCHANT: Archetype(
        AMBITIOUS_MERCHANT,
        {"safety": 0.5, "esteem": 0.15},
        ActionKind.TRADE, AGNOSIS * 0.02, 0.3,
    ),
    DEVOUT_TRADITIONALIST: Archetype(
        DEVOUT_TRADITIONALIST,
        {"belonging": 0.2},
        ActionKind.WORK, AGNOSIS * 0.04, 0.5,
    ),
    FRONTIER_EXPLORER: Archetype(
        FRONTIER_EXPLORER,
        {"survival": 0.2, "belonging": 0.5},
        ActionKind.FORAGE, AGNOSIS * 0.03, -0.3,
    ),
    DISGRUNTLED_LABORER: Archetype(
        DISGRUNTLED_LABORER,
        {"safety": 0.2, "esteem": 0.2},
        ActionKind.WORK, AGNOSIS * 0.01, 0.1,
    ),
    SCHEMING_NOBLE: Archetype(
        SCHEMING_NOBLE,
        {"esteem": 0.1, "belonging": 0.4},
        ActionKind.SOCIALIZE, AGNOSIS * 0.02, 0.4,
    ),
    HEALER_SAGE: Archetype(
        HEALER_SAGE,
        {"purpose": 0.15},
        ActionKind.WORK, AGNOSIS * 0.05, 0.2,
    ),
    MILITANT_GUARD: Archetype(
        MILITANT_GUARD,
        {"safety": 0.15, "belonging": 0.4},
        ActionKind.WORK, AGNOSIS * 0.02, -0.1,
    ),
    CURIOUS_SCHOLAR: Archetype(
        CURIOUS_SCHOLAR,
        {"purpose": 0.1, "survival": 0.2},
        ActionKind.WORK, AGNOSIS * 0.04, 0.0,
    ),
}

SOCIAL_BIAS_THRESHOLD = 0.2


def get_archetype(name: str | None) -> Archetype | None:
    if name is None:
        return None
    return ARCHETYPES.get(name)


def assign_archetype(agent: Agent) -> str:
    """Pick the template that fits the agent's occupation, class and coherence."""
    occ = agent.occupation
    coherence = agent.soul.coherence

    if occ is Occupation.MERCHANT:
        return AMBITIOUS_MERCHANT
    if occ is Occupation.SOLDIER:
        return MILITANT_GUARD
    if occ is Occupation.SCHOLAR:
        return CURIOUS_SCHOLAR
    if occ is Occupation.ALCHEMIST:
        if agent.soul.soul_class is SoulClass.TRANSCENDENTALIST or coherence > 0.4:
            return HEALER_SAGE
        return CURIOUS_SCHOLAR
    if occ is Occupation.FARMER:
        return DEVOUT_TRADITIONALIST if coherence > 0.4 else DISGRUNTLED_LABORER
    if occ is Occupation.LABORER:
        return DISGRUNTLED_LABORER if coherence < 0.35 else DEVOUT_TRADITIONALIST
    if occ is Occupation.HUNTER:
        return FRONTIER_EXPLORER

    if agent.role in ("noble", "leader"):
        return SCHEMING_NOBLE
    element = agent.soul.element
    if element is Element.HYDROGEN:
        return FRONTIER_EXPLORER
    if element is Element.URANIUM:
        return SCHEMING_NOBLE
    return DEVOUT_TRADITIONALIST


def apply_daily_growth(agent: Agent) -> bool:
    """Daily archetype coherence bonus; False for unknown archetypes."""
    archetype = get_archetype(agent.archetype)
    if archetype is None:
        return False
    agent.soul.adjust_coherence(archetype.coherence_growth)
    return True
