"""
Action vocabulary and action resolution.

``ActionResolver.apply`` turns one decided action into its fixed effect set
on the acting agent: inventory, wealth, skills, needs and satisfaction.
Every delta is additive and clamped on the spot, so no action can push a
field outside its range.

Currency enters the world through exactly one path here: the throttled
fallback wage.  It pays one crown only on ticks where
``tick % wage_interval == agent_id % wage_interval``, i.e. at most once per
simulated hour per agent.  Trade and travel are recognised but resolved
elsewhere (the hourly market exchange and the simulation's movement step).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable

from worldsim.core.agent import Occupation, can_forage
from worldsim.core.goods import FOOD_GOODS, GoodType
from worldsim.core.needs import NeedLayer

if TYPE_CHECKING:
    from worldsim.core.agent import Agent
    from worldsim.core.config import WorldConfig


class ActionKind(str, Enum):
    IDLE = "idle"
    EAT = "eat"
    WORK = "work"
    FORAGE = "forage"
    TRADE = "trade"
    TRAVEL = "travel"
    REST = "rest"
    SOCIALIZE = "socialize"


@dataclass(frozen=True)
class Action:
    """One agent's decision for one tick."""

    agent_id: int
    kind: ActionKind
    detail: str = ""


# ---------------------------------------------------------------------------
# Recipes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Recipe:
    output: GoodType
    inputs: tuple[tuple[GoodType, int], ...]

    def can_make(self, agent: Agent) -> bool:
        return all(agent.inventory.has(good, qty) for good, qty in self.inputs)

    def missing(self, agent: Agent) -> list[GoodType]:
        return [good for good, qty in self.inputs if not agent.inventory.has(good, qty)]


# Checked in order; the first recipe with materials on hand is made.
CRAFTER_RECIPES: tuple[Recipe, ...] = (
    Recipe(GoodType.TOOLS, ((GoodType.IRON_ORE, 2), (GoodType.TIMBER, 1))),
    Recipe(GoodType.WEAPONS, ((GoodType.IRON_ORE, 2), (GoodType.COAL, 1))),
    Recipe(GoodType.CLOTHING, ((GoodType.FURS, 2), (GoodType.TOOLS, 1))),
    Recipe(GoodType.LUXURIES, ((GoodType.GEMS, 2), (GoodType.TOOLS, 1))),
)

ALCHEMIST_RECIPES: tuple[Recipe, ...] = (
    Recipe(GoodType.MEDICINE, ((GoodType.HERBS, 2),)),
    Recipe(GoodType.LUXURIES, ((GoodType.EXOTICS, 2), (GoodType.HERBS, 1))),
)

# Raw producers: occupation -> (good, skill, yield multiplier)
RAW_PRODUCTION: dict[Occupation, tuple[GoodType, str, float]] = {
    Occupation.FARMER: (GoodType.GRAIN, "farming", 3.0),
    Occupation.MINER: (GoodType.IRON_ORE, "mining", 2.0),
    Occupation.FISHER: (GoodType.FISH, "farming", 2.0),
    Occupation.HUNTER: (GoodType.FURS, "combat", 2.0),
}

# Hourly spoilage: good -> fraction of the stack lost (floored to whole units)
SPOILAGE_FACTORS: dict[GoodType, float] = {
    GoodType.GRAIN: 0.1,
    GoodType.FISH: 0.1,
    GoodType.HERBS: 0.05,
    GoodType.MEDICINE: 0.05,
    GoodType.TOOLS: 0.01,
    GoodType.WEAPONS: 0.01,
}

# Needs side effects of a completed work action
_WORK_NEEDS: tuple[tuple[NeedLayer, float], ...] = (
    (NeedLayer.ESTEEM, 0.01),
    (NeedLayer.SAFETY, 0.005),
    (NeedLayer.BELONGING, 0.003),
    (NeedLayer.PURPOSE, 0.002),
)


def wage_due(agent_id: int, tick: int, interval: int = 60) -> bool:
    """True on the one tick per ``interval`` window when this agent is paid."""
    return tick % interval == agent_id % interval


class ActionResolver:
    """Applies actions to agents using the injected config."""

    def __init__(self, config: WorldConfig) -> None:
        self._cfg = config
        self._handlers: dict[ActionKind, Callable[[Agent, int, float], list[str]]] = {
            ActionKind.EAT: self._eat,
            ActionKind.WORK: self._work,
            ActionKind.FORAGE: self._forage,
            ActionKind.REST: self._rest,
            ActionKind.SOCIALIZE: self._socialize,
            ActionKind.TRADE: self._trade,
        }
        self.wages_minted = 0

    def apply(
        self, agent: Agent, action: Action, tick: int, boost: float = 1.0,
    ) -> list[str]:
        """Apply *action* to *agent*; returns event descriptions."""
        agent.last_action = action.kind.value
        handler = self._handlers.get(action.kind)
        if handler is None:
            # idle and travel have no direct effect here
            return []
        return handler(agent, tick, boost)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _eat(self, agent: Agent, tick: int, boost: float) -> list[str]:
        for good in FOOD_GOODS:
            if agent.inventory.remove(good):
                break
        else:
            return []
        agent.needs.adjust(NeedLayer.SURVIVAL, self._cfg.eat_survival)
        agent.wellbeing.adjust_satisfaction(0.05)
        return []

    def _forage(self, agent: Agent, tick: int, boost: float) -> list[str]:
        if can_forage(agent.terrain):
            agent.inventory.add(GoodType.GRAIN, 1)
        agent.needs.adjust(NeedLayer.SURVIVAL, self._cfg.forage_survival)
        return []

    def _rest(self, agent: Agent, tick: int, boost: float) -> list[str]:
        agent.health = min(1.0, agent.health + self._cfg.rest_health)
        agent.wellbeing.adjust_satisfaction(0.03)
        agent.needs.adjust(NeedLayer.SURVIVAL, 0.02)
        return []

    def _socialize(self, agent: Agent, tick: int, boost: float) -> list[str]:
        agent.needs.adjust(NeedLayer.BELONGING, 0.05)
        agent.needs.adjust(NeedLayer.SAFETY, 0.003)
        agent.needs.adjust(NeedLayer.PURPOSE, 0.002)
        agent.wellbeing.adjust_satisfaction(0.02)
        return []

    def _trade(self, agent: Agent, tick: int, boost: float) -> list[str]:
        """Haggling at the stalls.  Goods change hands in the hourly exchange."""
        if agent.occupation is Occupation.MERCHANT:
            self._pay_wage(agent, tick)
        agent.skills.improve("trade", 0.001)
        for layer, delta in _WORK_NEEDS:
            agent.needs.adjust(layer, delta)
        return []

    def _work(self, agent: Agent, tick: int, boost: float) -> list[str]:
        events: list[str] = []
        occ = agent.occupation

        if occ in RAW_PRODUCTION:
            good, skill, factor = RAW_PRODUCTION[occ]
            produced = max(1, int(getattr(agent.skills, skill) * factor * boost))
            agent.inventory.add(good, produced)
            if occ is Occupation.MINER:
                agent.inventory.add(GoodType.COAL, 1)
            agent.skills.improve(skill, 0.001)
        elif occ is Occupation.CRAFTER:
            recipe = self._craft(agent, CRAFTER_RECIPES, bonus=True)
            if recipe is not None:
                events.append(f"{agent.name} crafts {recipe.output.key}")
            else:
                self._pay_wage(agent, tick)
        elif occ is Occupation.ALCHEMIST:
            if self._craft(agent, ALCHEMIST_RECIPES, bonus=False) is None:
                self._pay_wage(agent, tick)
        elif occ is Occupation.LABORER:
            self._pay_wage(agent, tick)
        elif occ is Occupation.MERCHANT:
            self._pay_wage(agent, tick)
            agent.skills.improve("trade", 0.001)
        elif occ is Occupation.SOLDIER:
            agent.skills.improve("combat", 0.002)
        elif occ is Occupation.SCHOLAR:
            agent.soul.adjust_coherence(self._cfg.agnosis * 1e-6)
            agent.soul.add_wisdom(1e-6)

        for layer, delta in _WORK_NEEDS:
            agent.needs.adjust(layer, delta)
        return events

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _craft(
        self, agent: Agent, recipes: tuple[Recipe, ...], bonus: bool,
    ) -> Recipe | None:
        for recipe in recipes:
            if not recipe.can_make(agent):
                continue
            for good, qty in recipe.inputs:
                agent.inventory.remove(good, qty)
            produced = 1
            if bonus and agent.skills.crafting > 0.5 and agent.id % 3 == 0:
                produced += 1
            agent.inventory.add(recipe.output, produced)
            agent.skills.improve("crafting", 0.002)
            return recipe
        return None

    def _pay_wage(self, agent: Agent, tick: int) -> None:
        if wage_due(agent.id, tick, self._cfg.wage_interval):
            agent.wealth += 1
            self.wages_minted += 1

    def spoil_inventory(self, agent: Agent) -> int:
        """Hourly decay of perishables; returns units lost."""
        lost = 0
        for good, factor in SPOILAGE_FACTORS.items():
            qty = agent.inventory[good]
            loss = int(qty * self._cfg.agnosis * factor)
            if loss > 0:
                agent.inventory.remove(good, loss)
                lost += loss
        return lost
