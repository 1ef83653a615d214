"""
Agent spawning and world seeding.

IDs come from a monotonically increasing counter owned by the spawner and
persisted with the world, so a given seed always produces the same ID for
the same agent.  The throttled wage timing depends on that.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import numpy as np

from worldsim.core.agent import Agent, CognitionTier, Occupation, SkillSet, Terrain
from worldsim.core.archetypes import assign_archetype
from worldsim.core.goods import GoodType
from worldsim.core.needs import spawn_needs
from worldsim.core.phi import AGNOSIS, BEING, NOUS
from worldsim.core.settlement import Settlement
from worldsim.core.wellbeing import spawn_soul

if TYPE_CHECKING:
    from worldsim.core.config import WorldConfig


# Cumulative occupation draws per terrain; anything unlisted is all laborers.
OCCUPATION_TABLES: dict[Terrain, tuple[tuple[float, Occupation], ...]] = {
    Terrain.PLAINS: (
        (0.50, Occupation.FARMER), (0.70, Occupation.LABORER),
        (0.85, Occupation.CRAFTER), (1.00, Occupation.MERCHANT),
    ),
    Terrain.RIVER: (
        (0.50, Occupation.FARMER), (0.70, Occupation.LABORER),
        (0.85, Occupation.CRAFTER), (1.00, Occupation.MERCHANT),
    ),
    Terrain.MOUNTAIN: (
        (0.45, Occupation.MINER), (0.70, Occupation.LABORER),
        (0.85, Occupation.CRAFTER), (1.00, Occupation.MERCHANT),
    ),
    Terrain.COAST: (
        (0.40, Occupation.FISHER), (0.60, Occupation.MERCHANT),
        (0.80, Occupation.CRAFTER), (1.00, Occupation.LABORER),
    ),
    Terrain.FOREST: (
        (0.30, Occupation.HUNTER), (0.55, Occupation.FARMER),
        (0.75, Occupation.LABORER), (1.00, Occupation.CRAFTER),
    ),
    Terrain.SWAMP: (
        (0.40, Occupation.ALCHEMIST), (0.70, Occupation.HUNTER),
        (1.00, Occupation.LABORER),
    ),
}

# Primary skill boosts: occupation -> ((skill, share of the primary roll), ...)
PRIMARY_SKILLS: dict[Occupation, tuple[tuple[str, float], ...]] = {
    Occupation.FARMER: (("farming", 1.0),),
    Occupation.MINER: (("mining", 1.0),),
    Occupation.CRAFTER: (("crafting", 1.0),),
    Occupation.MERCHANT: (("trade", 1.0),),
    Occupation.SOLDIER: (("combat", 1.0),),
    Occupation.FISHER: (("farming", 0.8),),
    Occupation.HUNTER: (("combat", 0.7), ("farming", 0.5)),
    Occupation.SCHOLAR: (("crafting", 0.6), ("trade", 0.4)),
    Occupation.ALCHEMIST: (("crafting", 0.6), ("trade", 0.4)),
    Occupation.LABORER: (("farming", 0.5),),
}

# Starter kit handed out at founding so crafters have something to work.
STARTER_GOODS: dict[Occupation, tuple[tuple[GoodType, int], ...]] = {
    Occupation.CRAFTER: ((GoodType.IRON_ORE, 4), (GoodType.TIMBER, 2)),
    Occupation.ALCHEMIST: ((GoodType.HERBS, 4),),
    Occupation.MERCHANT: ((GoodType.GRAIN, 4),),
}

SETTLEMENT_TERRAINS: tuple[Terrain, ...] = (
    Terrain.PLAINS, Terrain.COAST, Terrain.FOREST,
    Terrain.MOUNTAIN, Terrain.RIVER, Terrain.SWAMP,
)

SETTLEMENT_NAMES = [
    "Ashford", "Brightwater", "Coldharbour", "Dunmere", "Eastwick",
    "Fallowmere", "Greyhaven", "Highmoor", "Ironvale", "Kingsbarrow",
    "Longreach", "Marrowdale", "Northfell", "Oakhurst", "Redcliff",
]

FIRST_NAMES_FEMALE = [
    "Ada", "Brenna", "Cora", "Della", "Elin", "Freya", "Greta", "Hilde",
    "Ilse", "Juna", "Kaia", "Liesel", "Mira", "Nell", "Orla", "Petra",
]
FIRST_NAMES_MALE = [
    "Aldo", "Bram", "Cael", "Doran", "Edric", "Fenn", "Gideon", "Hale",
    "Ivo", "Jory", "Kester", "Lorne", "Madoc", "Niall", "Osric", "Piet",
]
LAST_NAMES = [
    "Ashdown", "Barrow", "Cobb", "Dyer", "Fletcher", "Garrow", "Hollis",
    "Marsh", "Thatcher", "Wren", "Cooper", "Mercer", "Tanner", "Voss",
]


class Spawner:
    """Creates agents from a seeded generator with sequential integer IDs."""

    def __init__(self, rng: np.random.Generator, next_id: int = 1) -> None:
        self.rng = rng
        self.next_id = next_id

    def spawn(
        self,
        count: int,
        settlement: Settlement,
        wealth_range: tuple[int, int] = (10, 50),
        starter_goods: bool = True,
    ) -> list[Agent]:
        return [
            self.spawn_one(settlement, wealth_range, starter_goods)
            for _ in range(count)
        ]

    def spawn_one(
        self,
        settlement: Settlement,
        wealth_range: tuple[int, int] = (10, 50),
        starter_goods: bool = True,
    ) -> Agent:
        rng = self.rng
        agent_id = self.next_id
        self.next_id += 1

        sex = "female" if rng.random() < 0.5 else "male"
        firsts = FIRST_NAMES_FEMALE if sex == "female" else FIRST_NAMES_MALE
        name = f"{firsts[rng.integers(len(firsts))]} {LAST_NAMES[rng.integers(len(LAST_NAMES))]}"
        age = int(np.clip(rng.normal(30.0, 12.0), 5, 70))
        occupation = self.occupation_for_terrain(settlement.terrain)

        lo, hi = wealth_range
        wealth = int(rng.integers(lo, hi + 1))
        if occupation is Occupation.MERCHANT:
            wealth += int(rng.integers(0, hi + 1))

        agent = Agent(
            id=agent_id,
            name=name,
            age=age,
            sex=sex,
            home_settlement_id=settlement.id,
            terrain=settlement.terrain,
            occupation=occupation,
            wealth=wealth,
            skills=self.skills_for(occupation),
            needs=spawn_needs(rng),
            soul=spawn_soul(rng),
            health=float(0.8 + rng.random() * 0.2),
        )
        agent.wellbeing.satisfaction = float(rng.random() * 0.6 - 0.1)
        if starter_goods:
            for good, qty in STARTER_GOODS.get(occupation, ()):
                agent.inventory.add(good, qty)
        return agent

    def occupation_for_terrain(self, terrain: Terrain) -> Occupation:
        table = OCCUPATION_TABLES.get(terrain)
        if table is None:
            return Occupation.LABORER
        draw = self.rng.random()
        for cutoff, occupation in table:
            if draw < cutoff:
                return occupation
        return table[-1][1]

    def skills_for(self, occupation: Occupation) -> SkillSet:
        rng = self.rng
        skills = SkillSet(
            farming=float(0.1 + rng.random() * 0.1),
            mining=float(0.1 + rng.random() * 0.1),
            crafting=float(0.1 + rng.random() * 0.1),
            combat=float(0.05 + rng.random() * 0.1),
            trade=float(0.1 + rng.random() * 0.1),
        )
        primary = float(0.4 + rng.random() * 0.3)
        for skill, share in PRIMARY_SKILLS.get(occupation, ()):
            setattr(skills, skill, primary * share)
        return skills


# ---------------------------------------------------------------------------
# Tier promotion
# ---------------------------------------------------------------------------

def notability(agent: Agent) -> float:
    return (
        agent.soul.coherence * NOUS
        + agent.soul.drive * BEING
        + math.log1p(agent.wealth) * AGNOSIS
    )


def promote(
    agents: list[Agent],
    rng: np.random.Generator,
    tier1_fraction: float,
    tier2_count: int,
) -> None:
    """Hand the most notable adults to the delegate, then draw tier-1 agents."""
    adults = sorted(
        (a for a in agents if a.age >= 16),
        key=lambda a: (-notability(a), a.id),
    )
    for agent in adults[:max(tier2_count, 0)]:
        agent.tier = CognitionTier.DELEGATED

    for agent in agents:
        if agent.tier != CognitionTier.AUTOMATON:
            continue
        if rng.random() < tier1_fraction:
            agent.tier = CognitionTier.ARCHETYPE
            agent.archetype = assign_archetype(agent)


# ---------------------------------------------------------------------------
# World seeding
# ---------------------------------------------------------------------------

def seed_world(
    config: WorldConfig, rng: np.random.Generator,
) -> tuple[list[Settlement], list[Agent], Spawner]:
    """Found ``settlement_count`` settlements and populate them."""
    settlements: list[Settlement] = []
    for i in range(config.settlement_count):
        terrain = SETTLEMENT_TERRAINS[i % len(SETTLEMENT_TERRAINS)]
        position = (int(rng.integers(-6, 7)), int(rng.integers(-6, 7)))
        name = SETTLEMENT_NAMES[i % len(SETTLEMENT_NAMES)]
        if i >= len(SETTLEMENT_NAMES):
            name = f"{name} {i // len(SETTLEMENT_NAMES) + 1}"
        settlements.append(Settlement(
            id=i + 1,
            name=name,
            position=position,
            terrain=terrain,
            treasury=config.initial_treasury,
            tax_rate=config.default_tax_rate,
        ))

    spawner = Spawner(rng)
    wealth_range = (config.starting_wealth[0], config.starting_wealth[1])
    agents: list[Agent] = []
    for settlement in settlements:
        agents.extend(spawner.spawn(config.agents_per_settlement, settlement, wealth_range))

    promote(agents, rng, config.tier1_fraction, config.tier2_count)
    return settlements, agents, spawner
