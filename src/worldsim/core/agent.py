"""
Core agent dataclass.

An agent lives in one home settlement, holds a fixed-size inventory and a
crown balance, and carries the three inner-state containers the engine
updates every tick: needs, soul and wellbeing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any

from worldsim.core.goods import Inventory
from worldsim.core.needs import NeedsState
from worldsim.core.wellbeing import Soul, WellbeingState


class Occupation(str, Enum):
    FARMER = "farmer"
    MINER = "miner"
    CRAFTER = "crafter"
    MERCHANT = "merchant"
    SOLDIER = "soldier"
    SCHOLAR = "scholar"
    ALCHEMIST = "alchemist"
    LABORER = "laborer"
    FISHER = "fisher"
    HUNTER = "hunter"


class Terrain(str, Enum):
    PLAINS = "plains"
    FOREST = "forest"
    MOUNTAIN = "mountain"
    COAST = "coast"
    RIVER = "river"
    DESERT = "desert"
    SWAMP = "swamp"
    TUNDRA = "tundra"
    OCEAN = "ocean"


# Terrains that yield nothing to a forager.
BARREN_TERRAINS = frozenset({Terrain.DESERT, Terrain.TUNDRA, Terrain.OCEAN})


def can_forage(terrain: Terrain) -> bool:
    return terrain not in BARREN_TERRAINS


class CognitionTier(IntEnum):
    """Decision strategy class."""

    AUTOMATON = 0   # rule-based
    ARCHETYPE = 1   # template-guided
    DELEGATED = 2   # external delegate


VALID_TIERS = frozenset(int(t) for t in CognitionTier)


@dataclass
class SkillSet:
    """Occupational skills, each kept in [0, 1]."""

    farming: float = 0.1
    mining: float = 0.1
    crafting: float = 0.1
    combat: float = 0.1
    trade: float = 0.1

    def improve(self, skill: str, delta: float) -> None:
        value = getattr(self, skill) + delta
        setattr(self, skill, min(1.0, max(0.0, value)))

    def to_dict(self) -> dict[str, float]:
        return {
            "farming": float(self.farming),
            "mining": float(self.mining),
            "crafting": float(self.crafting),
            "combat": float(self.combat),
            "trade": float(self.trade),
        }


@dataclass
class Agent:
    """A simulated inhabitant."""

    # === Identity ===
    id: int
    name: str
    age: int
    sex: str = "female"

    # === Location ===
    home_settlement_id: int = 0
    terrain: Terrain = Terrain.PLAINS
    travel_ticks_left: int = 0
    travel_destination_id: int | None = None

    # === Economy ===
    occupation: Occupation = Occupation.LABORER
    inventory: Inventory = field(default_factory=Inventory)
    cargo: Inventory = field(default_factory=Inventory)  # goods carried on a trade trip
    wealth: int = 0
    skills: SkillSet = field(default_factory=SkillSet)
    role: str = "commoner"  # commoner, noble, leader

    # === Cognition ===
    tier: int = CognitionTier.AUTOMATON
    archetype: str | None = None

    # === Inner state ===
    needs: NeedsState = field(default_factory=NeedsState)
    soul: Soul = field(default_factory=Soul)
    wellbeing: WellbeingState = field(default_factory=WellbeingState)

    # === Lifecycle ===
    health: float = 1.0
    is_alive: bool = True
    death_tick: int | None = None
    last_action: str | None = None

    @property
    def in_transit(self) -> bool:
        return self.travel_ticks_left > 0

    def to_dict(self) -> dict[str, Any]:
        """Full-fidelity, JSON-safe dict."""
        return {
            "id": int(self.id),
            "name": self.name,
            "age": int(self.age),
            "sex": self.sex,
            "home_settlement_id": int(self.home_settlement_id),
            "terrain": self.terrain.value,
            "travel_ticks_left": int(self.travel_ticks_left),
            "travel_destination_id": self.travel_destination_id,
            "occupation": self.occupation.value,
            "inventory": self.inventory.to_dict(),
            "cargo": self.cargo.to_dict(),
            "wealth": int(self.wealth),
            "skills": self.skills.to_dict(),
            "role": self.role,
            "tier": int(self.tier),
            "archetype": self.archetype,
            "needs": self.needs.to_dict(),
            "soul": self.soul.to_dict(),
            "wellbeing": self.wellbeing.to_dict(),
            "health": float(self.health),
            "is_alive": self.is_alive,
            "death_tick": self.death_tick,
            "last_action": self.last_action,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Agent:
        """Rebuild an agent.  The tier is kept raw so startup validation sees it."""
        return cls(
            id=int(d["id"]),
            name=d["name"],
            age=int(d["age"]),
            sex=d.get("sex", "female"),
            home_settlement_id=int(d["home_settlement_id"]),
            terrain=Terrain(d.get("terrain", Terrain.PLAINS.value)),
            travel_ticks_left=int(d.get("travel_ticks_left", 0)),
            travel_destination_id=d.get("travel_destination_id"),
            occupation=Occupation(d.get("occupation", Occupation.LABORER.value)),
            inventory=Inventory.from_dict(d.get("inventory", {})),
            cargo=Inventory.from_dict(d.get("cargo", {})),
            wealth=int(d.get("wealth", 0)),
            skills=SkillSet(**d.get("skills", {})),
            role=d.get("role", "commoner"),
            tier=int(d.get("tier", 0)),
            archetype=d.get("archetype"),
            needs=NeedsState.from_dict(d.get("needs", {})),
            soul=Soul.from_dict(d.get("soul", {})),
            wellbeing=WellbeingState.from_dict(d.get("wellbeing", {})),
            health=float(d.get("health", 1.0)),
            is_alive=bool(d.get("is_alive", True)),
            death_tick=d.get("death_tick"),
            last_action=d.get("last_action"),
        )
