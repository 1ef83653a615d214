"""
Bounded external interventions.

Administrators (and any steward process) change the world only through these
five operations.  Each request is validated against the configured caps when
it is submitted, queued, and applied by the simulation at the start of the
next tick, never in the middle of one.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from worldsim.core.goods import GoodType

if TYPE_CHECKING:
    from worldsim.core.config import WorldConfig
    from worldsim.core.settlement import Settlement


class InterventionError(ValueError):
    """Raised when an intervention request exceeds its bounds."""


class UnknownSettlementError(InterventionError):
    """Raised when an intervention names a settlement that does not exist."""


class InterventionKind(str, Enum):
    ADJUST_TREASURY = "adjust_treasury"
    SPAWN_AGENTS = "spawn_agents"
    PROVISION = "provision"
    CULTIVATE = "cultivate"
    CONSOLIDATE = "consolidate"


@dataclass(frozen=True)
class Intervention:
    kind: InterventionKind
    settlement_id: int
    delta: int = 0
    count: int = 0
    good: GoodType | None = None
    quantity: int = 0
    multiplier: float = 1.0
    duration_days: int = 0
    target_settlement_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"kind": self.kind.value, "settlement_id": self.settlement_id}
        if self.kind is InterventionKind.ADJUST_TREASURY:
            d["delta"] = self.delta
        elif self.kind is InterventionKind.SPAWN_AGENTS:
            d["count"] = self.count
        elif self.kind is InterventionKind.PROVISION:
            d["good"] = self.good.key if self.good is not None else None
            d["quantity"] = self.quantity
        elif self.kind is InterventionKind.CULTIVATE:
            d["multiplier"] = self.multiplier
            d["duration_days"] = self.duration_days
        else:
            d["count"] = self.count
            d["target_settlement_id"] = self.target_settlement_id
        return d


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------

def adjust_treasury(settlement_id: int, delta: int) -> Intervention:
    return Intervention(InterventionKind.ADJUST_TREASURY, settlement_id, delta=int(delta))


def spawn_agents(settlement_id: int, count: int) -> Intervention:
    return Intervention(InterventionKind.SPAWN_AGENTS, settlement_id, count=int(count))


def provision(settlement_id: int, good: GoodType | str, quantity: int) -> Intervention:
    if isinstance(good, str):
        try:
            good = GoodType.from_key(good)
        except ValueError as e:
            raise InterventionError(str(e)) from None
    return Intervention(
        InterventionKind.PROVISION, settlement_id, good=good, quantity=int(quantity),
    )


def cultivate(settlement_id: int, multiplier: float, duration_days: int) -> Intervention:
    return Intervention(
        InterventionKind.CULTIVATE, settlement_id,
        multiplier=float(multiplier), duration_days=int(duration_days),
    )


def consolidate(
    settlement_id: int, count: int, target_settlement_id: int | None = None,
) -> Intervention:
    return Intervention(
        InterventionKind.CONSOLIDATE, settlement_id,
        count=int(count), target_settlement_id=target_settlement_id,
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def max_treasury_delta(treasury: int, fraction: float) -> int:
    return max(int(treasury * fraction), 1)


def find_consolidation_target(
    source: Settlement,
    settlements: dict[int, Settlement],
    min_population: int,
    max_distance: int,
) -> Settlement | None:
    """Nearest populous settlement in range; ties go to the lower id."""
    candidates = [
        s for s in settlements.values()
        if s.id != source.id
        and s.population >= min_population
        and source.distance_to(s) <= max_distance
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda s: (source.distance_to(s), s.id))


def validate_intervention(
    intervention: Intervention,
    settlements: dict[int, Settlement],
    config: WorldConfig,
) -> None:
    """Raise ``InterventionError`` unless the request is within bounds."""
    settlement = settlements.get(intervention.settlement_id)
    if settlement is None:
        raise UnknownSettlementError(f"Settlement {intervention.settlement_id} not found")

    kind = intervention.kind
    if kind is InterventionKind.ADJUST_TREASURY:
        cap = max_treasury_delta(settlement.treasury, config.max_treasury_fraction)
        if intervention.delta == 0 or abs(intervention.delta) > cap:
            raise InterventionError(
                f"Treasury delta must be non-zero and within +/-{cap} for {settlement.name}"
            )
    elif kind is InterventionKind.SPAWN_AGENTS:
        if not 1 <= intervention.count <= config.max_spawn_count:
            raise InterventionError(f"Spawn count must be 1..{config.max_spawn_count}")
    elif kind is InterventionKind.PROVISION:
        if intervention.good is None:
            raise InterventionError("Provision needs a good")
        if not 1 <= intervention.quantity <= config.max_provision_quantity:
            raise InterventionError(
                f"Provision quantity must be 1..{config.max_provision_quantity}"
            )
    elif kind is InterventionKind.CULTIVATE:
        if not 1.0 <= intervention.multiplier <= config.max_cultivate_multiplier:
            raise InterventionError(
                f"Cultivate multiplier must be 1.0..{config.max_cultivate_multiplier}"
            )
        if not 1 <= intervention.duration_days <= config.max_cultivate_days:
            raise InterventionError(
                f"Cultivate duration must be 1..{config.max_cultivate_days} days"
            )
    elif kind is InterventionKind.CONSOLIDATE:
        if not 1 <= intervention.count <= config.max_consolidate_count:
            raise InterventionError(
                f"Consolidate count must be 1..{config.max_consolidate_count}"
            )
        target_id = intervention.target_settlement_id
        if target_id is not None:
            if target_id not in settlements:
                raise UnknownSettlementError(f"Settlement {target_id} not found")
            if target_id == settlement.id:
                raise InterventionError("Cannot consolidate a settlement into itself")
        elif find_consolidation_target(
            settlement, settlements,
            config.consolidate_min_population, config.consolidate_max_distance,
        ) is None:
            raise InterventionError(f"No settlement in range to absorb {settlement.name}")


# ---------------------------------------------------------------------------
# Production boosts
# ---------------------------------------------------------------------------

@dataclass
class ProductionBoost:
    settlement_id: int
    multiplier: float
    expires_at: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "settlement_id": self.settlement_id,
            "multiplier": self.multiplier,
            "expires_at": self.expires_at,
        }


def active_boosts(boosts: list[ProductionBoost], tick: int) -> dict[int, float]:
    """Strongest unexpired multiplier per settlement."""
    best: dict[int, float] = {}
    for boost in boosts:
        if boost.expires_at > tick:
            best[boost.settlement_id] = max(best.get(boost.settlement_id, 1.0), boost.multiplier)
    return best


def prune_boosts(boosts: list[ProductionBoost], tick: int) -> list[ProductionBoost]:
    return [b for b in boosts if b.expires_at > tick]
