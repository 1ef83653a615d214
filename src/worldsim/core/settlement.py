"""
Settlements: treasury, market and conjugate-field health.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from worldsim.core.agent import Terrain
from worldsim.core.market import Market
from worldsim.core.phi import health_ratio


def hex_distance(a: tuple[int, int], b: tuple[int, int]) -> int:
    """Distance between two axial hex coordinates."""
    dq = a[0] - b[0]
    dr = a[1] - b[1]
    return (abs(dq) + abs(dr) + abs(dq + dr)) // 2


@dataclass
class Settlement:
    """A town: one market, one treasury, a fixed hex position."""

    id: int
    name: str
    position: tuple[int, int] = (0, 0)
    terrain: Terrain = Terrain.PLAINS
    treasury: int = 0
    tax_rate: float = 0.1
    regional_modifier: float = 1.0
    market: Market = field(default_factory=Market)
    population: int = 0   # living residents, refreshed by the simulation

    def health(self) -> float:
        """Charging: people and savings.  Discharging: mouths to feed."""
        charging = self.population * 0.1 + self.treasury * 0.001
        discharging = self.population * 0.08
        return health_ratio(charging, discharging)

    def distance_to(self, other: Settlement) -> int:
        return hex_distance(self.position, other.position)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": int(self.id),
            "name": self.name,
            "position": list(self.position),
            "terrain": self.terrain.value,
            "treasury": int(self.treasury),
            "tax_rate": float(self.tax_rate),
            "regional_modifier": float(self.regional_modifier),
            "population": int(self.population),
            "health": round(self.health(), 4),
            "market": self.market.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Settlement:
        return cls(
            id=int(d["id"]),
            name=d["name"],
            position=tuple(d.get("position", (0, 0))),
            terrain=Terrain(d.get("terrain", Terrain.PLAINS.value)),
            treasury=int(d.get("treasury", 0)),
            tax_rate=float(d.get("tax_rate", 0.1)),
            regional_modifier=float(d.get("regional_modifier", 1.0)),
            market=Market.from_dict(d["market"]) if "market" in d else Market(),
            population=int(d.get("population", 0)),
        )
