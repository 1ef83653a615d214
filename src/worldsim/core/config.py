"""
World configuration.

ALL tunable parameters live here.  A ``WorldConfig`` is frozen once built and
injected into every component at construction; use ``replace()`` to derive a
variant (tests do this to vary a single constant).
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from typing import Any

from worldsim.core.phi import AGNOSIS, BEING, MATTER, PSYCHE, TOTALITY


@dataclass(frozen=True)
class WorldConfig:
    """
    Immutable configuration for one simulated world.

    Use ``to_dict()`` / ``from_dict()`` for serialization and comparison.
    """

    # === World identity ===
    world_name: str = "crossworlds"
    random_seed: int | None = 42

    # === Seeding ===
    settlement_count: int = 3
    agents_per_settlement: int = 40
    tier1_fraction: float = 0.3      # fraction of spawned agents promoted to tier 1
    tier2_count: int = 0             # agents per world handed to the delegate
    initial_treasury: int = 500
    starting_wealth: list[int] = field(default_factory=lambda: [10, 50])

    # === Golden-ratio tuning ===
    agnosis: float = AGNOSIS
    psyche: float = PSYCHE
    matter: float = MATTER
    being: float = BEING
    totality: float = TOTALITY

    # === Needs ===
    need_threshold: float = 0.3
    need_decay_rate: float = AGNOSIS * 0.01
    need_decay_weights: dict[str, float] = field(default_factory=lambda: {
        "survival": 2.0,
        "safety": 1.0,
        "belonging": 0.5,
        "esteem": 0.3,
        "purpose": 0.1,
    })
    starvation_threshold: float = 0.1
    starvation_damage: float = 0.01
    satisfaction_drift_rate: float = 0.01

    # === Wellbeing ===
    liberation_threshold: float = 0.7
    valley_depth: float = 0.15
    wisdom_bonus_cap: float = 0.1
    baseline_growth_min_age: int = 30
    baseline_growth_min_satisfaction: float = 0.7

    # === Actions ===
    wage_interval: int = 60          # ticks between throttled wage credits
    eat_survival: float = 0.2
    forage_survival: float = 0.05
    rest_health: float = 0.05

    # === Market ===
    price_floor: float = AGNOSIS
    price_ceiling: float = TOTALITY
    price_epsilon: float = AGNOSIS   # substituted for a zero supply
    default_tax_rate: float = 0.1
    tax_threshold: int = 20

    # === Merchant trade trips ===
    merchant_trade_range: int = 5    # hexes
    merchant_cargo_size: int = 5
    ticks_per_hex: int = 6

    # === Cadence (in base ticks of one simulated minute) ===
    ticks_per_hour: int = 60
    ticks_per_day: int = 1440
    ticks_per_week: int = 10080
    ticks_per_season: int = 90000

    # === Delegate (tier 2) ===
    llm_provider: str | None = None  # 'anthropic', 'ollama', or None to disable
    llm_model: str | None = None
    llm_calls_per_minute: int = 20

    # === Interventions ===
    max_treasury_fraction: float = 0.1
    max_spawn_count: int = 100
    max_provision_quantity: int = 200
    max_cultivate_multiplier: float = 2.0
    max_cultivate_days: int = 14
    max_consolidate_count: int = 100
    consolidate_min_population: int = 50
    consolidate_max_distance: int = 8

    # === Observability ===
    metrics_history_size: int = 365
    event_log_size: int = 200

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {f.name: getattr(self, f.name) for f in dataclasses.fields(self)}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> WorldConfig:
        """Deserialize from a dict, ignoring keys this version does not know."""
        known = {f.name for f in dataclasses.fields(cls)}
        return cls(**{k: v for k, v in d.items() if k in known})

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str)

    @classmethod
    def from_json(cls, s: str) -> WorldConfig:
        return cls.from_dict(json.loads(s))

    def replace(self, **changes: Any) -> WorldConfig:
        """Return a copy with the given fields changed."""
        return dataclasses.replace(self, **changes)

    def diff(self, other: WorldConfig) -> dict[str, tuple[Any, Any]]:
        """Return parameters that differ between two configs."""
        diffs: dict[str, tuple[Any, Any]] = {}
        for k in self.to_dict():
            v1 = getattr(self, k)
            v2 = getattr(other, k)
            if v1 != v2:
                diffs[k] = (v1, v2)
        return diffs
