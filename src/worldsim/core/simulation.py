"""
World simulation.

``Simulation`` owns the settlements, the agents and one ``CadenceScheduler``
and wires the engine systems onto its cadences:

* every tick, for each living agent in ID order: needs decay (and
  starvation), decision, action resolution, movement countdown, wellbeing
  update;
* every hour: spoilage, population refresh, market resolution and exchange,
  then merchant trade trips;
* every day: boost cleanup, taxes, coherence growth, metrics;
* every week: delegate requests for tier-2 agents;
* every season: season change.

``advance_tick()`` is the only way the clock moves.  It holds the simulation
lock, applies interventions queued since the previous tick, drains finished
delegate responses into the mailbox, then steps the scheduler.  Snapshots
take the same lock, so readers never see a half-applied tick.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import numpy as np

from worldsim.core.actions import ActionResolver
from worldsim.core.agent import VALID_TIERS, Agent, CognitionTier, Occupation
from worldsim.core.archetypes import apply_daily_growth
from worldsim.core.cognition import (
    CognitionDispatcher,
    DelegateMailbox,
    DelegateRequest,
)
from worldsim.core.config import WorldConfig
from worldsim.core.interventions import (
    Intervention,
    InterventionKind,
    ProductionBoost,
    active_boosts,
    find_consolidation_target,
    prune_boosts,
    validate_intervention,
)
from worldsim.core.market import MarketResolver
from worldsim.core.needs import NeedsSystem
from worldsim.core.scheduler import CadenceScheduler, Cadence, Calendar
from worldsim.core.settlement import Settlement
from worldsim.core.spawner import Spawner, promote, seed_world
from worldsim.core.wellbeing import WellbeingModel, mood_word
from worldsim.metrics.collector import MetricsCollector, TickMetrics

if TYPE_CHECKING:
    from worldsim.core.cognition import Delegate

logger = logging.getLogger(__name__)


class CorruptStateError(RuntimeError):
    """Raised at startup when the initial world state breaks an invariant."""


@dataclass
class WorldEvent:
    tick: int
    sim_time: str
    category: str
    description: str
    meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tick": self.tick,
            "sim_time": self.sim_time,
            "category": self.category,
            "description": self.description,
            "meta": dict(self.meta),
        }


def validate_state(settlements: list[Settlement], agents: list[Agent]) -> None:
    """Raise ``CorruptStateError`` for any broken startup invariant."""
    settlement_ids: set[int] = set()
    for s in settlements:
        if s.id in settlement_ids:
            raise CorruptStateError(f"Duplicate settlement id {s.id}")
        settlement_ids.add(s.id)
        if s.treasury < 0:
            raise CorruptStateError(f"Settlement {s.id} has negative treasury {s.treasury}")

    agent_ids: set[int] = set()
    for a in agents:
        if a.id in agent_ids:
            raise CorruptStateError(f"Duplicate agent id {a.id}")
        agent_ids.add(a.id)
        if int(a.tier) not in VALID_TIERS:
            raise CorruptStateError(f"Agent {a.id} has invalid cognition tier {a.tier}")
        if a.home_settlement_id not in settlement_ids:
            raise CorruptStateError(
                f"Agent {a.id} lives in unknown settlement {a.home_settlement_id}"
            )
        if a.wealth < 0:
            raise CorruptStateError(f"Agent {a.id} has negative wealth {a.wealth}")


class Simulation:
    """One deterministic world: state, systems and the tick loop."""

    def __init__(
        self,
        config: WorldConfig,
        settlements: list[Settlement],
        agents: list[Agent],
        *,
        tick: int = 0,
        rng: np.random.Generator | None = None,
        next_agent_id: int | None = None,
        boosts: list[ProductionBoost] | None = None,
        delegate: Delegate | None = None,
    ) -> None:
        validate_state(settlements, agents)
        for a in agents:
            a.tier = CognitionTier(a.tier)

        self.config = config
        self.rng = rng if rng is not None else np.random.default_rng(config.random_seed)
        self.settlements: dict[int, Settlement] = {
            s.id: s for s in sorted(settlements, key=lambda s: s.id)
        }
        self.agents: dict[int, Agent] = {a.id: a for a in sorted(agents, key=lambda a: a.id)}
        if next_agent_id is None:
            next_agent_id = max(self.agents, default=0) + 1
        self.spawner = Spawner(self.rng, next_agent_id)

        # Systems
        self.needs = NeedsSystem(config)
        self.wellbeing = WellbeingModel(config)
        self.mailbox = DelegateMailbox()
        self.cognition = CognitionDispatcher(config, self.mailbox)
        self.actions = ActionResolver(config)
        self.market = MarketResolver(config)
        self.collector = MetricsCollector(config.metrics_history_size)
        self.delegate = delegate

        self.calendar = Calendar.from_config(config)
        self.scheduler = CadenceScheduler(self.calendar, start_tick=tick)
        self.scheduler.on(Cadence.TICK, self._on_tick)
        self.scheduler.on(Cadence.HOUR, self._on_hour)
        self.scheduler.on(Cadence.DAY, self._on_day)
        self.scheduler.on(Cadence.WEEK, self._on_week)
        self.scheduler.on(Cadence.SEASON, self._on_season)
        self.season = self.calendar.season(tick)

        self.boosts: list[ProductionBoost] = list(boosts or [])
        self.events: deque[WorldEvent] = deque(maxlen=config.event_log_size)
        self._pending: queue.Queue[Intervention] = queue.Queue()
        self._lock = threading.RLock()

        # Counters
        self.deaths_today = 0
        self.total_deaths = 0
        self.trade_volume_today = 0
        self.total_trade_volume = 0

        self._refresh_populations()

        delegated = sum(1 for a in self.agents.values() if a.tier == CognitionTier.DELEGATED)
        if delegated and delegate is None:
            logger.warning(
                "%d tier-2 agents but no delegate configured; they will idle", delegated,
            )

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def seeded(cls, config: WorldConfig, delegate: Delegate | None = None) -> Simulation:
        """Build a fresh world from ``config.random_seed``."""
        rng = np.random.default_rng(config.random_seed)
        settlements, agents, spawner = seed_world(config, rng)
        sim = cls(
            config, settlements, agents,
            rng=rng, next_agent_id=spawner.next_id, delegate=delegate,
        )
        logger.info(
            "Seeded world %r: %d settlements, %d agents",
            config.world_name, len(settlements), len(agents),
        )
        return sim

    @classmethod
    def from_state(
        cls, state: dict[str, Any], delegate: Delegate | None = None,
    ) -> Simulation:
        """Rebuild from ``to_state()`` output; startup validation runs again."""
        config = WorldConfig.from_dict(state["config"])
        rng = np.random.default_rng()
        if state.get("rng_state"):
            rng.bit_generator.state = state["rng_state"]
        sim = cls(
            config,
            [Settlement.from_dict(s) for s in state["settlements"]],
            [Agent.from_dict(a) for a in state["agents"]],
            tick=int(state.get("tick", 0)),
            rng=rng,
            next_agent_id=state.get("next_agent_id"),
            boosts=[ProductionBoost(**b) for b in state.get("boosts", [])],
            delegate=delegate,
        )
        sim.total_deaths = int(state.get("total_deaths", 0))
        sim.total_trade_volume = int(state.get("total_trade_volume", 0))
        return sim

    def to_state(self) -> dict[str, Any]:
        """Full JSON-safe state, enough to resume the world deterministically."""
        with self._lock:
            return {
                "config": self.config.to_dict(),
                "tick": self.tick,
                "next_agent_id": self.spawner.next_id,
                "rng_state": self.rng.bit_generator.state,
                "settlements": [s.to_dict() for s in self.settlements.values()],
                "agents": [a.to_dict() for a in self.agents.values()],
                "boosts": [b.to_dict() for b in self.boosts],
                "total_deaths": self.total_deaths,
                "total_trade_volume": self.total_trade_volume,
            }

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------

    @property
    def tick(self) -> int:
        return self.scheduler.tick

    @property
    def sim_time(self) -> str:
        return self.calendar.sim_time(self.scheduler.tick)

    def advance_tick(self) -> int:
        """Apply queued work, then run exactly one tick.  Returns the new tick."""
        with self._lock:
            upcoming = self.scheduler.tick + 1
            self._apply_pending(upcoming)
            self._drain_delegate()
            return self.scheduler.step()

    def run_ticks(self, n: int) -> int:
        for _ in range(n):
            self.advance_tick()
        return self.tick

    # ------------------------------------------------------------------
    # Interventions
    # ------------------------------------------------------------------

    def submit(self, intervention: Intervention) -> None:
        """Validate and queue; raises ``InterventionError`` when out of bounds."""
        with self._lock:
            validate_intervention(intervention, self.settlements, self.config)
        self._pending.put(intervention)

    def _apply_pending(self, tick: int) -> None:
        while True:
            try:
                intervention = self._pending.get_nowait()
            except queue.Empty:
                return
            self._apply_intervention(intervention, tick)

    def _apply_intervention(self, iv: Intervention, tick: int) -> None:
        settlement = self.settlements[iv.settlement_id]
        kind = iv.kind

        if kind is InterventionKind.ADJUST_TREASURY:
            settlement.treasury = max(0, settlement.treasury + iv.delta)
            desc = f"{settlement.name} treasury adjusted by {iv.delta:+d} crowns"
        elif kind is InterventionKind.SPAWN_AGENTS:
            newcomers = self._spawn(settlement, iv.count)
            desc = f"{len(newcomers)} newcomers arrive in {settlement.name}"
        elif kind is InterventionKind.PROVISION:
            settlement.market.stock.add(iv.good, iv.quantity)
            desc = f"{settlement.name} provisioned with {iv.quantity} {iv.good.key}"
        elif kind is InterventionKind.CULTIVATE:
            expires = tick + iv.duration_days * self.config.ticks_per_day
            self.boosts.append(ProductionBoost(settlement.id, iv.multiplier, expires))
            desc = (
                f"{settlement.name} production boosted x{iv.multiplier:.2f} "
                f"for {iv.duration_days} days"
            )
        else:
            moved, target = self._consolidate(settlement, iv.count, iv.target_settlement_id)
            if target is None:
                logger.warning(
                    "Consolidation of %s skipped: no settlement in range", settlement.name,
                )
                return
            desc = f"{moved} residents of {settlement.name} move to {target.name}"

        self._emit(tick, "intervention", desc, **iv.to_dict())
        logger.info("Intervention applied at tick %d: %s", tick, desc)

    def _spawn(self, settlement: Settlement, count: int) -> list[Agent]:
        """New residents; their starting crowns come out of the treasury."""
        cfg = self.config
        newcomers = self.spawner.spawn(
            count, settlement, (cfg.starting_wealth[0], cfg.starting_wealth[1]),
        )
        for agent in newcomers:
            grant = min(agent.wealth, settlement.treasury)
            settlement.treasury -= grant
            agent.wealth = grant
        promote(newcomers, self.rng, cfg.tier1_fraction, 0)
        for agent in newcomers:
            self.agents[agent.id] = agent
        self._refresh_populations()
        return newcomers

    def _consolidate(
        self, source: Settlement, count: int, target_id: int | None,
    ) -> tuple[int, Settlement | None]:
        if target_id is not None:
            target = self.settlements[target_id]
        else:
            target = find_consolidation_target(
                source, self.settlements,
                self.config.consolidate_min_population,
                self.config.consolidate_max_distance,
            )
        if target is None:
            return 0, None

        movers = [
            a for a in self.agents.values()
            if a.is_alive and a.home_settlement_id == source.id
        ][:count]
        for agent in movers:
            agent.home_settlement_id = target.id
            agent.terrain = target.terrain
            agent.travel_ticks_left = 0
            agent.travel_destination_id = None
        self._refresh_populations()
        return len(movers), target

    # ------------------------------------------------------------------
    # Delegate
    # ------------------------------------------------------------------

    def _drain_delegate(self) -> None:
        if self.delegate is None:
            return
        for response in self.delegate.poll():
            agent = self.agents.get(response.agent_id)
            if agent is None or not agent.is_alive or agent.tier != CognitionTier.DELEGATED:
                continue
            if response.error:
                logger.debug("No plan for agent %d: %s", response.agent_id, response.error)
                continue
            self.mailbox.post(agent.id, list(response.actions))

    def delegate_context(self, agent: Agent) -> dict[str, Any]:
        settlement = self.settlements.get(agent.home_settlement_id)
        return {
            "name": agent.name,
            "age": agent.age,
            "occupation": agent.occupation.value,
            "wealth": agent.wealth,
            "mood": mood_word(agent.wellbeing.effective_mood),
            "coherence": round(agent.soul.coherence, 3),
            "band": agent.soul.band.value,
            "archetype": agent.archetype,
            "settlement": settlement.name if settlement else "the wilds",
            "treasury": settlement.treasury if settlement else 0,
            "season": self.season.value,
            "food": agent.inventory.food(),
            "health": round(agent.health, 2),
        }

    # ------------------------------------------------------------------
    # Cadence callbacks
    # ------------------------------------------------------------------

    def _on_tick(self, tick: int) -> None:
        boosts = active_boosts(self.boosts, tick)
        for agent in list(self.agents.values()):
            if not agent.is_alive:
                continue
            if self.needs.tick(agent):
                self._kill(agent, tick, "starvation")
                continue
            action = self.cognition.decide(agent)
            for desc in self.actions.apply(
                agent, action, tick, boosts.get(agent.home_settlement_id, 1.0),
            ):
                logger.debug("tick %d: %s", tick, desc)
            self._move(agent)
            self.wellbeing.update(agent)

    def _on_hour(self, tick: int) -> None:
        members: dict[int, list[Agent]] = {sid: [] for sid in self.settlements}
        for agent in self.agents.values():
            if not agent.is_alive:
                continue
            self.actions.spoil_inventory(agent)
            if not agent.in_transit:
                members[agent.home_settlement_id].append(agent)
        self._refresh_populations()

        for settlement in self.settlements.values():
            result = self.market.resolve_settlement(
                settlement, members[settlement.id], self.season,
            )
            self.trade_volume_today += result.units
            self.total_trade_volume += result.units

        for settlement in self.settlements.values():
            destinations = self.market.trade_destinations(settlement, self.settlements.values())
            if not destinations:
                continue
            home_members = members[settlement.id]
            for agent in home_members:
                if agent.occupation is not Occupation.MERCHANT or agent.cargo.total():
                    continue
                loaded = self.market.start_trip(agent, settlement, destinations, home_members)
                if loaded:
                    logger.debug(
                        "%s sets out for settlement %d with %d units",
                        agent.name, agent.travel_destination_id, loaded,
                    )

    def _on_day(self, tick: int) -> None:
        self.boosts = prune_boosts(self.boosts, tick)
        self._collect_taxes()
        for agent in self.agents.values():
            if not agent.is_alive:
                continue
            if agent.tier == CognitionTier.ARCHETYPE:
                apply_daily_growth(agent)
            self.wellbeing.baseline_growth(agent)

        m = self.collector.collect(
            tick, self.sim_time, self.agents.values(), self.settlements.values(),
            deaths=self.deaths_today, trade_volume=self.trade_volume_today,
        )
        self.collector.record(m)
        logger.info(
            "Day %d (%s): pop=%d mood=%.3f survival=%.3f crowns=%d trade=%d deaths=%d",
            self.calendar.day(tick), m.sim_time, m.population, m.avg_effective_mood,
            m.avg_survival, m.total_crowns, m.trade_volume, m.deaths,
        )
        self.deaths_today = 0
        self.trade_volume_today = 0

    def _on_week(self, tick: int) -> None:
        if self.delegate is None:
            return
        requests = [
            DelegateRequest(a.id, tick, self.delegate_context(a))
            for a in self.agents.values()
            if a.is_alive and a.tier == CognitionTier.DELEGATED
        ]
        if requests:
            accepted = self.delegate.submit(requests)
            logger.debug("Submitted %d/%d delegate requests", accepted, len(requests))

    def _on_season(self, tick: int) -> None:
        self.season = self.calendar.season(tick)
        self._emit(tick, "season", f"{self.season.value.capitalize()} begins")
        logger.info("Season changed to %s at tick %d", self.season.value, tick)

    # ------------------------------------------------------------------
    # Per-agent steps
    # ------------------------------------------------------------------

    def _move(self, agent: Agent) -> None:
        if agent.travel_ticks_left <= 0:
            return
        agent.travel_ticks_left -= 1
        if agent.travel_ticks_left > 0 or agent.travel_destination_id is None:
            return
        dest = self.settlements.get(agent.travel_destination_id)
        agent.travel_destination_id = None
        if dest is None:
            return
        if agent.cargo.total():
            # trade trip: sell and stay a resident of home
            sold = self.market.sell_cargo(agent, dest)
            self.trade_volume_today += sold
            self.total_trade_volume += sold
            logger.debug("%s sells %d units in %s", agent.name, sold, dest.name)
        else:
            agent.home_settlement_id = dest.id
            agent.terrain = dest.terrain

    def _kill(self, agent: Agent, tick: int, cause: str) -> None:
        agent.is_alive = False
        agent.health = 0.0
        agent.death_tick = tick
        self.deaths_today += 1
        self.total_deaths += 1
        self.mailbox.discard(agent.id)
        self._settle_estate(agent)
        self.settlements[agent.home_settlement_id].population -= 1
        self._emit(tick, "death", f"{agent.name} dies of {cause}", agent_id=agent.id)

    def _settle_estate(self, agent: Agent) -> None:
        """Half the crowns to the treasury, the rest to the lowest-ID neighbour."""
        settlement = self.settlements[agent.home_settlement_id]
        heir = next(
            (
                a for a in self.agents.values()
                if a.is_alive and a.home_settlement_id == settlement.id
            ),
            None,
        )
        to_treasury = agent.wealth // 2
        rest = agent.wealth - to_treasury
        settlement.treasury += to_treasury
        if heir is not None:
            heir.wealth += rest
        else:
            settlement.treasury += rest
        agent.wealth = 0

        for held in (agent.inventory, agent.cargo):
            for good, qty in held.items():
                settlement.market.stock.add(good, qty)
            held.clear()

    def _collect_taxes(self) -> None:
        cfg = self.config
        for agent in self.agents.values():
            if not agent.is_alive or agent.wealth <= cfg.tax_threshold:
                continue
            settlement = self.settlements[agent.home_settlement_id]
            tax = max(1, int((agent.wealth - cfg.tax_threshold) * settlement.tax_rate * cfg.agnosis))
            tax = min(tax, agent.wealth)
            agent.wealth -= tax
            settlement.treasury += tax

    def _refresh_populations(self) -> None:
        counts = {sid: 0 for sid in self.settlements}
        for agent in self.agents.values():
            if agent.is_alive:
                counts[agent.home_settlement_id] += 1
        for sid, settlement in self.settlements.items():
            settlement.population = counts[sid]

    def _emit(self, tick: int, category: str, description: str, **meta: Any) -> None:
        self.events.append(
            WorldEvent(tick, self.calendar.sim_time(tick), category, description, meta)
        )

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def living_agents(self) -> list[Agent]:
        return [a for a in self.agents.values() if a.is_alive]

    def total_crowns(self) -> int:
        with self._lock:
            return (
                sum(a.wealth for a in self.agents.values() if a.is_alive)
                + sum(s.treasury for s in self.settlements.values())
            )

    def agents_snapshot(self, living_only: bool = True) -> list[dict[str, Any]]:
        with self._lock:
            return [
                a.to_dict() for a in self.agents.values()
                if a.is_alive or not living_only
            ]

    def agent_snapshot(self, agent_id: int) -> dict[str, Any] | None:
        with self._lock:
            agent = self.agents.get(agent_id)
            return agent.to_dict() if agent is not None else None

    def settlements_snapshot(self) -> list[dict[str, Any]]:
        with self._lock:
            return [s.to_dict() for s in self.settlements.values()]

    def events_snapshot(self) -> list[dict[str, Any]]:
        with self._lock:
            return [e.to_dict() for e in self.events]

    def metrics(self) -> TickMetrics:
        """Fresh aggregates for the current tick."""
        with self._lock:
            return self.collector.collect(
                self.tick, self.sim_time, self.agents.values(), self.settlements.values(),
                deaths=self.deaths_today, trade_volume=self.trade_volume_today,
            )

    @property
    def metrics_history(self) -> list[TickMetrics]:
        with self._lock:
            return list(self.collector.history)
