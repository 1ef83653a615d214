"""
Cognition dispatch.

Every living agent produces exactly one ``Action`` per tick.  The strategy is
picked from a table indexed by cognition tier:

* tier 0 (automaton): route the most urgent need to a small fixed rule;
* tier 1 (archetype): the same skeleton with archetype thresholds, a social
  bias shortcut and the archetype's preferred action when nothing is urgent.
  Unknown archetypes fall back to tier 0;
* tier 2 (delegated): no local logic.  The agent follows the standing plan
  last posted to its mailbox by the external delegate and idles until one
  arrives.

All strategies take the agent and return an ``Action``; none of them mutate
state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Protocol

from worldsim.core.actions import Action, ActionKind
from worldsim.core.agent import CognitionTier
from worldsim.core.archetypes import SOCIAL_BIAS_THRESHOLD, get_archetype
from worldsim.core.needs import NeedLayer, priority

if TYPE_CHECKING:
    from worldsim.core.agent import Agent
    from worldsim.core.config import WorldConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Delegate boundary messages
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DelegateRequest:
    """What the delegate is told about one tier-2 agent."""

    agent_id: int
    tick: int
    context: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DelegateResponse:
    agent_id: int
    tick: int
    actions: tuple[Action, ...] = ()
    error: str | None = None


class Delegate(Protocol):
    """Anything that accepts requests without blocking and hands back responses."""

    def submit(self, requests: list[DelegateRequest]) -> int: ...

    def poll(self) -> list[DelegateResponse]: ...


# ---------------------------------------------------------------------------
# Delegate mailbox
# ---------------------------------------------------------------------------

class DelegateMailbox:
    """
    Standing plans for tier-2 agents.

    A plan is the 1-3 actions the delegate chose for the week.  The agent
    steps through it one action per tick, wrapping around, until a new plan
    replaces it.
    """

    def __init__(self) -> None:
        self._plans: dict[int, list[Action]] = {}
        self._cursor: dict[int, int] = {}

    def post(self, agent_id: int, actions: list[Action]) -> None:
        if not actions:
            return
        self._plans[agent_id] = list(actions)
        self._cursor[agent_id] = 0

    def next_action(self, agent_id: int) -> Action | None:
        plan = self._plans.get(agent_id)
        if not plan:
            return None
        idx = self._cursor[agent_id]
        self._cursor[agent_id] = idx + 1
        return plan[idx % len(plan)]

    def discard(self, agent_id: int) -> None:
        self._plans.pop(agent_id, None)
        self._cursor.pop(agent_id, None)

    def has_plan(self, agent_id: int) -> bool:
        return agent_id in self._plans

    def __len__(self) -> int:
        return len(self._plans)


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------

class CognitionDispatcher:
    """Selects one action per agent per tick through the tier table."""

    def __init__(
        self, config: WorldConfig, mailbox: DelegateMailbox | None = None,
    ) -> None:
        self.threshold = config.need_threshold
        self.mailbox = mailbox if mailbox is not None else DelegateMailbox()
        self._strategies: dict[CognitionTier, Callable[[Agent], Action]] = {
            CognitionTier.AUTOMATON: self._tier0,
            CognitionTier.ARCHETYPE: self._tier1,
            CognitionTier.DELEGATED: self._tier2,
        }

    def decide(self, agent: Agent) -> Action:
        if not agent.is_alive:
            return Action(agent.id, ActionKind.IDLE)
        return self._strategies[CognitionTier(agent.tier)](agent)

    # ------------------------------------------------------------------
    # Tier strategies
    # ------------------------------------------------------------------

    def _tier0(self, agent: Agent) -> Action:
        if agent.in_transit:
            return Action(agent.id, ActionKind.TRAVEL, f"{agent.name} travels on")

        layer = priority(agent.needs, None, self.threshold)
        if layer is NeedLayer.SURVIVAL:
            return self._survival(agent)
        if layer is NeedLayer.SAFETY:
            return self._safety(agent)
        if layer is NeedLayer.BELONGING:
            return Action(agent.id, ActionKind.SOCIALIZE, f"{agent.name} socializes with neighbors")
        if layer is NeedLayer.ESTEEM:
            return Action(agent.id, ActionKind.WORK, f"{agent.name} works diligently")
        return self._default(agent)

    def _tier1(self, agent: Agent) -> Action:
        archetype = get_archetype(agent.archetype)
        if archetype is None:
            logger.debug(
                "Agent %s has unknown archetype %r, using tier 0 rules",
                agent.id, agent.archetype,
            )
            return self._tier0(agent)

        if agent.in_transit:
            return Action(agent.id, ActionKind.TRAVEL, f"{agent.name} travels on")

        layer = priority(agent.needs, archetype.threshold_overrides, self.threshold)
        if layer is NeedLayer.SURVIVAL:
            return self._survival(agent)
        if layer is NeedLayer.SAFETY:
            return self._safety(agent)
        if layer is NeedLayer.BELONGING:
            if archetype.social_bias > SOCIAL_BIAS_THRESHOLD:
                return Action(agent.id, ActionKind.SOCIALIZE, f"{agent.name} engages the community")
            return Action(agent.id, ActionKind.SOCIALIZE, f"{agent.name} socializes with neighbors")
        if layer is NeedLayer.ESTEEM:
            return Action(agent.id, ActionKind.WORK, f"{agent.name} works diligently")
        return Action(
            agent.id, archetype.preferred_action, f"{agent.name} pursues their calling",
        )

    def _tier2(self, agent: Agent) -> Action:
        action = self.mailbox.next_action(agent.id)
        if action is None:
            return Action(agent.id, ActionKind.IDLE)
        return action

    # ------------------------------------------------------------------
    # Need handlers
    # ------------------------------------------------------------------

    def _survival(self, agent: Agent) -> Action:
        if agent.needs.survival < self.threshold:
            if agent.inventory.food() > 0:
                return Action(agent.id, ActionKind.EAT, f"{agent.name} eats a meal")
            return Action(agent.id, ActionKind.FORAGE, f"{agent.name} forages for food")
        return self._default(agent)

    def _safety(self, agent: Agent) -> Action:
        if agent.wealth < 20:
            return Action(agent.id, ActionKind.WORK, f"{agent.name} works to earn crowns")
        if agent.wealth > 30 and agent.needs.belonging < 0.4:
            return Action(agent.id, ActionKind.SOCIALIZE, f"{agent.name} socializes with neighbors")
        return self._default(agent)

    def _default(self, agent: Agent) -> Action:
        if agent.health < 0.3:
            return Action(agent.id, ActionKind.REST, f"{agent.name} rests to recover")
        return Action(agent.id, ActionKind.WORK, f"{agent.name} goes about their work")
