"""Tests for tiered cognition dispatch and the delegate mailbox."""

import pytest

from worldsim.core.actions import Action, ActionKind
from worldsim.core.agent import Agent, CognitionTier
from worldsim.core.archetypes import AMBITIOUS_MERCHANT, CURIOUS_SCHOLAR
from worldsim.core.cognition import CognitionDispatcher, DelegateMailbox
from worldsim.core.config import WorldConfig
from worldsim.core.goods import GoodType
from worldsim.core.needs import NeedsState


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_agent(agent_id: int = 1, **overrides) -> Agent:
    a = Agent(id=agent_id, name=f"Agent {agent_id}", age=30, wealth=50)
    for k, v in overrides.items():
        setattr(a, k, v)
    return a


def _dispatcher(mailbox: DelegateMailbox | None = None) -> CognitionDispatcher:
    return CognitionDispatcher(WorldConfig(), mailbox)


def _kind(agent: Agent, dispatcher: CognitionDispatcher | None = None) -> ActionKind:
    return (dispatcher or _dispatcher()).decide(agent).kind


# ---------------------------------------------------------------------------
# Tier 0
# ---------------------------------------------------------------------------

class TestAutomaton:
    def test_satisfied_agent_works(self):
        assert _kind(_make_agent()) is ActionKind.WORK

    def test_hungry_with_food_eats(self):
        agent = _make_agent(needs=NeedsState(survival=0.1))
        agent.inventory.add(GoodType.GRAIN, 2)
        assert _kind(agent) is ActionKind.EAT

    def test_hungry_without_food_forages(self):
        agent = _make_agent(needs=NeedsState(survival=0.1))
        assert _kind(agent) is ActionKind.FORAGE

    def test_poor_and_unsafe_works(self):
        agent = _make_agent(needs=NeedsState(safety=0.1), wealth=5)
        assert _kind(agent) is ActionKind.WORK

    def test_rich_and_lonely_socializes(self):
        agent = _make_agent(needs=NeedsState(safety=0.1, belonging=0.35), wealth=40)
        assert _kind(agent) is ActionKind.SOCIALIZE

    def test_unsafe_but_comfortable_falls_through(self):
        agent = _make_agent(needs=NeedsState(safety=0.1), wealth=25)
        assert _kind(agent) is ActionKind.WORK
        agent.health = 0.2
        assert _kind(agent) is ActionKind.REST

    def test_belonging_socializes(self):
        agent = _make_agent(needs=NeedsState(belonging=0.1))
        assert _kind(agent) is ActionKind.SOCIALIZE

    def test_esteem_works(self):
        agent = _make_agent(needs=NeedsState(esteem=0.1))
        assert _kind(agent) is ActionKind.WORK

    def test_frail_agent_rests(self):
        assert _kind(_make_agent(health=0.1)) is ActionKind.REST

    def test_in_transit_travels(self):
        agent = _make_agent(travel_ticks_left=3, needs=NeedsState(survival=0.0))
        assert _kind(agent) is ActionKind.TRAVEL

    def test_dead_agent_idles(self):
        agent = _make_agent(is_alive=False)
        assert _kind(agent) is ActionKind.IDLE

    def test_action_names_the_agent(self):
        action = _dispatcher().decide(_make_agent(agent_id=9))
        assert action.agent_id == 9
        assert "Agent 9" in action.detail

    def test_decide_does_not_mutate(self):
        agent = _make_agent(needs=NeedsState(survival=0.1))
        agent.inventory.add(GoodType.FISH, 1)
        before = agent.to_dict()
        _dispatcher().decide(agent)
        assert agent.to_dict() == before


# ---------------------------------------------------------------------------
# Tier 1
# ---------------------------------------------------------------------------

class TestArchetypeTier:
    def test_unknown_archetype_uses_tier0(self):
        agent = _make_agent(tier=CognitionTier.ARCHETYPE, archetype="Nobody",
                            needs=NeedsState(survival=0.1))
        assert _kind(agent) is ActionKind.FORAGE

    def test_merchant_prefers_trade(self):
        agent = _make_agent(tier=CognitionTier.ARCHETYPE, archetype=AMBITIOUS_MERCHANT)
        assert _kind(agent) is ActionKind.TRADE

    def test_merchant_safety_override(self):
        # 0.45 is fine for tier 0 but below the merchant's 0.5 safety line
        agent = _make_agent(tier=CognitionTier.ARCHETYPE, archetype=AMBITIOUS_MERCHANT,
                            needs=NeedsState(safety=0.45), wealth=10)
        assert _kind(agent) is ActionKind.WORK
        agent.needs.safety = 0.55
        assert _kind(agent) is ActionKind.TRADE

    def test_scholar_ignores_mild_hunger(self):
        agent = _make_agent(tier=CognitionTier.ARCHETYPE, archetype=CURIOUS_SCHOLAR,
                            needs=NeedsState(survival=0.25))
        assert _kind(agent) is ActionKind.WORK
        agent.tier = CognitionTier.AUTOMATON
        assert _kind(agent) is ActionKind.FORAGE

    def test_scholar_still_forages_when_starving(self):
        agent = _make_agent(tier=CognitionTier.ARCHETYPE, archetype=CURIOUS_SCHOLAR,
                            needs=NeedsState(survival=0.15))
        assert _kind(agent) is ActionKind.FORAGE

    def test_in_transit_travels(self):
        agent = _make_agent(tier=CognitionTier.ARCHETYPE, archetype=AMBITIOUS_MERCHANT,
                            travel_ticks_left=1)
        assert _kind(agent) is ActionKind.TRAVEL


# ---------------------------------------------------------------------------
# Tier 2 and the mailbox
# ---------------------------------------------------------------------------

class TestDelegatedTier:
    def test_idles_without_plan(self):
        agent = _make_agent(tier=CognitionTier.DELEGATED, needs=NeedsState(survival=0.0))
        assert _kind(agent) is ActionKind.IDLE

    def test_follows_plan_cyclically(self):
        mailbox = DelegateMailbox()
        mailbox.post(1, [Action(1, ActionKind.REST), Action(1, ActionKind.WORK)])
        dispatcher = _dispatcher(mailbox)
        agent = _make_agent(tier=CognitionTier.DELEGATED)
        kinds = [dispatcher.decide(agent).kind for _ in range(5)]
        assert kinds == [
            ActionKind.REST, ActionKind.WORK, ActionKind.REST, ActionKind.WORK, ActionKind.REST,
        ]

    def test_new_plan_restarts(self):
        mailbox = DelegateMailbox()
        mailbox.post(1, [Action(1, ActionKind.REST), Action(1, ActionKind.WORK)])
        dispatcher = _dispatcher(mailbox)
        agent = _make_agent(tier=CognitionTier.DELEGATED)
        dispatcher.decide(agent)
        mailbox.post(1, [Action(1, ActionKind.SOCIALIZE)])
        assert dispatcher.decide(agent).kind is ActionKind.SOCIALIZE


class TestMailbox:
    def test_empty_plan_ignored(self):
        mailbox = DelegateMailbox()
        mailbox.post(1, [])
        assert not mailbox.has_plan(1)
        assert len(mailbox) == 0

    def test_discard(self):
        mailbox = DelegateMailbox()
        mailbox.post(1, [Action(1, ActionKind.REST)])
        assert mailbox.has_plan(1)
        mailbox.discard(1)
        assert mailbox.next_action(1) is None
        mailbox.discard(42)

    @pytest.mark.parametrize("agent_id", [1, 2, 3])
    def test_plans_are_per_agent(self, agent_id):
        mailbox = DelegateMailbox()
        mailbox.post(2, [Action(2, ActionKind.EAT)])
        expected = ActionKind.EAT if agent_id == 2 else None
        action = mailbox.next_action(agent_id)
        assert (action.kind if action else None) == expected
