"""Tests for tier-1 archetypes."""

import pytest

from worldsim.core.actions import ActionKind
from worldsim.core.agent import Agent, Occupation
from worldsim.core.archetypes import (
    AMBITIOUS_MERCHANT,
    ARCHETYPES,
    CURIOUS_SCHOLAR,
    DEVOUT_TRADITIONALIST,
    DISGRUNTLED_LABORER,
    FRONTIER_EXPLORER,
    HEALER_SAGE,
    MILITANT_GUARD,
    SCHEMING_NOBLE,
    Archetype,
    apply_daily_growth,
    assign_archetype,
    get_archetype,
)
from worldsim.core.wellbeing import Soul, SoulClass


def _make_agent(occupation: Occupation, coherence: float = 0.2, **kwargs) -> Agent:
    a = Agent(id=1, name="A", age=30, occupation=occupation, soul=Soul(coherence=coherence))
    for k, v in kwargs.items():
        setattr(a, k, v)
    return a


class TestArchetypeDefinitions:
    def test_eight_archetypes_defined(self):
        assert len(ARCHETYPES) == 8

    def test_definitions_are_consistent(self):
        for name, arch in ARCHETYPES.items():
            assert isinstance(arch, Archetype)
            assert arch.name == name
            assert -1.0 <= arch.social_bias <= 1.0
            assert arch.coherence_growth > 0.0
            for layer, value in arch.threshold_overrides.items():
                assert layer in {"survival", "safety", "belonging", "esteem", "purpose"}
                assert 0.0 < value < 1.0

    def test_merchant_prefers_trade(self):
        assert ARCHETYPES[AMBITIOUS_MERCHANT].preferred_action is ActionKind.TRADE

    def test_get_archetype(self):
        assert get_archetype(CURIOUS_SCHOLAR) is ARCHETYPES[CURIOUS_SCHOLAR]
        assert get_archetype(None) is None
        assert get_archetype("Nonexistent") is None


class TestAssignArchetype:
    @pytest.mark.parametrize("occupation,coherence,expected", [
        (Occupation.MERCHANT, 0.1, AMBITIOUS_MERCHANT),
        (Occupation.SOLDIER, 0.1, MILITANT_GUARD),
        (Occupation.SCHOLAR, 0.1, CURIOUS_SCHOLAR),
        (Occupation.ALCHEMIST, 0.5, HEALER_SAGE),
        (Occupation.ALCHEMIST, 0.1, CURIOUS_SCHOLAR),
        (Occupation.FARMER, 0.5, DEVOUT_TRADITIONALIST),
        (Occupation.FARMER, 0.1, DISGRUNTLED_LABORER),
        (Occupation.LABORER, 0.1, DISGRUNTLED_LABORER),
        (Occupation.LABORER, 0.5, DEVOUT_TRADITIONALIST),
        (Occupation.HUNTER, 0.1, FRONTIER_EXPLORER),
    ])
    def test_occupation_rules(self, occupation, coherence, expected):
        assert assign_archetype(_make_agent(occupation, coherence)) == expected

    def test_transcendentalist_alchemist_heals(self):
        agent = _make_agent(Occupation.ALCHEMIST, 0.1)
        agent.soul.soul_class = SoulClass.TRANSCENDENTALIST
        assert assign_archetype(agent) == HEALER_SAGE

    def test_noble_crafter_schemes(self):
        assert assign_archetype(_make_agent(Occupation.CRAFTER, role="noble")) == SCHEMING_NOBLE

    def test_element_fallback(self):
        agent = _make_agent(Occupation.CRAFTER)
        agent.soul.mass, agent.soul.drive = 0.2, 0.8
        assert assign_archetype(agent) == FRONTIER_EXPLORER
        agent.soul.mass = 0.8
        assert assign_archetype(agent) == SCHEMING_NOBLE
        agent.soul.drive = 0.2
        assert assign_archetype(agent) == DEVOUT_TRADITIONALIST


class TestDailyGrowth:
    def test_growth_applied(self):
        agent = _make_agent(Occupation.SCHOLAR, 0.3, archetype=CURIOUS_SCHOLAR)
        assert apply_daily_growth(agent)
        assert agent.soul.coherence == pytest.approx(
            0.3 + ARCHETYPES[CURIOUS_SCHOLAR].coherence_growth,
        )

    def test_unknown_archetype_no_growth(self):
        agent = _make_agent(Occupation.SCHOLAR, 0.3, archetype="Nobody")
        assert not apply_daily_growth(agent)
        assert agent.soul.coherence == 0.3

    def test_growth_is_clamped(self):
        agent = _make_agent(Occupation.SCHOLAR, 1.0, archetype=HEALER_SAGE)
        apply_daily_growth(agent)
        assert agent.soul.coherence == 1.0
