"""
Prompt building and response parsing for weekly tier-2 plans.
"""

from __future__ import annotations

import json
from typing import Any

from worldsim.core.actions import Action, ActionKind


PLAN_ACTIONS: frozenset[str] = frozenset({
    "work", "trade", "socialize", "rest", "forage", "eat", "idle",
})
MAX_PLAN_ACTIONS = 3


# ---------------------------------------------------------------------------
# System prompt
# ---------------------------------------------------------------------------

PLAN_SYSTEM_PROMPT = """You are {name}, a {age}-year-old {occupation} living in {settlement}. You feel {mood}.
Your coherence is {coherence:.2f} ({band}). You have {wealth} crowns, {food} meals of food and your health is {health:.2f}.

You exist in Crossworlds, an early-industrial world shaped by emanationist philosophy.
Every soul carries coherence: scattered souls react to circumstances, while unified souls shape them.
Make decisions that reflect your personality, circumstances, and inner state.

Respond ONLY with a JSON array of 1-3 actions. Each action has:
- "action": one of "work", "trade", "socialize", "rest", "forage", "eat", "idle"
- "target": who or what the action targets (a name, good, or topic)
- "reasoning": one sentence explaining why

Valid actions:
- work: practise your trade for the week
- trade: buy or sell goods at the market
- socialize: spend time with neighbours
- rest: recover your strength
- forage: gather food from the land
- eat: eat from your stores
- idle: do nothing in particular

You will repeat these actions in turn all week, so include food if you are hungry."""


def build_system_prompt(context: dict[str, Any]) -> str:
    fields = {
        "name": "A stranger", "age": 30, "occupation": "laborer",
        "settlement": "the wilds", "mood": "uneasy", "coherence": 0.0,
        "band": "torment", "wealth": 0, "food": 0, "health": 1.0,
    }
    fields.update({k: v for k, v in context.items() if v is not None})
    return PLAN_SYSTEM_PROMPT.format(**fields)


def build_user_prompt(context: dict[str, Any]) -> str:
    lines = [
        f"It is {context.get('season', 'spring')} in {context.get('settlement', 'the wilds')}. "
        f"The settlement treasury holds {context.get('treasury', 0)} crowns.",
    ]
    if context.get("archetype"):
        lines.append(f"People know you as a {context['archetype'].replace('_', ' ')}.")
    lines.append("")
    lines.append("What do you do this week? Respond with a JSON array of 1-3 actions.")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_plan(text: str, agent_id: int) -> list[Action]:
    """
    Extract the action array from a model reply.

    Anything outside the first ``[`` and the last ``]`` is ignored.  At most
    three entries are read, and entries naming an unknown action are
    dropped.  Raises ``ValueError`` when no array can be decoded.
    """
    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end <= start:
        raise ValueError("no JSON array in response")
    try:
        decoded = json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        raise ValueError(f"bad JSON array: {e}") from None
    if not isinstance(decoded, list):
        raise ValueError("response is not a JSON array")

    plan: list[Action] = []
    for entry in decoded[:MAX_PLAN_ACTIONS]:
        if not isinstance(entry, dict):
            continue
        kind = str(entry.get("action", "")).strip().lower()
        if kind not in PLAN_ACTIONS:
            continue
        detail = str(entry.get("reasoning") or entry.get("target") or "")
        plan.append(Action(agent_id, ActionKind(kind), detail))
    return plan
