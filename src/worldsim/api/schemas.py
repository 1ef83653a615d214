"""
Pydantic models for API request/response validation.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


# === World ===

class WorldStatus(BaseModel):
    world_name: str
    tick: int
    sim_time: str
    season: str
    population: int
    running: bool


class StepRequest(BaseModel):
    n: int = Field(1, ge=1, le=100_000)


class MetricsResponse(BaseModel):
    tick: int
    sim_time: str
    population: int
    deaths: int
    avg_satisfaction: float
    avg_alignment: float
    avg_effective_mood: float
    avg_survival: float
    avg_coherence: float
    avg_needs_satisfaction: float
    total_agent_wealth: int
    total_treasury: int
    total_crowns: int
    gini: float
    trade_volume: int
    band_counts: dict[str, int]
    settlement_health: dict[int, float]


# === Agents ===

class AgentSummary(BaseModel):
    id: int
    name: str
    age: int
    occupation: str
    home_settlement_id: int
    tier: int
    archetype: str | None
    wealth: int
    health: float
    is_alive: bool
    satisfaction: float
    effective_mood: float
    coherence: float
    last_action: str | None


class AgentPage(BaseModel):
    agents: list[AgentSummary]
    total: int
    offset: int
    limit: int


# === Interventions ===

class InterventionRequest(BaseModel):
    kind: Literal["adjust_treasury", "spawn_agents", "provision", "cultivate", "consolidate"]
    settlement_id: int
    delta: int | None = None
    count: int | None = None
    good: str | None = None
    quantity: int | None = None
    multiplier: float | None = None
    duration_days: int | None = None
    target_settlement_id: int | None = None


class InterventionAccepted(BaseModel):
    status: str = "queued"
    applies_at_tick: int
    intervention: dict[str, Any]
