"""World status, metrics, agent and settlement endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request

from worldsim.api.schemas import AgentPage, MetricsResponse, StepRequest, WorldStatus

router = APIRouter()


def _summarize(a: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": a["id"],
        "name": a["name"],
        "age": a["age"],
        "occupation": a["occupation"],
        "home_settlement_id": a["home_settlement_id"],
        "tier": a["tier"],
        "archetype": a["archetype"],
        "wealth": a["wealth"],
        "health": a["health"],
        "is_alive": a["is_alive"],
        "satisfaction": a["wellbeing"]["satisfaction"],
        "effective_mood": a["wellbeing"]["effective_mood"],
        "coherence": a["soul"]["coherence"],
        "last_action": a["last_action"],
    }


@router.get("", response_model=WorldStatus)
def get_status(request: Request) -> dict[str, Any]:
    runner = request.app.state.runner
    sim = runner.sim
    return {
        "world_name": sim.config.world_name,
        "tick": sim.tick,
        "sim_time": sim.sim_time,
        "season": sim.season.value,
        "population": sum(s["population"] for s in sim.settlements_snapshot()),
        "running": runner.running,
    }


@router.post("/step", response_model=WorldStatus)
def step_world(req: StepRequest, request: Request) -> dict[str, Any]:
    """Advance a paused world by hand."""
    runner = request.app.state.runner
    if runner.running:
        raise HTTPException(status_code=409, detail="World is running; stop it before stepping")
    runner.sim.run_ticks(req.n)
    return get_status(request)


@router.get("/metrics", response_model=MetricsResponse)
def get_metrics(request: Request) -> dict[str, Any]:
    return request.app.state.runner.sim.metrics().to_dict()


@router.get("/metrics/history", response_model=list[MetricsResponse])
def get_metrics_history(request: Request) -> list[dict[str, Any]]:
    return [m.to_dict() for m in request.app.state.runner.sim.metrics_history]


@router.get("/agents", response_model=AgentPage)
def list_agents(
    request: Request,
    alive_only: bool = Query(True),
    settlement_id: int | None = Query(None),
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
) -> dict[str, Any]:
    agents = request.app.state.runner.sim.agents_snapshot(living_only=alive_only)
    if settlement_id is not None:
        agents = [a for a in agents if a["home_settlement_id"] == settlement_id]
    return {
        "agents": [_summarize(a) for a in agents[offset:offset + limit]],
        "total": len(agents),
        "offset": offset,
        "limit": limit,
    }


@router.get("/agents/{agent_id}")
def get_agent(agent_id: int, request: Request) -> dict[str, Any]:
    agent = request.app.state.runner.sim.agent_snapshot(agent_id)
    if agent is None:
        raise HTTPException(status_code=404, detail=f"Agent {agent_id} not found")
    return agent


@router.get("/settlements")
def list_settlements(request: Request) -> list[dict[str, Any]]:
    return request.app.state.runner.sim.settlements_snapshot()


@router.get("/events")
def list_events(request: Request) -> list[dict[str, Any]]:
    return request.app.state.runner.sim.events_snapshot()
