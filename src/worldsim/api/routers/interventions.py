"""Bounded intervention endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request

from worldsim.api.schemas import InterventionAccepted, InterventionRequest
from worldsim.core import interventions as iv
from worldsim.core.interventions import Intervention, InterventionError, UnknownSettlementError

router = APIRouter()


def _build(req: InterventionRequest) -> Intervention:
    """Map the request body onto an intervention; missing fields become invalid values."""
    if req.kind == "adjust_treasury":
        return iv.adjust_treasury(req.settlement_id, req.delta or 0)
    if req.kind == "spawn_agents":
        return iv.spawn_agents(req.settlement_id, req.count or 0)
    if req.kind == "provision":
        if not req.good:
            raise InterventionError("Provision needs a good")
        return iv.provision(req.settlement_id, req.good, req.quantity or 0)
    if req.kind == "cultivate":
        return iv.cultivate(
            req.settlement_id,
            req.multiplier if req.multiplier is not None else 0.0,
            req.duration_days or 0,
        )
    return iv.consolidate(req.settlement_id, req.count or 0, req.target_settlement_id)


@router.post("", response_model=InterventionAccepted, status_code=202)
def submit_intervention(req: InterventionRequest, request: Request) -> dict[str, Any]:
    sim = request.app.state.runner.sim
    try:
        intervention = _build(req)
        sim.submit(intervention)
    except UnknownSettlementError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InterventionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "status": "queued",
        "applies_at_tick": sim.tick + 1,
        "intervention": intervention.to_dict(),
    }
