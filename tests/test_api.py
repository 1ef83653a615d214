"""Integration tests for the world REST API."""

import pytest
from fastapi.testclient import TestClient

from worldsim.api.app import create_app
from worldsim.api.persistence import WorldStore
from worldsim.core.config import WorldConfig
from worldsim.core.simulation import Simulation
from worldsim.runner import WorldRunner


@pytest.fixture
def runner(tmp_path):
    config = WorldConfig(
        settlement_count=2, agents_per_settlement=10, random_seed=5,
        ticks_per_hour=2, ticks_per_day=4, ticks_per_week=28, ticks_per_season=100,
    )
    store = WorldStore(str(tmp_path / "api.db"))
    yield WorldRunner(Simulation.seeded(config), store)
    store.close()


@pytest.fixture
def client(runner):
    return TestClient(create_app(runner))


class TestHealthCheck:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "tick": 0}


class TestWorldStatus:
    def test_status(self, client):
        data = client.get("/api/world").json()
        assert data["world_name"] == "crossworlds"
        assert data["tick"] == 0
        assert data["sim_time"] == "Spring Day 1, 0:00 Year 1"
        assert data["season"] == "spring"
        assert data["population"] == 20
        assert data["running"] is False

    def test_step(self, client):
        resp = client.post("/api/world/step", json={"n": 5})
        assert resp.status_code == 200
        assert resp.json()["tick"] == 5
        assert client.get("/api/health").json()["tick"] == 5

    def test_step_default_is_one(self, client):
        assert client.post("/api/world/step", json={}).json()["tick"] == 1

    def test_step_bounds(self, client):
        assert client.post("/api/world/step", json={"n": 0}).status_code == 422

    def test_step_while_running_conflicts(self, client, runner):
        runner.start_background()
        try:
            resp = client.post("/api/world/step", json={"n": 1})
            assert resp.status_code == 409
        finally:
            runner.stop(wait=True, timeout=10.0)
        assert not runner.running


class TestMetrics:
    def test_current_metrics(self, client, runner):
        data = client.get("/api/world/metrics").json()
        assert data["tick"] == 0
        assert data["population"] == 20
        assert data["total_crowns"] == runner.sim.total_crowns()
        assert set(data["band_counts"]) == {"torment", "well_being", "liberation"}
        assert 0.0 <= data["gini"] <= 1.0

    def test_history(self, client):
        assert client.get("/api/world/metrics/history").json() == []
        client.post("/api/world/step", json={"n": 8})
        history = client.get("/api/world/metrics/history").json()
        assert [m["tick"] for m in history] == [4, 8]


class TestAgents:
    def test_paging(self, client):
        data = client.get("/api/world/agents", params={"limit": 5, "offset": 3}).json()
        assert data["total"] == 20
        assert data["offset"] == 3
        assert [a["id"] for a in data["agents"]] == [4, 5, 6, 7, 8]
        assert {"coherence", "effective_mood", "tier", "last_action"} <= set(data["agents"][0])

    def test_filter_by_settlement(self, client):
        data = client.get("/api/world/agents", params={"settlement_id": 2}).json()
        assert data["total"] == 10
        assert all(a["home_settlement_id"] == 2 for a in data["agents"])

    def test_limit_bounds(self, client):
        assert client.get("/api/world/agents", params={"limit": 501}).status_code == 422

    def test_agent_detail(self, client):
        data = client.get("/api/world/agents/1").json()
        assert data["id"] == 1
        assert set(data["needs"]) == {"survival", "safety", "belonging", "esteem", "purpose"}
        assert "inventory" in data

    def test_agent_not_found(self, client):
        assert client.get("/api/world/agents/999").status_code == 404


class TestSettlementsAndEvents:
    def test_settlements(self, client):
        data = client.get("/api/world/settlements").json()
        assert [s["id"] for s in data] == [1, 2]
        assert all(s["treasury"] == 500 for s in data)
        assert len(data[0]["market"]["entries"]) == 15

    def test_events_start_empty(self, client):
        assert client.get("/api/world/events").json() == []


class TestInterventions:
    def test_queued_then_applied(self, client):
        resp = client.post("/api/interventions", json={
            "kind": "adjust_treasury", "settlement_id": 1, "delta": 10,
        })
        assert resp.status_code == 202
        data = resp.json()
        assert data["status"] == "queued"
        assert data["applies_at_tick"] == 1
        assert data["intervention"] == {
            "kind": "adjust_treasury", "settlement_id": 1, "delta": 10,
        }
        # not applied until the next tick
        assert client.get("/api/world/settlements").json()[0]["treasury"] == 500

        client.post("/api/world/step", json={"n": 1})
        assert client.get("/api/world/settlements").json()[0]["treasury"] == 510
        events = client.get("/api/world/events").json()
        assert events[-1]["category"] == "intervention"

    def test_provision(self, client):
        resp = client.post("/api/interventions", json={
            "kind": "provision", "settlement_id": 2, "good": "fish", "quantity": 20,
        })
        assert resp.status_code == 202
        client.post("/api/world/step", json={"n": 1})
        stock = client.get("/api/world/settlements").json()[1]["market"]["stock"]
        assert stock["fish"] == 20

    def test_spawn(self, client):
        resp = client.post("/api/interventions", json={
            "kind": "spawn_agents", "settlement_id": 1, "count": 2,
        })
        assert resp.status_code == 202
        client.post("/api/world/step", json={"n": 1})
        assert client.get("/api/world").json()["population"] == 22

    @pytest.mark.parametrize("body", [
        {"kind": "adjust_treasury", "settlement_id": 1, "delta": 10_000},
        {"kind": "adjust_treasury", "settlement_id": 1},
        {"kind": "provision", "settlement_id": 1, "good": "dragonscale", "quantity": 1},
        {"kind": "provision", "settlement_id": 1, "quantity": 1},
        {"kind": "cultivate", "settlement_id": 1, "multiplier": 5.0, "duration_days": 3},
        {"kind": "consolidate", "settlement_id": 1, "count": 3, "target_settlement_id": 1},
    ])
    def test_out_of_bounds(self, client, body):
        resp = client.post("/api/interventions", json=body)
        assert resp.status_code == 400
        assert resp.json()["detail"]

    def test_unknown_settlement(self, client):
        resp = client.post("/api/interventions", json={
            "kind": "spawn_agents", "settlement_id": 99, "count": 1,
        })
        assert resp.status_code == 404

    def test_unknown_target(self, client):
        resp = client.post("/api/interventions", json={
            "kind": "consolidate", "settlement_id": 1, "count": 1, "target_settlement_id": 42,
        })
        assert resp.status_code == 404

    @pytest.mark.parametrize("body", [
        {"kind": "meteor", "settlement_id": 1},
        {"kind": "spawn_agents", "count": 1},
    ])
    def test_malformed(self, client, body):
        assert client.post("/api/interventions", json=body).status_code == 422
