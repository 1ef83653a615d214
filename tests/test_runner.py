"""Tests for WorldRunner and the worldsim command line."""

import json
import time

import pytest

from worldsim.api.persistence import WorldStore
from worldsim.core.config import WorldConfig
from worldsim.core.simulation import Simulation
from worldsim.runner import WorldRunner, build_delegate, main


def _make_config(**overrides) -> WorldConfig:
    defaults = dict(settlement_count=2, agents_per_settlement=5, random_seed=3)
    defaults.update(overrides)
    return WorldConfig(**defaults)


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = str(tmp_path / "runner.db")
    monkeypatch.setenv("WORLDSIM_DB_PATH", path)
    monkeypatch.delenv("WORLDSIM_LLM_PROVIDER", raising=False)
    return path


class TestRun:
    def test_run_saves_once_stopped(self, tmp_path):
        store = WorldStore(str(tmp_path / "w.db"))
        runner = WorldRunner(Simulation.seeded(_make_config()), store)
        assert runner.run(max_ticks=10) == 10
        assert runner.last_save_ok is True
        rows = store.list_worlds()
        assert [(r["id"], r["tick"]) for r in rows] == [("crossworlds", 10)]
        store.close()

    def test_run_without_store(self):
        runner = WorldRunner(Simulation.seeded(_make_config()))
        runner.run(max_ticks=3)
        assert runner.sim.tick == 3
        assert runner.last_save_ok is False

    def test_background_stop(self, tmp_path):
        store = WorldStore(str(tmp_path / "bg.db"))
        runner = WorldRunner(Simulation.seeded(_make_config()), store, world_id="bg")
        runner.start_background()
        deadline = time.monotonic() + 10.0
        while runner.sim.tick < 5 and time.monotonic() < deadline:
            time.sleep(0.01)
        runner.stop(wait=True, timeout=10.0)

        assert not runner.running
        assert runner.last_save_ok is True
        saved = store.load_world("bg")
        assert saved.tick == runner.sim.tick
        store.close()

    def test_stop_before_run(self):
        runner = WorldRunner(Simulation.seeded(_make_config()))
        runner.stop()
        thread = runner.start_background(max_ticks=2)
        thread.join(10.0)
        assert runner.sim.tick == 2


class TestFromEnv:
    def test_seeds_new_world(self, db_path):
        runner = WorldRunner.from_env(_make_config())
        assert runner.sim.tick == 0
        assert runner.store.db_path == db_path
        assert runner.sim.delegate is None

    def test_resumes_saved_world(self, db_path):
        first = WorldRunner.from_env(_make_config())
        first.run(max_ticks=7)
        first.store.close()

        second = WorldRunner.from_env(_make_config())
        assert second.sim.tick == 7
        assert second.sim.agents_snapshot(False) == first.sim.agents_snapshot(False)
        second.store.close()

    def test_unknown_provider_disables_delegate(self, db_path, monkeypatch):
        monkeypatch.setenv("WORLDSIM_LLM_PROVIDER", "carrier-pigeon")
        runner = WorldRunner.from_env(_make_config())
        assert runner.sim.delegate is None
        assert runner.sim.config.llm_provider == "carrier-pigeon"

    def test_build_delegate(self, monkeypatch):
        assert build_delegate(_make_config()) is None
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        assert build_delegate(_make_config(llm_provider="anthropic")) is None
        assert build_delegate(_make_config(llm_provider="ollama")) is not None


class TestMain:
    def test_headless_run(self, db_path):
        assert main(["--ticks", "5", "--seed", "3", "--log-level", "warning"]) == 0
        store = WorldStore(db_path)
        assert store.load_world("crossworlds").tick == 5
        store.close()

    def test_config_file(self, db_path, tmp_path):
        cfg = tmp_path / "world.json"
        cfg.write_text(json.dumps({
            "world_name": "cfgtest", "settlement_count": 1, "agents_per_settlement": 4,
        }))
        assert main(["--config", str(cfg), "--ticks", "2"]) == 0
        store = WorldStore(db_path)
        loaded = store.load_world("cfgtest")
        assert loaded.tick == 2
        assert len(loaded.settlements) == 1
        store.close()
