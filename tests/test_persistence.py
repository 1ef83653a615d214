"""
Tests for SQLite world persistence.

Covers state blob compression, WorldStore CRUD, resuming a saved world, and
the failure paths (unavailable database, unreadable or invalid blobs).
"""

from __future__ import annotations

import numpy as np
import pytest

from worldsim.api.persistence import WorldStore, compress_state, decompress_state
from worldsim.core.config import WorldConfig
from worldsim.core.simulation import CorruptStateError, Simulation


# =====================================================================
# Helpers
# =====================================================================

def _make_config(**overrides) -> WorldConfig:
    defaults = {"random_seed": 42, "settlement_count": 2, "agents_per_settlement": 8}
    defaults.update(overrides)
    return WorldConfig(**defaults)


def _make_sim(ticks: int = 10, **overrides) -> Simulation:
    sim = Simulation.seeded(_make_config(**overrides))
    sim.run_ticks(ticks)
    return sim


@pytest.fixture
def store(tmp_path):
    s = WorldStore(str(tmp_path / "worlds.db"))
    yield s
    s.close()


# =====================================================================
# Blob compression
# =====================================================================

class TestCompression:
    def test_roundtrip(self):
        state = {"tick": 5, "agents": [{"id": 1, "wealth": 10}], "name": "x"}
        assert decompress_state(compress_state(state)) == state

    def test_numpy_values(self):
        state = {"a": np.int64(3), "b": np.float64(0.5), "c": np.arange(3)}
        assert decompress_state(compress_state(state)) == {"a": 3, "b": 0.5, "c": [0, 1, 2]}

    def test_compresses(self):
        state = {"agents": [{"id": i, "name": "Agent"} for i in range(500)]}
        assert len(compress_state(state)) < len(str(state))

    def test_unknown_type_rejected(self):
        with pytest.raises(TypeError):
            compress_state({"x": object()})


# =====================================================================
# WorldStore
# =====================================================================

class TestWorldStore:
    def test_save_and_list(self, store):
        sim = _make_sim()
        assert store.save_world(sim)
        rows = store.list_worlds()
        assert len(rows) == 1
        row = rows[0]
        assert row["id"] == "crossworlds"
        assert row["tick"] == 10
        assert row["sim_time"] == sim.sim_time
        assert row["population"] == len(sim.living_agents())
        assert row["total_crowns"] == sim.total_crowns()

    def test_save_is_upsert(self, store):
        sim = _make_sim()
        store.save_world(sim)
        sim.run_ticks(5)
        store.save_world(sim)
        rows = store.list_worlds()
        assert len(rows) == 1
        assert rows[0]["tick"] == 15

    def test_separate_ids(self, store):
        sim = _make_sim()
        store.save_world(sim, "first")
        store.save_world(sim, "second")
        assert {r["id"] for r in store.list_worlds()} == {"first", "second"}

    def test_load_restores_world(self, store):
        sim = _make_sim(ticks=30)
        store.save_world(sim)
        loaded = store.load_world("crossworlds")
        assert loaded is not None
        assert loaded.tick == 30
        assert loaded.agents_snapshot(living_only=False) == sim.agents_snapshot(living_only=False)
        assert loaded.settlements_snapshot() == sim.settlements_snapshot()
        assert loaded.config == sim.config

    def test_missing_world(self, store):
        assert store.load_world("nope") is None

    def test_delete(self, store):
        store.save_world(_make_sim())
        assert store.delete_world("crossworlds")
        assert store.list_worlds() == []
        assert store.load_world("crossworlds") is None

    def test_survives_reopen(self, tmp_path):
        path = str(tmp_path / "reopen.db")
        first = WorldStore(path)
        first.save_world(_make_sim())
        first.close()

        second = WorldStore(path)
        try:
            assert second.load_world("crossworlds").tick == 10
        finally:
            second.close()


class TestFailures:
    def test_unavailable_database(self, tmp_path):
        s = WorldStore(str(tmp_path / "no_such_dir" / "worlds.db"))
        assert not s.available
        assert s.save_world(_make_sim(ticks=1)) is False
        assert s.load_world("crossworlds") is None
        assert s.list_worlds() == []
        assert s.delete_world("crossworlds") is False

    def test_unreadable_blob(self, store):
        store.save_world(_make_sim(ticks=1))
        store._conn.execute("UPDATE worlds SET state_blob = ?", (b"not zlib",))
        store._conn.commit()
        assert store.load_world("crossworlds") is None

    def test_invalid_state_raises(self, store):
        sim = _make_sim(ticks=1)
        state = sim.to_state()
        state["agents"][0]["tier"] = 7
        store.save_world(sim)
        store._conn.execute("UPDATE worlds SET state_blob = ?", (compress_state(state),))
        store._conn.commit()
        with pytest.raises(CorruptStateError):
            store.load_world("crossworlds")

    def test_closed_store(self, tmp_path):
        s = WorldStore(str(tmp_path / "closed.db"))
        s.close()
        assert not s.available
        assert s.save_world(_make_sim(ticks=1)) is False
