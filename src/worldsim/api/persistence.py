"""
SQLite-backed world persistence.

One row per world: metadata columns for cheap listing plus the full
``Simulation.to_state()`` as a zlib-compressed JSON blob.  Loading rebuilds a
``Simulation``, which re-runs its startup validation.

Storage failures are logged as warnings and reported through return values;
they never stop a running world.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import zlib
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import numpy as np

from worldsim.core.simulation import Simulation

if TYPE_CHECKING:
    from worldsim.core.cognition import Delegate

logger = logging.getLogger(__name__)


def _json_fallback(obj: Any) -> Any:
    """numpy scalars and arrays that slip into the state."""
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")


def compress_state(state: dict[str, Any]) -> bytes:
    return zlib.compress(json.dumps(state, default=_json_fallback).encode("utf-8"), level=6)


def decompress_state(blob: bytes) -> dict[str, Any]:
    return json.loads(zlib.decompress(blob).decode("utf-8"))


_SCHEMA = """
CREATE TABLE IF NOT EXISTS worlds (
    id TEXT PRIMARY KEY,
    tick INTEGER NOT NULL DEFAULT 0,
    sim_time TEXT NOT NULL DEFAULT '',
    population INTEGER NOT NULL DEFAULT 0,
    total_crowns INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    config_json TEXT NOT NULL,
    state_blob BLOB
);
"""


class WorldStore:
    """SQLite storage for simulated worlds.

    Opened with ``check_same_thread=False`` so the runner thread and the
    API's worker threads can share it.
    """

    def __init__(self, db_path: str = "data/worldsim.db"):
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None
        try:
            self._conn = sqlite3.connect(db_path, check_same_thread=False)
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute(_SCHEMA)
            self._conn.commit()
        except sqlite3.Error:
            logger.warning(
                "Failed to open SQLite database at %s; worlds will not be saved",
                db_path, exc_info=True,
            )
            self._conn = None

    @property
    def available(self) -> bool:
        return self._conn is not None

    def save_world(self, sim: Simulation, world_id: str | None = None) -> bool:
        """Insert or replace the world; returns False when nothing was written."""
        if not self.available:
            return False
        world_id = world_id or sim.config.world_name
        now = datetime.now(timezone.utc).isoformat()
        try:
            state = sim.to_state()
            blob = compress_state(state)
            living = [a for a in state["agents"] if a["is_alive"]]
            crowns = sum(a["wealth"] for a in living) + sum(
                s["treasury"] for s in state["settlements"]
            )
            self._conn.execute(  # type: ignore[union-attr]
                """
                INSERT INTO worlds
                    (id, tick, sim_time, population, total_crowns,
                     created_at, updated_at, config_json, state_blob)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    tick = excluded.tick,
                    sim_time = excluded.sim_time,
                    population = excluded.population,
                    total_crowns = excluded.total_crowns,
                    updated_at = excluded.updated_at,
                    config_json = excluded.config_json,
                    state_blob = excluded.state_blob
                """,
                (
                    world_id, int(state["tick"]), sim.calendar.sim_time(state["tick"]),
                    len(living), crowns, now, now,
                    sim.config.to_json(), blob,
                ),
            )
            self._conn.commit()  # type: ignore[union-attr]
        except (sqlite3.Error, TypeError, ValueError):
            logger.warning("Failed to save world %s", world_id, exc_info=True)
            return False
        logger.info("Saved world %s at tick %d", world_id, state["tick"])
        return True

    def load_world(
        self, world_id: str, delegate: Delegate | None = None,
    ) -> Simulation | None:
        """Rebuild a saved world, or None when it is missing or unreadable.

        A blob that decodes but fails startup validation raises
        ``CorruptStateError``; resuming a broken world is never silent.
        """
        if not self.available:
            return None
        try:
            row = self._conn.execute(  # type: ignore[union-attr]
                "SELECT state_blob FROM worlds WHERE id = ?", (world_id,),
            ).fetchone()
        except sqlite3.Error:
            logger.warning("Failed to load world %s", world_id, exc_info=True)
            return None
        if row is None or row[0] is None:
            return None
        try:
            state = decompress_state(row[0])
        except (zlib.error, ValueError):
            logger.warning("World %s has an unreadable state blob", world_id, exc_info=True)
            return None
        return Simulation.from_state(state, delegate=delegate)

    def list_worlds(self) -> list[dict[str, Any]]:
        if not self.available:
            return []
        try:
            rows = self._conn.execute(  # type: ignore[union-attr]
                """
                SELECT id, tick, sim_time, population, total_crowns, created_at, updated_at
                FROM worlds ORDER BY updated_at DESC
                """,
            ).fetchall()
        except sqlite3.Error:
            logger.warning("Failed to list worlds", exc_info=True)
            return []
        return [
            {
                "id": r[0],
                "tick": r[1],
                "sim_time": r[2],
                "population": r[3],
                "total_crowns": r[4],
                "created_at": r[5],
                "updated_at": r[6],
            }
            for r in rows
        ]

    def delete_world(self, world_id: str) -> bool:
        if not self.available:
            return False
        try:
            self._conn.execute("DELETE FROM worlds WHERE id = ?", (world_id,))  # type: ignore[union-attr]
            self._conn.commit()  # type: ignore[union-attr]
        except sqlite3.Error:
            logger.warning("Failed to delete world %s", world_id, exc_info=True)
            return False
        return True

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
