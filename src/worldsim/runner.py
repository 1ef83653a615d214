"""
Long-running world process.

``WorldRunner`` owns one ``Simulation`` plus its optional delegate and store.
``run()`` ticks until ``stop()`` is called (or SIGINT/SIGTERM arrives when
running on the main thread), lets the in-flight tick finish, then saves the
world exactly once.

``main()`` backs the ``worldsim`` console script: run headless for a number of
ticks, or serve the HTTP API while the world runs in a background thread.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import signal
import threading
from pathlib import Path

from dotenv import load_dotenv

from worldsim.api.persistence import WorldStore
from worldsim.core.config import WorldConfig
from worldsim.core.simulation import Simulation
from worldsim.llm.client import LLMUnavailableError, create_client
from worldsim.llm.delegate import ThreadedDelegate

logger = logging.getLogger(__name__)


def configure_logging(level: str | int = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


def build_delegate(config: WorldConfig) -> ThreadedDelegate | None:
    """A started delegate for ``config.llm_provider``, or None when unavailable."""
    if not config.llm_provider:
        return None
    try:
        client = create_client(config.llm_provider, config.llm_model)
    except (LLMUnavailableError, ValueError) as e:
        logger.warning("Delegate disabled: %s", e)
        return None
    return ThreadedDelegate(client, calls_per_minute=config.llm_calls_per_minute)


class WorldRunner:
    """Drives a simulation on the calling thread until told to stop."""

    def __init__(
        self,
        sim: Simulation,
        store: WorldStore | None = None,
        tick_interval: float = 0.0,
        world_id: str | None = None,
    ) -> None:
        self.sim = sim
        self.store = store
        self.tick_interval = tick_interval
        self.world_id = world_id or sim.config.world_name
        self.last_save_ok: bool | None = None
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @classmethod
    def from_env(
        cls, config: WorldConfig | None = None, tick_interval: float = 0.0,
    ) -> WorldRunner:
        """Resume the saved world named by the config, or seed a new one."""
        config = config or WorldConfig()
        provider = os.environ.get("WORLDSIM_LLM_PROVIDER")
        if provider and not config.llm_provider:
            config = config.replace(llm_provider=provider)

        db_path = os.environ.get("WORLDSIM_DB_PATH", "data/worldsim.db")
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        store = WorldStore(db_path)
        delegate = build_delegate(config)

        sim = store.load_world(config.world_name, delegate=delegate)
        if sim is None:
            sim = Simulation.seeded(config, delegate=delegate)
        else:
            logger.info("Resumed world %s at tick %d", config.world_name, sim.tick)
        return cls(sim, store, tick_interval)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run(self, max_ticks: int | None = None) -> int:
        """Tick until stopped or *max_ticks* have run; returns ticks executed."""
        self._stop.clear()
        previous: dict[int, object] = {}
        if threading.current_thread() is threading.main_thread():
            for signum in (signal.SIGINT, signal.SIGTERM):
                previous[signum] = signal.signal(signum, self._handle_signal)

        delegate = self.sim.delegate
        if isinstance(delegate, ThreadedDelegate):
            delegate.start()
        logger.info("World %s starting at tick %d", self.world_id, self.sim.tick)
        try:
            executed = self.sim.scheduler.run(
                self._stop, max_ticks, self.tick_interval, step=self.sim.advance_tick,
            )
        finally:
            if isinstance(delegate, ThreadedDelegate):
                delegate.stop()
            self.last_save_ok = self.save()
            for signum, handler in previous.items():
                if handler is not None:
                    signal.signal(signum, handler)
        logger.info("World %s stopped at tick %d", self.world_id, self.sim.tick)
        return executed

    def start_background(self, max_ticks: int | None = None) -> threading.Thread:
        self._thread = threading.Thread(
            target=self.run, args=(max_ticks,), name="worldsim-runner", daemon=True,
        )
        self._thread.start()
        return self._thread

    def stop(self, wait: bool = False, timeout: float | None = None) -> None:
        self._stop.set()
        if wait and self._thread is not None:
            self._thread.join(timeout)

    def save(self) -> bool:
        if self.store is None:
            return False
        ok = self.store.save_world(self.sim, self.world_id)
        if not ok:
            logger.warning("World %s was not saved", self.world_id)
        return ok

    def _handle_signal(self, signum, frame) -> None:
        logger.info("Received signal %d, stopping after the current tick", signum)
        self._stop.set()


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    load_dotenv(Path.cwd() / ".env")

    parser = argparse.ArgumentParser(description="Run a Crossworlds simulation")
    parser.add_argument("--config", type=Path, help="JSON file of WorldConfig overrides")
    parser.add_argument("--seed", type=int, help="Override the random seed")
    parser.add_argument("--ticks", type=int, help="Stop after this many ticks")
    parser.add_argument("--interval", type=float, default=0.0, help="Wall seconds per tick")
    parser.add_argument("--serve", action="store_true", help="Serve the HTTP API while running")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    configure_logging(args.log_level.upper())

    overrides = json.loads(args.config.read_text()) if args.config else {}
    if args.seed is not None:
        overrides["random_seed"] = args.seed
    runner = WorldRunner.from_env(WorldConfig.from_dict(overrides), args.interval)

    if args.serve:
        import uvicorn

        from worldsim.api.app import create_app

        runner.start_background(args.ticks)
        try:
            uvicorn.run(create_app(runner), host=args.host, port=args.port)
        finally:
            runner.stop(wait=True, timeout=30.0)
        return 0 if runner.last_save_ok is not False else 1

    runner.run(args.ticks)
    return 0 if runner.last_save_ok is not False else 1


if __name__ == "__main__":
    raise SystemExit(main())
