"""
FastAPI application factory for the world API.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from worldsim.api.routers import interventions, world

if TYPE_CHECKING:
    from worldsim.runner import WorldRunner

# Load .env from the project root, then the working directory
_project_root = Path(__file__).resolve().parents[3]  # src/worldsim/api/app.py -> project root
load_dotenv(_project_root / ".env")
load_dotenv(Path.cwd() / ".env")


def create_app(runner: WorldRunner | None = None) -> FastAPI:
    """Create the API around *runner*, building one from the environment if omitted."""
    if runner is None:
        from worldsim.runner import WorldRunner

        runner = WorldRunner.from_env()

    application = FastAPI(
        title="Crossworlds World API",
        description="Read-only views and bounded interventions for a running world",
        version="0.1.0",
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.state.runner = runner

    application.include_router(world.router, prefix="/api/world", tags=["world"])
    application.include_router(
        interventions.router, prefix="/api/interventions", tags=["interventions"],
    )

    @application.get("/api/health")
    def health_check():
        return {"status": "ok", "tick": runner.sim.tick}

    return application
