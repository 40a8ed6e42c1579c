"""FastAPI server exposing the health probe endpoints."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from vitals.api.health_routes import create_health_router
from vitals.components import load_components, register_components
from vitals.config import settings
from vitals.health import HealthEngine

logger = logging.getLogger(__name__)


def build_engine() -> HealthEngine:
    """Engine configured from settings with the components file registered."""
    engine = HealthEngine(retry=settings.retry_policy())
    register_components(engine, load_components(Path(settings.components_file)))
    return engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the health engine on startup unless one was passed in."""
    if getattr(app.state, "health", None) is None:
        app.state.health = build_engine()
    names = app.state.health.registry.names()
    logger.info("Health engine ready: %d components %s", len(names), names)

    yield


def create_app(engine: HealthEngine | None = None) -> FastAPI:
    app = FastAPI(
        title="vitals - health aggregation",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.health = engine

    app.include_router(create_health_router(
        settings.liveness_path,
        settings.readiness_path,
        settings.health_path,
    ))

    return app


app = create_app()
