"""Probe endpoints for orchestrators and humans.

Endpoints (paths configurable, see Settings):
  GET /liveness    process is up; never consults the registry
  GET /readiness   200 "OK" when SERVING, 503 + failing components otherwise
  GET /health      full report as JSON (?timeout= overrides the deadline)

See https://kubernetes.io/docs/tasks/configure-pod-container/configure-liveness-readiness-probes/
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Query, Request
from fastapi.responses import PlainTextResponse

from vitals.api.models import HealthResponse
from vitals.config import settings
from vitals.health import ComponentStatus, HealthEngine, OverallReport

logger = logging.getLogger(__name__)


def _engine(request: Request) -> HealthEngine:
    return request.app.state.health


def render_failures(report: OverallReport) -> str:
    """One diagnostic line per failed or timed-out component."""
    lines = []
    for c in report.failing():
        if c.status is ComponentStatus.TIMEOUT:
            lines.append(f"- {c.name} {c.status.value}: {c.description} {c.duration * 1000:.1f}ms")
        else:
            lines.append(f"- {c.name} {c.status.value}: {c.description}")
    return "\n".join(lines)


def liveness() -> PlainTextResponse:
    """Transport check only, the process answers requests."""
    return PlainTextResponse("OK")


async def readiness(request: Request) -> PlainTextResponse:
    """Ability to provide service: 503 unless the aggregate is SERVING."""
    report = await _engine(request).check(timeout=settings.check_timeout)
    if report.serving:
        return PlainTextResponse("OK")

    logger.info("Readiness NOT_SERVING: %s", report.stats)
    return PlainTextResponse(render_failures(report), status_code=503)


async def health(
    request: Request,
    timeout: float | None = Query(default=None, gt=0, le=60),
) -> HealthResponse:
    """Full report of every registered component."""
    report = await _engine(request).check(timeout=timeout or settings.check_timeout)
    return HealthResponse.from_report(report)


def create_health_router(
    liveness_path: str = "",
    readiness_path: str = "",
    health_path: str = "",
) -> APIRouter:
    """Router with the three probe endpoints; empty paths fall back to defaults."""
    router = APIRouter()
    router.add_api_route(liveness_path or "/liveness", liveness, methods=["GET"])
    router.add_api_route(readiness_path or "/readiness", readiness, methods=["GET"])
    router.add_api_route(
        health_path or "/health", health, methods=["GET"], response_model=HealthResponse,
    )
    return router
