"""Pydantic models for the verbose health endpoint."""

from __future__ import annotations

from pydantic import BaseModel

from vitals.health.status import ComponentReport, OverallReport


class ComponentHealth(BaseModel):
    component_name: str
    status: str  # on | off | fail | timeout | unknown
    description: str
    stats: dict[str, int] | None = None
    duration_ms: float

    @classmethod
    def from_report(cls, report: ComponentReport) -> ComponentHealth:
        return cls(**report.to_dict())


class HealthResponse(BaseModel):
    status: str  # SERVING | NOT_SERVING | UNKNOWN
    stats: dict[str, int]
    components: list[ComponentHealth]
    duration_ms: float

    @classmethod
    def from_report(cls, report: OverallReport) -> HealthResponse:
        return cls(
            status=report.status.value,
            stats=dict(report.stats),
            components=[ComponentHealth.from_report(c) for c in report.components],
            duration_ms=round(report.duration * 1000, 1),
        )
