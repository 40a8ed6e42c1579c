"""Status model: component / overall statuses and the report value objects."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# ── Enums ────────────────────────────────────────────────────────────────────


class ComponentStatus(str, Enum):
    """Health of a single component.

    ON       healthy and serving
    OFF      disabled by configuration or feature flag, not a failure
    FAIL     enabled but a dependency / config / smoke check failed
    TIMEOUT  no terminal result before the caller's deadline
    UNKNOWN  no determination made, counts as a failure when aggregating
    """

    UNKNOWN = "unknown"
    ON = "on"
    OFF = "off"
    FAIL = "fail"
    TIMEOUT = "timeout"


class OverallStatus(str, Enum):
    UNKNOWN = "UNKNOWN"
    SERVING = "SERVING"
    NOT_SERVING = "NOT_SERVING"


class Presence(str, Enum):
    """Whether a component's non-ON status alone forces NOT_SERVING."""

    REQUIRED = "required"
    OPTIONAL = "optional"


# ── Value objects ────────────────────────────────────────────────────────────


@dataclass
class ComponentResult:
    """Raw output of one checker invocation."""

    status: ComponentStatus
    description: str = ""
    stats: dict[str, int] = field(default_factory=dict)


@dataclass
class ComponentReport:
    """A ComponentResult tagged with its component name and elapsed time.

    ``duration`` is in seconds, measured from the start of the whole check
    call so reports from different components can be sorted against each
    other.
    """

    name: str
    status: ComponentStatus
    description: str = ""
    stats: dict[str, int] = field(default_factory=dict)
    duration: float = 0.0

    @classmethod
    def from_result(cls, name: str, result: ComponentResult, duration: float) -> ComponentReport:
        return cls(
            name=name,
            status=result.status,
            description=result.description,
            stats=dict(result.stats),
            duration=duration,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "component_name": self.name,
            "status": self.status.value,
            "description": self.description,
            "duration_ms": round(self.duration * 1000, 1),
        }
        if self.stats:
            data["stats"] = dict(self.stats)
        return data


@dataclass
class OverallReport:
    """Aggregated verdict of one check call."""

    status: OverallStatus = OverallStatus.UNKNOWN
    stats: dict[str, int] = field(default_factory=dict)
    components: list[ComponentReport] = field(default_factory=list)
    duration: float = 0.0

    @property
    def serving(self) -> bool:
        return self.status is OverallStatus.SERVING

    def failing(self) -> list[ComponentReport]:
        """Components that reported FAIL or TIMEOUT, in report order."""
        return [
            c for c in self.components
            if c.status in (ComponentStatus.FAIL, ComponentStatus.TIMEOUT)
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "stats": dict(self.stats),
            "components": [c.to_dict() for c in self.components],
            "duration_ms": round(self.duration * 1000, 1),
        }
