"""Probe runner: drives one checker to a terminal status within the deadline.

Only FAIL is retried. ON, OFF and UNKNOWN are reported on first sight.
Retries wait with exponential backoff (capped at ``max_delay``) and stop
when a non-FAIL status comes back, the deadline fires, or the attempt cap
is reached.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Executor
from dataclasses import dataclass

from .checker import invoke
from .deadline import Deadline
from .registry import Component
from .status import ComponentReport, ComponentResult, ComponentStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """How a probe retries a FAIL result.

    max_attempts counts the first call; None retries until the deadline.
    """

    max_attempts: int | None = 10
    delay: float = 0.02
    backoff: float = 2.0
    max_delay: float = 0.5

    def __post_init__(self) -> None:
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays must be non-negative")
        if self.backoff < 1:
            raise ValueError(f"backoff must be >= 1, got {self.backoff}")

    def delay_for(self, attempt: int) -> float:
        """Wait before attempt ``attempt + 1`` (attempt is 1-based)."""
        return min(self.delay * self.backoff ** (attempt - 1), self.max_delay)

    def exhausted(self, attempt: int) -> bool:
        return self.max_attempts is not None and attempt >= self.max_attempts


NO_RETRY = RetryPolicy(max_attempts=1)


def timeout_report(name: str, deadline: Deadline, started: float) -> ComponentReport:
    return ComponentReport(
        name=name,
        status=ComponentStatus.TIMEOUT,
        description=deadline.error or "deadline exceeded",
        duration=time.perf_counter() - started,
    )


async def run_probe(
    component: Component,
    deadline: Deadline,
    started: float,
    policy: RetryPolicy = RetryPolicy(),
    executor: Executor | None = None,
) -> ComponentReport:
    """Run ``component``'s checker until it yields a reportable result.

    ``started`` is the perf_counter() value taken when the whole check call
    began; the report's duration is measured from it.
    """
    attempt = 0
    while True:
        attempt += 1
        result: ComponentResult = await invoke(component.checker, deadline, executor)

        if result.status is not ComponentStatus.FAIL:
            return ComponentReport.from_result(
                component.name, result, time.perf_counter() - started,
            )

        if deadline.expired:
            logger.warning(
                "Component %s still failing at deadline after %d attempts: %s",
                component.name, attempt, result.description,
            )
            return timeout_report(component.name, deadline, started)

        if policy.exhausted(attempt):
            logger.debug(
                "Component %s failed %d attempts, giving up: %s",
                component.name, attempt, result.description,
            )
            return ComponentReport.from_result(
                component.name, result, time.perf_counter() - started,
            )

        logger.debug(
            "Component %s failed (attempt %d): %s", component.name, attempt, result.description,
        )
        if not await deadline.sleep(policy.delay_for(attempt)):
            return timeout_report(component.name, deadline, started)
