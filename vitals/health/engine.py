"""Health engine: registry + concurrent probing + aggregation behind one object.

Typical use:

    engine = HealthEngine()
    engine.register("db", SQLiteChecker(conn))
    engine.register("search", HttpChecker(url), Presence.OPTIONAL)

    report = await engine.check(timeout=2.0)
    if report.serving:
        ...

One engine is normally created per process and handed to whatever needs
it (the HTTP routes read it from ``app.state.health``).
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor

from .aggregator import aggregate
from .checker import Checker
from .deadline import Deadline
from .dispatcher import dispatch
from .probe import RetryPolicy
from .registry import Registry
from .status import OverallReport, Presence

logger = logging.getLogger(__name__)


class HealthEngine:
    """Aggregates the health of registered components into one verdict."""

    def __init__(
        self,
        registry: Registry | None = None,
        retry: RetryPolicy | None = None,
    ) -> None:
        self.registry = registry if registry is not None else Registry()
        self.retry = retry or RetryPolicy()

    def register(
        self,
        name: str,
        checker: Checker,
        presence: Presence = Presence.REQUIRED,
    ) -> None:
        """Add a component. Raises AlreadyRegistered if the name is taken."""
        self.registry.register(name, checker, presence)

    def unregister(self, name: str) -> None:
        self.registry.unregister(name)

    async def check(
        self,
        timeout: float | None = None,
        *,
        deadline: Deadline | None = None,
        retry: RetryPolicy | None = None,
    ) -> OverallReport:
        """Probe every registered component concurrently and aggregate.

        Bounded by ``deadline`` if given, else by a fresh Deadline of
        ``timeout`` seconds (None = no time limit). Never raises for
        component problems: failures and timeouts are reported as statuses.
        """
        started = time.perf_counter()
        if deadline is None:
            deadline = Deadline(timeout)

        components = self.registry.snapshot()
        presence = {c.name: c.presence for c in components}

        # one worker per component: a hung sync checker must not queue the
        # others, and threads abandoned at the deadline are never reused
        executor = ThreadPoolExecutor(
            max_workers=max(len(components), 1), thread_name_prefix="health",
        )
        try:
            report = await aggregate(
                dispatch(components, deadline, started, retry or self.retry, executor),
                presence,
                started,
            )
        finally:
            executor.shutdown(wait=False)
        logger.debug(
            "Health check: %s %s in %.1fms",
            report.status.value, report.stats, report.duration * 1000,
        )
        return report
