"""Dispatcher: one probe task per component, merged into a single stream."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from concurrent.futures import Executor

from .deadline import Deadline
from .probe import RetryPolicy, run_probe, timeout_report
from .registry import Component
from .status import ComponentReport

logger = logging.getLogger(__name__)


async def _race(
    component: Component,
    deadline: Deadline,
    started: float,
    policy: RetryPolicy,
    executor: Executor | None,
) -> ComponentReport:
    """Race the probe against the deadline.

    A probe that has already finished wins even if the deadline fired in
    the same loop iteration; otherwise the deadline yields a TIMEOUT report
    and the probe is cancelled. A sync checker already running on a worker
    thread can't be interrupted and is left to finish in the background.
    """
    probe = asyncio.ensure_future(run_probe(component, deadline, started, policy, executor))
    fired = asyncio.ensure_future(deadline.wait())
    try:
        await asyncio.wait({probe, fired}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        probe.cancel()
        raise
    finally:
        fired.cancel()

    if probe.done() and not probe.cancelled():
        return probe.result()

    probe.cancel()
    logger.warning("Component %s timed out: %s", component.name, deadline.error)
    return timeout_report(component.name, deadline, started)


async def dispatch(
    components: Sequence[Component],
    deadline: Deadline,
    started: float,
    policy: RetryPolicy = RetryPolicy(),
    executor: Executor | None = None,
) -> AsyncIterator[ComponentReport]:
    """Yield one report per component, in completion order."""
    if not components:
        return

    tasks = [
        asyncio.ensure_future(_race(c, deadline, started, policy, executor))
        for c in components
    ]
    try:
        for next_done in asyncio.as_completed(tasks):
            yield await next_done
    finally:
        for task in tasks:
            task.cancel()
