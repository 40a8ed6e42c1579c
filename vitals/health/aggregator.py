"""Aggregator: reduces the report stream to one overall verdict."""

from __future__ import annotations

import time
from collections.abc import AsyncIterable, Mapping

from .status import ComponentReport, ComponentStatus, OverallReport, OverallStatus, Presence


def classify(required_failed: bool, any_on: bool) -> OverallStatus:
    """Overall verdict from the two facts that decide it.

    Any required component not ON means NOT_SERVING. Otherwise at least one
    ON component (required or optional) means SERVING. With no ON at all
    (empty registry, everything optional and off) nothing is actively
    serving, so NOT_SERVING.
    """
    if required_failed:
        return OverallStatus.NOT_SERVING
    if any_on:
        return OverallStatus.SERVING
    return OverallStatus.NOT_SERVING


async def aggregate(
    reports: AsyncIterable[ComponentReport],
    presence: Mapping[str, Presence],
    started: float,
) -> OverallReport:
    """Consume ``reports`` and build the OverallReport.

    ``presence`` must come from the same registry snapshot the reports were
    produced from. A name missing from it is treated as required.
    """
    result = OverallReport(status=OverallStatus.UNKNOWN)
    required_failed = False
    any_on = False

    async for report in reports:
        result.stats[report.status.value] = result.stats.get(report.status.value, 0) + 1
        result.components.append(report)

        if report.status is ComponentStatus.ON:
            any_on = True
        elif presence.get(report.name, Presence.REQUIRED) is Presence.REQUIRED:
            required_failed = True

        # tentative verdict; a later required failure can still downgrade it
        result.status = classify(required_failed, any_on)

    result.status = classify(required_failed, any_on)
    result.components.sort(key=lambda c: c.duration)
    result.duration = time.perf_counter() - started
    return result
