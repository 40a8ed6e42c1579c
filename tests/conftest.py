"""Shared test fixtures."""

from __future__ import annotations

import asyncio
import threading
import time

import pytest

from vitals.health import ComponentResult, ComponentStatus, Deadline, HealthEngine, RetryPolicy


class MockComponent:
    """Sync checker: sleeps, fails ``count_fail`` times, then reports ``status``."""

    def __init__(
        self,
        status: ComponentStatus = ComponentStatus.ON,
        desc: str = "",
        sleep: float = 0.0,
        count_fail: int = 0,
    ) -> None:
        self.status = status
        self.desc = desc
        self.sleep = sleep
        self.count_fail = count_fail
        self.calls = 0
        self._lock = threading.Lock()

    def check(self, deadline: Deadline) -> ComponentResult:
        time.sleep(self.sleep)
        with self._lock:
            self.calls += 1
            if self.count_fail > 0:
                self.count_fail -= 1
                return ComponentResult(status=ComponentStatus.FAIL, description="server not found")
        return ComponentResult(status=self.status, description=self.desc)


class AsyncMockComponent:
    """Async checker with the same behaviour as MockComponent."""

    def __init__(
        self,
        status: ComponentStatus = ComponentStatus.ON,
        desc: str = "",
        sleep: float = 0.0,
        count_fail: int = 0,
    ) -> None:
        self.status = status
        self.desc = desc
        self.sleep = sleep
        self.count_fail = count_fail
        self.calls = 0

    async def check(self, deadline: Deadline) -> ComponentResult:
        if self.sleep:
            await asyncio.sleep(self.sleep)
        self.calls += 1
        if self.count_fail > 0:
            self.count_fail -= 1
            return ComponentResult(status=ComponentStatus.FAIL, description="server not found")
        return ComponentResult(status=self.status, description=self.desc)


FAST_RETRY = RetryPolicy(max_attempts=None, delay=0.001, backoff=1.0, max_delay=0.001)


@pytest.fixture
def engine() -> HealthEngine:
    """Engine with near-instant retries."""
    return HealthEngine(retry=FAST_RETRY)
