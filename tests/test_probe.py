"""Tests for the deadline, probe runner and dispatcher."""

from __future__ import annotations

import asyncio
import time

import pytest

from conftest import FAST_RETRY, AsyncMockComponent, MockComponent
from vitals.health import (
    CallableChecker,
    Component,
    ComponentResult,
    ComponentStatus,
    Deadline,
    Presence,
    RetryPolicy,
)
from vitals.health.checker import invoke
from vitals.health.dispatcher import dispatch
from vitals.health.probe import run_probe


def _component(checker, name: str = "c") -> Component:
    return Component(name=name, checker=checker, presence=Presence.REQUIRED)


# ── Deadline ─────────────────────────────────────────────────────────────────


class TestDeadline:
    def test_unbounded(self) -> None:
        deadline = Deadline()
        assert deadline.remaining() is None
        assert not deadline.expired
        assert deadline.error is None

    def test_zero_timeout_is_expired(self) -> None:
        deadline = Deadline(0)
        assert deadline.expired
        assert deadline.remaining() == 0.0
        assert deadline.error == "deadline exceeded"

    def test_cancel(self) -> None:
        deadline = Deadline(10)
        deadline.cancel("shutting down")
        assert deadline.expired
        assert deadline.remaining() == 0.0
        assert deadline.error == "cancelled: shutting down"

    @pytest.mark.asyncio
    async def test_wait_returns_at_timeout(self) -> None:
        deadline = Deadline(0.05)
        t0 = time.perf_counter()
        await deadline.wait()
        assert time.perf_counter() - t0 >= 0.04
        assert deadline.expired

    @pytest.mark.asyncio
    async def test_wait_wakes_on_cancel(self) -> None:
        deadline = Deadline()
        waiter = asyncio.ensure_future(deadline.wait())
        await asyncio.sleep(0.01)
        assert not waiter.done()
        deadline.cancel()
        await asyncio.wait_for(waiter, timeout=1)

    @pytest.mark.asyncio
    async def test_sleep_stops_at_deadline(self) -> None:
        deadline = Deadline(0.02)
        assert await deadline.sleep(5) is False

    @pytest.mark.asyncio
    async def test_sleep_completes_before_deadline(self) -> None:
        deadline = Deadline(5)
        assert await deadline.sleep(0.01) is True


# ── Checker invocation ───────────────────────────────────────────────────────


class TestInvoke:
    @pytest.mark.asyncio
    async def test_sync_checker_runs_in_executor(self) -> None:
        result = await invoke(MockComponent(ComponentStatus.ON, "ok"), Deadline())
        assert result.status is ComponentStatus.ON
        assert result.description == "ok"

    @pytest.mark.asyncio
    async def test_async_checker_awaited(self) -> None:
        result = await invoke(AsyncMockComponent(ComponentStatus.OFF), Deadline())
        assert result.status is ComponentStatus.OFF

    @pytest.mark.asyncio
    async def test_callable_checker(self) -> None:
        async def ping(deadline: Deadline) -> ComponentResult:
            return ComponentResult(ComponentStatus.ON)

        def flag(deadline: Deadline) -> ComponentResult:
            return ComponentResult(ComponentStatus.OFF, "disabled by flag")

        assert (await invoke(CallableChecker(ping), Deadline())).status is ComponentStatus.ON
        assert (await invoke(CallableChecker(flag), Deadline())).status is ComponentStatus.OFF

    @pytest.mark.asyncio
    async def test_exception_becomes_fail(self) -> None:
        def boom(deadline: Deadline) -> ComponentResult:
            raise ConnectionError("refused")

        result = await invoke(CallableChecker(boom), Deadline())
        assert result.status is ComponentStatus.FAIL
        assert result.description == "ConnectionError: refused"

    @pytest.mark.asyncio
    async def test_wrong_return_type_is_unknown(self) -> None:
        result = await invoke(CallableChecker(lambda d: "on"), Deadline())
        assert result.status is ComponentStatus.UNKNOWN

    @pytest.mark.asyncio
    async def test_status_string_coerced(self) -> None:
        result = await invoke(CallableChecker(lambda d: ComponentResult(status="fail")), Deadline())
        assert result.status is ComponentStatus.FAIL

    @pytest.mark.asyncio
    async def test_invalid_status_is_unknown(self) -> None:
        result = await invoke(CallableChecker(lambda d: ComponentResult(status="green")), Deadline())
        assert result.status is ComponentStatus.UNKNOWN
        assert "green" in result.description


# ── Retry policy ─────────────────────────────────────────────────────────────


class TestRetryPolicy:
    def test_exponential_delay_capped(self) -> None:
        policy = RetryPolicy(delay=0.1, backoff=2.0, max_delay=0.5)
        assert [policy.delay_for(n) for n in (1, 2, 3, 4, 5)] == [0.1, 0.2, 0.4, 0.5, 0.5]

    def test_exhausted(self) -> None:
        policy = RetryPolicy(max_attempts=3)
        assert not policy.exhausted(2)
        assert policy.exhausted(3)
        assert not RetryPolicy(max_attempts=None).exhausted(10_000)

    @pytest.mark.parametrize("kwargs", [
        {"max_attempts": 0},
        {"delay": -1},
        {"backoff": 0.5},
    ])
    def test_invalid(self, kwargs) -> None:
        with pytest.raises(ValueError):
            RetryPolicy(**kwargs)


# ── Probe runner ─────────────────────────────────────────────────────────────


class TestRunProbe:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [ComponentStatus.ON, ComponentStatus.OFF, ComponentStatus.UNKNOWN])
    async def test_terminal_status_not_retried(self, status: ComponentStatus) -> None:
        checker = MockComponent(status)
        report = await run_probe(_component(checker), Deadline(5), time.perf_counter(), FAST_RETRY)
        assert report.status is status
        assert checker.calls == 1

    @pytest.mark.asyncio
    async def test_fail_retried_until_on(self) -> None:
        checker = MockComponent(ComponentStatus.ON, "success connect", count_fail=5)
        report = await run_probe(_component(checker), Deadline(5), time.perf_counter(), FAST_RETRY)
        assert report.status is ComponentStatus.ON
        assert report.description == "success connect"
        assert checker.calls == 6

    @pytest.mark.asyncio
    async def test_fail_then_off_reports_off(self) -> None:
        checker = AsyncMockComponent(ComponentStatus.OFF, count_fail=2)
        report = await run_probe(_component(checker), Deadline(5), time.perf_counter(), FAST_RETRY)
        assert report.status is ComponentStatus.OFF
        assert checker.calls == 3

    @pytest.mark.asyncio
    async def test_attempt_cap_reports_last_fail(self) -> None:
        checker = MockComponent(count_fail=100)
        policy = RetryPolicy(max_attempts=3, delay=0.001)
        report = await run_probe(_component(checker), Deadline(5), time.perf_counter(), policy)
        assert report.status is ComponentStatus.FAIL
        assert report.description == "server not found"
        assert checker.calls == 3

    @pytest.mark.asyncio
    async def test_deadline_during_retry_reports_timeout(self) -> None:
        checker = AsyncMockComponent(count_fail=1000, sleep=0.01)
        report = await run_probe(_component(checker), Deadline(0.1), time.perf_counter(), FAST_RETRY)
        assert report.status is ComponentStatus.TIMEOUT
        assert report.description == "deadline exceeded"

    @pytest.mark.asyncio
    async def test_deadline_during_backoff_sleep(self) -> None:
        checker = AsyncMockComponent(count_fail=1000)
        policy = RetryPolicy(max_attempts=None, delay=10, max_delay=10)
        t0 = time.perf_counter()
        report = await run_probe(_component(checker), Deadline(0.05), t0, policy)
        assert report.status is ComponentStatus.TIMEOUT
        assert checker.calls == 1
        assert time.perf_counter() - t0 < 5

    @pytest.mark.asyncio
    async def test_exception_retried(self) -> None:
        calls = []

        def flaky(deadline: Deadline) -> ComponentResult:
            calls.append(1)
            if len(calls) < 3:
                raise OSError("reconnecting")
            return ComponentResult(ComponentStatus.ON)

        report = await run_probe(
            _component(CallableChecker(flaky)), Deadline(5), time.perf_counter(), FAST_RETRY,
        )
        assert report.status is ComponentStatus.ON
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_duration_measured_from_check_start(self) -> None:
        started = time.perf_counter() - 1.0
        report = await run_probe(_component(MockComponent()), Deadline(5), started, FAST_RETRY)
        assert report.duration >= 1.0


# ── Dispatcher ───────────────────────────────────────────────────────────────


class TestDispatch:
    @pytest.mark.asyncio
    async def test_one_report_per_component(self) -> None:
        components = [
            _component(MockComponent(ComponentStatus.ON, sleep=0.02), "a"),
            _component(AsyncMockComponent(ComponentStatus.OFF), "b"),
            _component(MockComponent(ComponentStatus.ON, count_fail=2), "c"),
        ]
        reports = [r async for r in dispatch(components, Deadline(5), time.perf_counter(), FAST_RETRY)]
        assert sorted(r.name for r in reports) == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_empty(self) -> None:
        reports = [r async for r in dispatch([], Deadline(5), time.perf_counter())]
        assert reports == []

    @pytest.mark.asyncio
    async def test_probes_run_concurrently(self) -> None:
        components = [
            _component(AsyncMockComponent(sleep=0.2), f"c{i}") for i in range(5)
        ]
        t0 = time.perf_counter()
        reports = [r async for r in dispatch(components, Deadline(5), t0, FAST_RETRY)]
        assert len(reports) == 5
        assert time.perf_counter() - t0 < 0.8

    @pytest.mark.asyncio
    async def test_hanging_checker_times_out_at_deadline(self) -> None:
        components = [
            _component(AsyncMockComponent(sleep=30), "hang"),
            _component(AsyncMockComponent(), "fast"),
        ]
        t0 = time.perf_counter()
        reports = {r.name: r async for r in dispatch(components, Deadline(0.1), t0, FAST_RETRY)}
        assert reports["hang"].status is ComponentStatus.TIMEOUT
        assert reports["hang"].description == "deadline exceeded"
        assert reports["fast"].status is ComponentStatus.ON
        assert time.perf_counter() - t0 < 5

    @pytest.mark.asyncio
    async def test_finished_probe_wins_race_with_fired_deadline(self) -> None:
        # Deadline already fired and the probe completes in the same loop step:
        # the real result is delivered, not a TIMEOUT.
        components = [_component(AsyncMockComponent(ComponentStatus.ON), "instant")]
        reports = [r async for r in dispatch(components, Deadline(0), time.perf_counter())]
        assert [r.status for r in reports] == [ComponentStatus.ON]

    @pytest.mark.asyncio
    async def test_pending_probe_loses_race_with_fired_deadline(self) -> None:
        components = [_component(AsyncMockComponent(sleep=1), "slow")]
        reports = [r async for r in dispatch(components, Deadline(0), time.perf_counter())]
        assert [r.status for r in reports] == [ComponentStatus.TIMEOUT]

    @pytest.mark.asyncio
    async def test_explicit_cancel_times_out_pending(self) -> None:
        deadline = Deadline()
        components = [_component(AsyncMockComponent(sleep=30), "hang")]

        async def cancel_soon() -> None:
            await asyncio.sleep(0.05)
            deadline.cancel("client went away")

        canceller = asyncio.ensure_future(cancel_soon())
        reports = [r async for r in dispatch(components, deadline, time.perf_counter())]
        await canceller
        assert reports[0].status is ComponentStatus.TIMEOUT
        assert reports[0].description == "cancelled: client went away"
