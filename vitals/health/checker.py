"""Checker capability: the one method every subsystem adapter implements.

A checker reports the current health of one subsystem:

    class CacheChecker:
        async def check(self, deadline: Deadline) -> ComponentResult:
            ...

``check`` may be a coroutine function (awaited on the event loop) or a
plain method (run on a worker thread so blocking I/O doesn't stall
other probes). The same checker instance is invoked concurrently by
overlapping check calls, so implementations must be safe for concurrent
use.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from concurrent.futures import Executor
from dataclasses import replace
from functools import partial
from typing import Protocol, Union, runtime_checkable

from .deadline import Deadline
from .status import ComponentResult, ComponentStatus

logger = logging.getLogger(__name__)

CheckFn = Callable[[Deadline], Union[ComponentResult, Awaitable[ComponentResult]]]


@runtime_checkable
class Checker(Protocol):
    def check(self, deadline: Deadline) -> ComponentResult | Awaitable[ComponentResult]:
        ...


class CallableChecker:
    """Adapts a plain function or coroutine function to the Checker protocol."""

    def __init__(self, fn: CheckFn) -> None:
        self._fn = fn
        self._is_async = inspect.iscoroutinefunction(fn)

    def check(self, deadline: Deadline) -> ComponentResult | Awaitable[ComponentResult]:
        return self._fn(deadline)

    def __repr__(self) -> str:
        return f"CallableChecker({getattr(self._fn, '__name__', self._fn)!r})"


def _is_async_checker(checker: Checker) -> bool:
    if isinstance(checker, CallableChecker):
        return checker._is_async
    return inspect.iscoroutinefunction(checker.check)


async def invoke(
    checker: Checker,
    deadline: Deadline,
    executor: Executor | None = None,
) -> ComponentResult:
    """Run one checker invocation and return its result.

    Exceptions raised by the checker are turned into a FAIL result so the
    probe can retry them like any other failure. A status given as its
    string value is coerced; anything else becomes UNKNOWN.
    """
    try:
        if _is_async_checker(checker):
            result = await checker.check(deadline)
        else:
            loop = asyncio.get_running_loop()
            result = await loop.run_in_executor(executor, partial(checker.check, deadline))
            if inspect.isawaitable(result):
                result = await result
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.warning("Checker %r raised: %s: %s", checker, type(e).__name__, e)
        return ComponentResult(
            status=ComponentStatus.FAIL,
            description=f"{type(e).__name__}: {e}",
        )

    if not isinstance(result, ComponentResult):
        return ComponentResult(
            status=ComponentStatus.UNKNOWN,
            description=f"checker returned {type(result).__name__}, expected ComponentResult",
        )
    if not isinstance(result.status, ComponentStatus):
        try:
            return replace(result, status=ComponentStatus(result.status))
        except ValueError:
            return ComponentResult(
                status=ComponentStatus.UNKNOWN,
                description=f"checker returned invalid status {result.status!r}",
            )
    return result
