"""Deadline / cancellation token shared by every probe of one check call."""

from __future__ import annotations

import asyncio
import time

DEADLINE_EXCEEDED = "deadline exceeded"


class Deadline:
    """Fires when ``timeout`` seconds have passed or ``cancel()`` is called.

    A timeout of None means the deadline only fires on explicit cancel.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._expires_at = None if timeout is None else time.monotonic() + max(timeout, 0.0)
        self._cancelled = asyncio.Event()
        self._reason: str | None = None

    def remaining(self) -> float | None:
        """Seconds left, 0.0 once fired, None if unbounded."""
        if self._cancelled.is_set():
            return 0.0
        if self._expires_at is None:
            return None
        return max(self._expires_at - time.monotonic(), 0.0)

    @property
    def expired(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    @property
    def error(self) -> str | None:
        """Why the deadline fired, None while it is still pending."""
        if self._reason is not None:
            return f"cancelled: {self._reason}"
        if self.expired:
            return DEADLINE_EXCEEDED
        return None

    def cancel(self, reason: str = "cancelled by caller") -> None:
        if not self._cancelled.is_set():
            self._reason = reason
            self._cancelled.set()

    async def wait(self) -> None:
        """Suspend until the deadline fires."""
        remaining = self.remaining()
        if remaining is None:
            await self._cancelled.wait()
            return
        if remaining <= 0:
            return
        try:
            await asyncio.wait_for(self._cancelled.wait(), timeout=remaining)
        except asyncio.TimeoutError:
            pass

    async def sleep(self, seconds: float) -> bool:
        """Sleep up to ``seconds`` without outlasting the deadline.

        Returns False if the deadline fired before the full sleep elapsed.
        """
        remaining = self.remaining()
        if remaining is not None and remaining <= seconds:
            await self.wait()
            return False
        try:
            await asyncio.wait_for(self._cancelled.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return True
        return False

    def __repr__(self) -> str:
        return f"Deadline(remaining={self.remaining()!r}, error={self.error!r})"
