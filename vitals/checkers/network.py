"""Network checkers: HTTP(S), TCP connect, DNS resolve, TLS cert expiry.

Each one bounds its own I/O by ``min(timeout, deadline.remaining())`` and
attaches ``latency_ms`` to the result stats.
"""

from __future__ import annotations

import asyncio
import logging
import socket
import ssl
import time
from datetime import datetime, timezone

import httpx

from vitals.health.deadline import Deadline
from vitals.health.status import ComponentResult, ComponentStatus

logger = logging.getLogger(__name__)


def _budget(timeout_ms: int, deadline: Deadline) -> float:
    """Seconds this attempt may take."""
    budget = timeout_ms / 1000
    remaining = deadline.remaining()
    if remaining is not None:
        budget = min(budget, remaining)
    return max(budget, 0.001)


def _elapsed_ms(t0: float) -> int:
    return int((time.perf_counter() - t0) * 1000)


def _fail(message: str, t0: float) -> ComponentResult:
    return ComponentResult(
        status=ComponentStatus.FAIL,
        description=message,
        stats={"latency_ms": _elapsed_ms(t0)},
    )


class HttpChecker:
    """HTTP(S) request expecting a given status code."""

    def __init__(
        self,
        url: str,
        method: str = "GET",
        expected_status: int = 200,
        timeout_ms: int = 10_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.method = method
        self.expected_status = expected_status
        self.timeout_ms = timeout_ms
        self._transport = transport

    async def check(self, deadline: Deadline) -> ComponentResult:
        t0 = time.perf_counter()
        try:
            async with httpx.AsyncClient(
                timeout=_budget(self.timeout_ms, deadline),
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                resp = await client.request(self.method, self.url)
        except httpx.TimeoutException:
            return _fail(f"Request timed out ({self.timeout_ms}ms)", t0)
        except httpx.HTTPError as e:
            return _fail(f"Connection error: {e}", t0)

        stats = {"latency_ms": _elapsed_ms(t0), "status_code": resp.status_code}
        if resp.status_code != self.expected_status:
            return ComponentResult(
                status=ComponentStatus.FAIL,
                description=f"Expected {self.expected_status}, got {resp.status_code}",
                stats=stats,
            )
        return ComponentResult(
            status=ComponentStatus.ON,
            description=f"{resp.status_code} OK",
            stats=stats,
        )

    def __repr__(self) -> str:
        return f"HttpChecker({self.method} {self.url})"


class TcpChecker:
    """Raw TCP port connectivity."""

    def __init__(self, hostname: str, port: int = 443, timeout_ms: int = 5_000) -> None:
        self.hostname = hostname
        self.port = port
        self.timeout_ms = timeout_ms

    async def check(self, deadline: Deadline) -> ComponentResult:
        t0 = time.perf_counter()
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self.hostname, self.port),
                timeout=_budget(self.timeout_ms, deadline),
            )
        except asyncio.TimeoutError:
            return _fail(f"TCP connect to {self.hostname}:{self.port} timed out", t0)
        except OSError as e:
            return _fail(f"TCP connect failed: {type(e).__name__}: {e}", t0)

        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return ComponentResult(
            status=ComponentStatus.ON,
            description=f"Port {self.port} open",
            stats={"latency_ms": _elapsed_ms(t0)},
        )

    def __repr__(self) -> str:
        return f"TcpChecker({self.hostname}:{self.port})"


class DnsChecker:
    """DNS resolution of a hostname."""

    def __init__(self, hostname: str, timeout_ms: int = 5_000) -> None:
        self.hostname = hostname
        self.timeout_ms = timeout_ms

    async def check(self, deadline: Deadline) -> ComponentResult:
        t0 = time.perf_counter()
        loop = asyncio.get_running_loop()
        try:
            addrs = await asyncio.wait_for(
                loop.getaddrinfo(self.hostname, None),
                timeout=_budget(self.timeout_ms, deadline),
            )
        except asyncio.TimeoutError:
            return _fail(f"DNS resolution of {self.hostname} timed out", t0)
        except socket.gaierror as e:
            return _fail(f"DNS resolution failed: {e}", t0)

        ips = sorted({a[4][0] for a in addrs})
        return ComponentResult(
            status=ComponentStatus.ON,
            description=f"Resolved to {', '.join(ips[:3])}",
            stats={"latency_ms": _elapsed_ms(t0), "addresses": len(ips)},
        )

    def __repr__(self) -> str:
        return f"DnsChecker({self.hostname})"


class TlsChecker:
    """TLS certificate expiry.

    Expired → FAIL. Expiring within ``warn_days_before`` is still ON, with
    the warning in the description. Blocking sockets, so this runs on a
    worker thread.
    """

    def __init__(
        self,
        hostname: str,
        port: int = 443,
        warn_days_before: int = 14,
        timeout_ms: int = 10_000,
    ) -> None:
        self.hostname = hostname
        self.port = port
        self.warn_days_before = warn_days_before
        self.timeout_ms = timeout_ms

    def check(self, deadline: Deadline) -> ComponentResult:
        t0 = time.perf_counter()
        try:
            ctx = ssl.create_default_context()
            with socket.create_connection(
                (self.hostname, self.port), timeout=_budget(self.timeout_ms, deadline),
            ) as sock:
                with ctx.wrap_socket(sock, server_hostname=self.hostname) as ssock:
                    cert = ssock.getpeercert()
        except (OSError, ssl.SSLError) as e:
            return _fail(f"TLS error: {type(e).__name__}: {e}", t0)

        if not cert:
            return _fail("No certificate returned", t0)

        expiry = datetime.strptime(
            cert.get("notAfter", ""), "%b %d %H:%M:%S %Y %Z",
        ).replace(tzinfo=timezone.utc)
        return self.evaluate_expiry(expiry, t0)

    def evaluate_expiry(self, expiry: datetime, t0: float) -> ComponentResult:
        days_left = (expiry - datetime.now(timezone.utc)).days
        stats = {"latency_ms": _elapsed_ms(t0), "days_left": days_left}

        if days_left < 0:
            return ComponentResult(
                status=ComponentStatus.FAIL,
                description=f"Certificate EXPIRED {-days_left} days ago",
                stats=stats,
            )
        if days_left < self.warn_days_before:
            msg = f"Certificate expires in {days_left} days (warn < {self.warn_days_before})"
        else:
            msg = f"Certificate valid, expires in {days_left} days"
        return ComponentResult(status=ComponentStatus.ON, description=msg, stats=stats)

    def __repr__(self) -> str:
        return f"TlsChecker({self.hostname}:{self.port})"
