"""SQLite connectivity checker."""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path

from vitals.health.deadline import Deadline
from vitals.health.status import ComponentResult, ComponentStatus

logger = logging.getLogger(__name__)


class SQLiteChecker:
    """Pings a SQLite database with ``SELECT 1``.

    Pass an open connection, or a path to open lazily. With neither the
    component reports OFF.
    """

    def __init__(
        self,
        conn: sqlite3.Connection | None = None,
        path: str | Path | None = None,
    ) -> None:
        self._conn = conn
        self._path = Path(path) if path else None
        self._lock = threading.Lock()

    def _get_conn(self) -> sqlite3.Connection | None:
        if self._conn is None and self._path is not None:
            self._conn = sqlite3.connect(str(self._path), check_same_thread=False)
        return self._conn

    def check(self, deadline: Deadline) -> ComponentResult:
        if self._conn is None and self._path is None:
            return ComponentResult(
                status=ComponentStatus.OFF,
                description="component doesn't have a database connection",
            )

        with self._lock:
            try:
                conn = self._get_conn()
                conn.execute("SELECT 1").fetchone()
            except sqlite3.Error as e:
                return ComponentResult(
                    status=ComponentStatus.FAIL,
                    description=f"{type(e).__name__}: {e}",
                )

            return ComponentResult(
                status=ComponentStatus.ON,
                description="connected",
                stats={
                    "total_changes": conn.total_changes,
                    "in_transaction": int(conn.in_transaction),
                },
            )

    def close(self) -> None:
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None

    def __repr__(self) -> str:
        return f"SQLiteChecker(path={str(self._path) if self._path else None!r})"
