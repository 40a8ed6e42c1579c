"""Components file: loads components.yaml and registers checkers with an engine.

    components:
      - name: db
        type: sqlite
        path: data/app.db
      - name: search
        type: http
        url: http://localhost:9200/_cluster/health
        optional: true
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from vitals.checkers import DnsChecker, HttpChecker, SQLiteChecker, TcpChecker, TlsChecker
from vitals.health import (
    CallableChecker,
    Checker,
    ComponentConfigError,
    ComponentResult,
    ComponentStatus,
    Deadline,
    HealthEngine,
    Presence,
)

logger = logging.getLogger(__name__)


@dataclass
class ComponentDef:
    """One entry of the components file."""

    name: str
    type: str  # sqlite | http | tcp | dns | tls
    optional: bool = False
    url: str = ""
    hostname: str = ""
    port: int = 443
    path: str = ""  # sqlite database file
    method: str = "GET"
    expected_status: int = 200
    timeout_ms: int = 10_000
    warn_days_before: int = 14  # for TLS checks

    @property
    def presence(self) -> Presence:
        return Presence.OPTIONAL if self.optional else Presence.REQUIRED


def _unknown_type(defn: ComponentDef) -> Checker:
    def check(deadline: Deadline) -> ComponentResult:
        return ComponentResult(
            status=ComponentStatus.UNKNOWN,
            description=f"Unknown check type: {defn.type}",
        )
    return CallableChecker(check)


CHECKER_FACTORIES: dict[str, Callable[[ComponentDef], Checker]] = {
    "sqlite": lambda d: SQLiteChecker(path=d.path or None),
    "http": lambda d: HttpChecker(d.url, d.method, d.expected_status, d.timeout_ms),
    "tcp": lambda d: TcpChecker(d.hostname, d.port, d.timeout_ms),
    "dns": lambda d: DnsChecker(d.hostname, d.timeout_ms),
    "tls": lambda d: TlsChecker(d.hostname, d.port, d.warn_days_before, d.timeout_ms),
}


def build_checker(defn: ComponentDef) -> Checker:
    factory = CHECKER_FACTORIES.get(defn.type)
    if factory is None:
        logger.warning("Component %s has unknown type %r", defn.name, defn.type)
        return _unknown_type(defn)
    return factory(defn)


def _parse_component(entry: Any) -> ComponentDef:
    if not isinstance(entry, dict):
        raise ValueError(f"entry must be a mapping: {entry!r}")
    if "name" not in entry or "type" not in entry:
        raise ValueError(f"entry needs 'name' and 'type': {entry}")
    known = ComponentDef.__dataclass_fields__
    return ComponentDef(**{k: v for k, v in entry.items() if k in known})


def load_components(path: Path) -> list[ComponentDef]:
    """Parse the components file. A missing file yields no components."""
    if not path.exists():
        logger.warning("Components file not found: %s", path)
        return []

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ComponentConfigError(f"Failed to parse {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ComponentConfigError(f"{path}: top level must be a mapping")

    defs: list[ComponentDef] = []
    for entry in raw.get("components", []) or []:
        try:
            defs.append(_parse_component(entry))
        except (TypeError, ValueError) as e:
            logger.warning("Skipping malformed component entry: %s", e)

    logger.info("Loaded %d components from %s", len(defs), path)
    return defs


def register_components(engine: HealthEngine, defs: list[ComponentDef]) -> None:
    """Register every definition; raises AlreadyRegistered on duplicate names."""
    for defn in defs:
        engine.register(defn.name, build_checker(defn), defn.presence)
