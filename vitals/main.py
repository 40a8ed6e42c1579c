"""Entry point for vitals: `vitals serve` / `vitals check`."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from vitals.components import load_components, register_components
from vitals.config import settings
from vitals.health import (
    ComponentStatus,
    HealthEngine,
    HealthError,
    OverallReport,
    Presence,
    Registry,
)

console = Console()
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)

STATUS_STYLE = {
    ComponentStatus.ON: "green",
    ComponentStatus.OFF: "dim",
    ComponentStatus.FAIL: "bold red",
    ComponentStatus.TIMEOUT: "yellow",
    ComponentStatus.UNKNOWN: "magenta",
}


def run_server() -> None:
    """Start the FastAPI server."""
    console.print(Panel("Starting vitals health server", style="bold green"))
    uvicorn.run(
        "vitals.api.server:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


def render_report(report: OverallReport, registry: Registry) -> Table:
    table = Table(title=f"{report.status.value} ({report.duration * 1000:.1f}ms)")
    table.add_column("Component")
    table.add_column("Presence")
    table.add_column("Status")
    table.add_column("Description")
    table.add_column("Duration", justify="right")
    for c in report.components:
        table.add_row(
            c.name,
            _presence_label(registry.presence(c.name)),
            f"[{STATUS_STYLE[c.status]}]{c.status.value}[/]",
            c.description,
            f"{c.duration * 1000:.1f}ms",
        )
    return table


def _presence_label(presence: Presence | None) -> str:
    return presence.value if presence is not None else "-"


def run_check(components_file: Path, timeout: float, as_json: bool) -> int:
    """Run one check of every component; 0 when SERVING, 1 otherwise."""
    engine = HealthEngine(retry=settings.retry_policy())
    try:
        register_components(engine, load_components(components_file))
        report = asyncio.run(engine.check(timeout=timeout))
    except HealthError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 2

    if as_json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        console.print(render_report(report, engine.registry))
    return 0 if report.serving else 1


def main() -> None:
    parser = argparse.ArgumentParser(description="vitals health aggregation")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Start the health API server")

    check_parser = sub.add_parser("check", help="Check all components once")
    check_parser.add_argument(
        "--components", type=Path, default=Path(settings.components_file),
        help="Components YAML file",
    )
    check_parser.add_argument(
        "--timeout", type=float, default=settings.check_timeout,
        help="Deadline for the whole check, seconds",
    )
    check_parser.add_argument("--json", action="store_true", help="Print the report as JSON")

    args = parser.parse_args()

    if args.command == "serve":
        run_server()
    elif args.command == "check":
        sys.exit(run_check(args.components, args.timeout, args.json))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
