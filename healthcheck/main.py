"""Entry point: `healthcheck` console script."""

from __future__ import annotations

import argparse
import json
import logging
import sys

import uvicorn
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from healthcheck.api.health_routes import encode_report
from healthcheck.api.server import build_aggregator, create_app
from healthcheck.config import Settings
from healthcheck.health.engine import ConfigurationError, Report, Status
from healthcheck.health.registry import default_registry

console = Console()

STATUS_STYLES = {
    Status.OK: "green",
    Status.DEGRADED: "yellow",
    Status.PROBLEM: "bold red",
}


def run_server(settings: Settings) -> None:
    """Start the FastAPI server."""
    app = create_app(settings)
    console.print(
        Panel.fit(
            f"[bold]Health Check[/bold]\n"
            f"Bind:   {settings.api_host}:{settings.api_port}\n"
            f"Health: {settings.route(settings.health_path)}\n"
            f"Checks: {len(app.state.aggregator.checks)} from {settings.checks_file}",
            border_style="green",
        )
    )
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


def render_report(report: Report) -> Table:
    table = Table(title=f"Overall: {report.overall_status.value}")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Message")
    for name, result in report.entries.items():
        style = STATUS_STYLES[result.status]
        table.add_row(name, f"[{style}]{result.status.value}[/{style}]", result.message or "")
    return table


def run_once(settings: Settings, as_json: bool = False) -> int:
    """Evaluate every check once. Exit code 1 when the rollup is PROBLEM."""
    report = build_aggregator(settings).run()
    if as_json:
        print(json.dumps(encode_report(report)))
    else:
        console.print(render_report(report))
    return 1 if report.overall_status is Status.PROBLEM else 0


def list_types() -> None:
    for type_id in default_registry.types():
        console.print(type_id)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Aggregated health checks")
    parser.add_argument("--checks-file", help="Path to checks.yaml (overrides settings)")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Start the health endpoint server")
    check_parser = sub.add_parser("check", help="Run all checks once and print the report")
    check_parser.add_argument("--json", action="store_true", help="Print the JSON body instead of a table")
    sub.add_parser("list", help="List registered check types")

    args = parser.parse_args(argv)

    try:
        overrides = {"checks_file": args.checks_file} if args.checks_file else {}
        settings = Settings(**overrides)
    except ValidationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        return 2

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    try:
        if args.command == "serve":
            run_server(settings)
        elif args.command == "check":
            return run_once(settings, as_json=args.json)
        elif args.command == "list":
            list_types()
        else:
            parser.print_help()
            return 1
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
