"""FastAPI server exposing the health report."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from fastapi import FastAPI

from healthcheck import __version__
from healthcheck.api.health_routes import build_health_router
from healthcheck.config import Settings, get_settings
from healthcheck.health.engine import Aggregator, Check, Status
from healthcheck.health.registry import load_checks

logger = logging.getLogger(__name__)


def build_aggregator(settings: Settings, checks: Sequence[Check] | None = None) -> Aggregator:
    """Resolve checks (from the check file unless given) into an Aggregator."""
    if checks is None:
        checks = load_checks(settings.checks_file)
    return Aggregator(
        checks,
        status_codes={
            Status.OK: settings.ok_status_code,
            Status.DEGRADED: settings.degraded_status_code,
            Status.PROBLEM: settings.problem_status_code,
        },
        debug=settings.debug,
    )


def create_app(
    settings: Settings | None = None,
    checks: Sequence[Check] | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    aggregator = build_aggregator(settings, checks)

    app = FastAPI(
        title="Health Check",
        version=__version__,
        debug=settings.debug,
    )
    app.state.settings = settings
    app.state.aggregator = aggregator
    app.include_router(build_health_router(aggregator, settings))

    logger.info(
        "Health endpoint at %s with %d checks",
        settings.route(settings.health_path),
        len(aggregator.checks),
    )
    return app
