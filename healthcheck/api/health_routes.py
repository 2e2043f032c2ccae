"""API routes for the aggregated health report.

Endpoints (paths come from Settings):
  GET  {base_path}{health_path}  run every check, return the report
  GET  {base_path}{ping_path}    liveness check, always "pong"
"""

from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, PlainTextResponse

from healthcheck.config import Settings
from healthcheck.health.engine import Aggregator, Report, Status

logger = logging.getLogger(__name__)


def encode_report(report: Report) -> dict:
    """JSON-ready body, with context values run through jsonable_encoder."""
    return jsonable_encoder(report.to_dict())


def build_health_router(aggregator: Aggregator, settings: Settings) -> APIRouter:
    """Bind the aggregator to the configured paths."""
    health_router = APIRouter(tags=["health"])

    @health_router.get(settings.route(settings.health_path))
    def health() -> JSONResponse:
        """Evaluate all configured checks once and report the rollup."""
        report = aggregator.run()
        if report.overall_status is not Status.OK:
            logger.info("Health endpoint reporting %s", report.overall_status.value)
        return JSONResponse(
            content=encode_report(report),
            status_code=aggregator.http_status(report),
        )

    @health_router.get(settings.route(settings.ping_path), response_class=PlainTextResponse)
    def ping() -> str:
        return "pong"

    return health_router
