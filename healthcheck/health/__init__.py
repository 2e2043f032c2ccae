"""Health subsystem: check engine, built-in checks and registry."""

from .engine import (
    Aggregator,
    Check,
    ConfigurationError,
    HealthCheckError,
    Report,
    Result,
    Status,
    degraded,
    okay,
    problem,
    run_checks,
)
from .registry import CheckRegistry, default_registry, load_checks
