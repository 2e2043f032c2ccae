"""Health check engine. Runs checks and rolls their results into a report.

Each check produces a Result. The aggregator evaluates every configured
check once, in order, and takes the most severe status as the overall one.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"^[A-Za-z0-9._~-]+$")
RESERVED_NAMES = frozenset({"status"})

FAULT_MESSAGE = "Check failed unexpectedly"


# ── Errors ───────────────────────────────────────────────────────────────────


class HealthCheckError(Exception):
    """Base class for health check errors."""


class ConfigurationError(HealthCheckError, ValueError):
    """Invalid check configuration, raised at startup."""


# ── Models ───────────────────────────────────────────────────────────────────


class Status(str, Enum):
    OK = "OK"
    DEGRADED = "DEGRADED"
    PROBLEM = "PROBLEM"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    # Order by severity, not alphabetically as the str mixin would
    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Status):
            return NotImplemented
        return self.severity < other.severity

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Status):
            return NotImplemented
        return self.severity <= other.severity

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Status):
            return NotImplemented
        return self.severity > other.severity

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Status):
            return NotImplemented
        return self.severity >= other.severity


_SEVERITY = {Status.OK: 0, Status.DEGRADED: 1, Status.PROBLEM: 2}


@dataclass(frozen=True)
class Result:
    """Outcome of evaluating a single check."""

    status: Status
    message: str | None = None
    context: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.status, Status):
            raise ValueError(f"Invalid status: {self.status!r}")
        if self.status is Status.OK and (self.message is not None or self.context is not None):
            raise ValueError("An OK result cannot carry a message or context")
        if self.context is not None:
            object.__setattr__(self, "context", MappingProxyType(dict(self.context)))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": self.status.value}
        if self.message is not None:
            data["message"] = self.message
        if self.context is not None:
            data["context"] = dict(self.context)
        return data


def okay() -> Result:
    return Result(Status.OK)


def degraded(message: str | None = None, context: Mapping[str, Any] | None = None) -> Result:
    return Result(Status.DEGRADED, message, context)


def problem(message: str | None = None, context: Mapping[str, Any] | None = None) -> Result:
    return Result(Status.PROBLEM, message, context)


@runtime_checkable
class Check(Protocol):
    """Anything with a ``name`` and an ``evaluate()`` returning a Result."""

    name: str

    def evaluate(self) -> Result: ...


@dataclass(frozen=True)
class Report:
    """Aggregated results for one request. Entries keep configuration order."""

    overall_status: Status
    entries: Mapping[str, Result] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"status": self.overall_status.value}
        for name, result in self.entries.items():
            body[name] = result.to_dict()
        return body


# ── Rollup ───────────────────────────────────────────────────────────────────


def overall_status(statuses: Iterable[Status]) -> Status:
    """Most severe status, OK when there are none."""
    return max(statuses, default=Status.OK)


def validate_name(name: Any) -> str:
    if not isinstance(name, str) or not name:
        raise ConfigurationError(f"Check name must be a non-empty string, got {name!r}")
    if not NAME_PATTERN.match(name):
        raise ConfigurationError(
            f"Check name {name!r} is not URL-safe (allowed: letters, digits, '-', '_', '.', '~')"
        )
    if name in RESERVED_NAMES:
        raise ConfigurationError(f"Check name {name!r} is reserved")
    return name


def validate_checks(checks: Iterable[Any]) -> list[Check]:
    """Reject unnamed, badly named, or duplicate checks."""
    seen: set[str] = set()
    validated = []
    for check in checks:
        if not isinstance(check, Check):
            raise ConfigurationError(f"{check!r} does not provide name and evaluate()")
        name = validate_name(check.name)
        if name in seen:
            raise ConfigurationError(f"Duplicate check name: {name!r}")
        seen.add(name)
        validated.append(check)
    return validated


def evaluate_check(check: Check, debug: bool = False) -> Result:
    """Evaluate one check, converting any fault into a PROBLEM result."""
    try:
        result = check.evaluate()
        if not isinstance(result, Result):
            raise TypeError(f"evaluate() returned {type(result).__name__}, expected Result")
    except Exception as e:
        logger.exception("Health check %r failed unexpectedly", check.name)
        context = {"exception": type(e).__name__, "detail": str(e)} if debug else None
        return problem(FAULT_MESSAGE, context)

    if result.status is not Status.OK:
        logger.debug("Check %s: %s (%s)", check.name, result.status.value, result.message)
    return result


def run_checks(checks: Sequence[Check], debug: bool = False) -> Report:
    """Evaluate each check in order and build the report."""
    entries: dict[str, Result] = {}
    for check in checks:
        entries[check.name] = evaluate_check(check, debug=debug)

    status = overall_status(r.status for r in entries.values())
    logger.debug("Health report: %s across %d checks", status.value, len(entries))
    return Report(overall_status=status, entries=entries)


# ── Aggregator ───────────────────────────────────────────────────────────────


DEFAULT_STATUS_CODES = {Status.OK: 200, Status.DEGRADED: 200, Status.PROBLEM: 200}


class Aggregator:
    """Runs a fixed, validated list of checks and maps reports to HTTP codes.

    The check list is validated on construction and is read-only afterwards,
    so a bad configuration fails at startup rather than on the first request.
    """

    def __init__(
        self,
        checks: Iterable[Check] = (),
        status_codes: Mapping[Status, int] | None = None,
        debug: bool = False,
    ) -> None:
        self._checks = tuple(validate_checks(checks))
        self.status_codes = {**DEFAULT_STATUS_CODES, **(status_codes or {})}
        self.debug = debug

    @property
    def checks(self) -> tuple[Check, ...]:
        return self._checks

    def run(self) -> Report:
        return run_checks(self._checks, debug=self.debug)

    def http_status(self, report: Report) -> int:
        return self.status_codes[report.overall_status]
