"""Check registry. Maps type identifiers to check factories.

The check file (checks.yaml) lists checks in the order they are reported.
Entries are resolved into concrete Check instances once, at startup.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

import yaml

from .checks import DnsCheck, EnvCheck, HttpCheck, StorageCheck, TcpCheck, TlsCheck
from .engine import Check, ConfigurationError, validate_checks

logger = logging.getLogger(__name__)

CheckFactory = Callable[..., Check]


# ── Registry ─────────────────────────────────────────────────────────────────


class CheckRegistry:
    """Type identifier → factory(name, **options)."""

    def __init__(self) -> None:
        self._factories: dict[str, CheckFactory] = {}

    def register(self, type_id: str, factory: CheckFactory | None = None) -> Any:
        """Register a factory. Without ``factory`` this returns a decorator."""
        if factory is None:
            def decorator(f: CheckFactory) -> CheckFactory:
                self.register(type_id, f)
                return f
            return decorator

        if not type_id:
            raise ConfigurationError("Check type identifier is required")
        if type_id in self._factories:
            raise ConfigurationError(f"Check type {type_id!r} is already registered")
        self._factories[type_id] = factory
        return factory

    def types(self) -> list[str]:
        return list(self._factories)

    def __contains__(self, type_id: object) -> bool:
        return type_id in self._factories

    def create(self, type_id: str, name: str, **options: Any) -> Check:
        factory = self._factories.get(type_id)
        if factory is None:
            raise ConfigurationError(
                f"Unknown check type {type_id!r} (known: {', '.join(self.types()) or 'none'})"
            )
        try:
            return factory(name, **options)
        except TypeError as e:
            raise ConfigurationError(f"Invalid options for check {name!r} ({type_id}): {e}") from e

    def build(self, entries: Iterable[Any]) -> list[Check]:
        """Resolve check file entries, in order, into validated checks."""
        checks = []
        for index, entry in enumerate(entries):
            type_id, name, options = _parse_entry(entry, index)
            checks.append(self.create(type_id, name, **options))
        return validate_checks(checks)


def _parse_entry(entry: Any, index: int) -> tuple[str, str, dict[str, Any]]:
    # Bare string: "- env" → type and name are both "env"
    if isinstance(entry, str):
        return entry, entry, {}
    if not isinstance(entry, dict):
        raise ConfigurationError(f"Check entry #{index} must be a string or mapping, got {entry!r}")

    options = dict(entry)
    type_id = options.pop("type", None)
    if not type_id or not isinstance(type_id, str):
        raise ConfigurationError(f"Check entry #{index} is missing 'type'")
    name = options.pop("name", type_id)
    return type_id, name, options


default_registry = CheckRegistry()
default_registry.register("http", HttpCheck)
default_registry.register("tls", TlsCheck)
default_registry.register("dns", DnsCheck)
default_registry.register("tcp", TcpCheck)
default_registry.register("env", EnvCheck)
default_registry.register("storage", StorageCheck)


# ── Loader ───────────────────────────────────────────────────────────────────


def load_checks(path: Path | str, registry: CheckRegistry | None = None) -> list[Check]:
    """Parse the check file and return the configured checks in order."""
    registry = registry or default_registry
    path = Path(path)

    if not path.exists():
        logger.warning("Check file not found: %s, no checks configured", path)
        return []

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"{path}: expected a mapping with a 'checks' list")
    entries = raw.get("checks") or []
    if not isinstance(entries, list):
        raise ConfigurationError(f"{path}: 'checks' must be a list")

    checks = registry.build(entries)
    logger.info("Loaded %d checks from %s", len(checks), path)
    return checks
