"""Shared test fixtures."""

from __future__ import annotations

import os

import pytest

from healthcheck.config import Settings
from healthcheck.health.engine import Result, degraded, okay, problem


class AlwaysUpCheck:
    name = "always-up"

    def evaluate(self) -> Result:
        return okay()


class AlwaysDegradedCheck:
    name = "always-degraded"

    def evaluate(self) -> Result:
        return degraded("Something went wrong", {"debug": "info"})


class AlwaysDownCheck:
    name = "always-down"

    def evaluate(self) -> Result:
        return problem("Something went wrong", {"debug": "info"})


class ExplodingCheck:
    name = "exploding"

    def evaluate(self) -> Result:
        raise RuntimeError("db handle is None")


@pytest.fixture
def make_settings(tmp_path, monkeypatch):
    """Settings isolated from the host environment and .env file."""
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("HEALTHCHECK_"):
            monkeypatch.delenv(key)

    def _make(**overrides) -> Settings:
        overrides.setdefault("checks_file", str(tmp_path / "checks.yaml"))
        return Settings(**overrides)

    return _make
