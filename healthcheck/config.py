from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "HEALTHCHECK_",
        "extra": "ignore",
    }

    # Ordered list of checks (YAML)
    checks_file: str = "checks.yaml"

    # Routes
    base_path: str = ""
    health_path: str = "/health"
    ping_path: str = "/ping"

    # HTTP code per overall status. PROBLEM stays 200 unless overridden.
    ok_status_code: int = 200
    degraded_status_code: int = 200
    problem_status_code: int = 200

    # Expose exception details of faulted checks in the report context
    debug: bool = False

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Logging
    log_level: str = "INFO"

    @field_validator("health_path", "ping_path")
    @classmethod
    def _route_path(cls, value: str) -> str:
        value = "/" + value.strip().strip("/")
        if value == "/":
            raise ValueError("route path cannot be empty")
        return value

    @field_validator("base_path")
    @classmethod
    def _base_path(cls, value: str) -> str:
        value = value.strip().strip("/")
        return f"/{value}" if value else ""

    @field_validator("log_level")
    @classmethod
    def _log_level(cls, value: str) -> str:
        return value.upper()

    def route(self, path: str) -> str:
        return f"{self.base_path}{path}"


@lru_cache
def get_settings() -> Settings:
    """Process-wide default settings, read from the environment on first use."""
    return Settings()
