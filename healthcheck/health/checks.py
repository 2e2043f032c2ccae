"""Built-in checks.

Supports: HTTP(S), TLS cert expiry, DNS resolve, TCP connect,
required environment variables, and writable storage with free space.
Options are validated on construction, raising ConfigurationError.
Each check traps its own I/O errors and reports them as a PROBLEM.
"""

from __future__ import annotations

import os
import shutil
import socket
import ssl
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import httpx

from .engine import ConfigurationError, Result, degraded, okay, problem


def _number(option: str, value: Any, kind: type = int) -> Any:
    """Reject non-numeric or negative options when the check is built."""
    allowed = (int,) if kind is int else (int, float)
    if isinstance(value, bool) or not isinstance(value, allowed):
        raise ConfigurationError(f"{option} must be {kind.__name__}, got {value!r}")
    if value < 0:
        raise ConfigurationError(f"{option} must not be negative, got {value!r}")
    return value


def _text(option: str, value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise ConfigurationError(f"{option} must be a non-empty string, got {value!r}")
    return value


class HttpCheck:
    """HTTP(S) check with status code and latency."""

    def __init__(
        self,
        name: str,
        url: str,
        method: str = "GET",
        expected_status: int = 200,
        timeout_ms: int = 10_000,
        degraded_latency_ms: int = 3_000,
    ) -> None:
        self.name = name
        self.url = _text("url", url)
        self.method = _text("method", method).upper()
        self.expected_status = _number("expected_status", expected_status)
        self.timeout_ms = _number("timeout_ms", timeout_ms)
        self.degraded_latency_ms = _number("degraded_latency_ms", degraded_latency_ms)

    def evaluate(self) -> Result:
        t0 = time.perf_counter()
        try:
            with httpx.Client(timeout=self.timeout_ms / 1000, follow_redirects=True) as client:
                resp = client.request(self.method, self.url)
        except httpx.TimeoutException:
            return problem(
                f"Request timed out ({self.timeout_ms}ms)",
                {"url": self.url},
            )
        except httpx.HTTPError as e:
            return problem(
                f"Connection error: {type(e).__name__}",
                {"url": self.url, "error": str(e)},
            )
        latency = round((time.perf_counter() - t0) * 1000, 1)

        if resp.status_code != self.expected_status:
            return problem(
                f"Expected {self.expected_status}, got {resp.status_code}",
                {"url": self.url, "status_code": resp.status_code, "latency_ms": latency},
            )
        if latency > self.degraded_latency_ms:
            return degraded(
                f"Slow response ({latency}ms > {self.degraded_latency_ms}ms)",
                {"url": self.url, "latency_ms": latency},
            )
        return okay()


class TlsCheck:
    """TLS certificate expiry."""

    def __init__(
        self,
        name: str,
        hostname: str,
        port: int = 443,
        warn_days_before: int = 14,
        timeout_ms: int = 10_000,
    ) -> None:
        self.name = name
        self.hostname = _text("hostname", hostname)
        self.port = _number("port", port)
        self.warn_days_before = _number("warn_days_before", warn_days_before)
        self.timeout_ms = _number("timeout_ms", timeout_ms)

    def _peer_cert(self) -> dict:
        ctx = ssl.create_default_context()
        with socket.create_connection((self.hostname, self.port), timeout=self.timeout_ms / 1000) as sock:
            with ctx.wrap_socket(sock, server_hostname=self.hostname) as ssock:
                return ssock.getpeercert() or {}

    def evaluate(self) -> Result:
        try:
            cert = self._peer_cert()
        except (OSError, ssl.SSLError) as e:
            return problem(
                f"TLS error: {type(e).__name__}",
                {"hostname": self.hostname, "error": str(e)},
            )
        if not cert.get("notAfter"):
            return problem("No certificate returned", {"hostname": self.hostname})

        expiry = datetime.strptime(cert["notAfter"], "%b %d %H:%M:%S %Y %Z").replace(tzinfo=timezone.utc)
        days_left = (expiry - datetime.now(timezone.utc)).days
        context = {"hostname": self.hostname, "days_left": days_left, "expiry": expiry.isoformat()}

        if days_left < 0:
            return problem(f"Certificate expired {-days_left} days ago", context)
        if days_left < self.warn_days_before:
            return degraded(
                f"Certificate expires in {days_left} days (warn < {self.warn_days_before})",
                context,
            )
        return okay()


class DnsCheck:
    """DNS resolution.

    getaddrinfo() takes no timeout, so the lookup runs on a worker thread and
    is abandoned after ``timeout_ms``. The thread finishes in the background.
    """

    def __init__(self, name: str, hostname: str, timeout_ms: int = 5_000) -> None:
        self.name = name
        self.hostname = _text("hostname", hostname)
        self.timeout_ms = _number("timeout_ms", timeout_ms)

    def evaluate(self) -> Result:
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(socket.getaddrinfo, self.hostname, None)
        try:
            future.result(timeout=self.timeout_ms / 1000)
        except FutureTimeout:
            return problem(
                f"DNS resolution timed out ({self.timeout_ms}ms)",
                {"hostname": self.hostname},
            )
        except OSError as e:
            return problem(
                f"DNS resolution failed for {self.hostname}",
                {"hostname": self.hostname, "error": str(e)},
            )
        finally:
            executor.shutdown(wait=False)
        return okay()


class TcpCheck:
    """Raw TCP port connectivity."""

    def __init__(self, name: str, hostname: str, port: int, timeout_ms: int = 5_000) -> None:
        self.name = name
        self.hostname = _text("hostname", hostname)
        self.port = _number("port", port)
        self.timeout_ms = _number("timeout_ms", timeout_ms)

    def evaluate(self) -> Result:
        try:
            sock = socket.create_connection((self.hostname, self.port), timeout=self.timeout_ms / 1000)
            sock.close()
        except OSError as e:
            return problem(
                f"TCP connect to {self.hostname}:{self.port} failed",
                {"hostname": self.hostname, "port": self.port, "error": str(e)},
            )
        return okay()


class EnvCheck:
    """Required environment variables are set and non-empty."""

    def __init__(self, name: str, required: list[str] | None = None) -> None:
        self.name = name
        self.required = list(required or [])
        if isinstance(required, str) or not all(isinstance(var, str) and var for var in self.required):
            raise ConfigurationError(f"required must list variable names, got {required!r}")

    def evaluate(self) -> Result:
        missing = [var for var in self.required if not os.environ.get(var)]
        if missing:
            return problem("Missing environment variables", {"missing": missing})
        return okay()


class StorageCheck:
    """Directory is writable and has enough free space."""

    def __init__(self, name: str, path: str = ".", min_free_percent: float = 10.0) -> None:
        self.name = name
        self.path = Path(_text("path", path))
        self.min_free_percent = _number("min_free_percent", min_free_percent, float)

    def evaluate(self) -> Result:
        marker = self.path / f".healthcheck-{uuid.uuid4().hex}"
        try:
            marker.write_text("ok", encoding="utf-8")
            marker.unlink()
            usage = shutil.disk_usage(self.path)
        except OSError as e:
            return problem(
                f"Storage not writable: {self.path}",
                {"path": str(self.path), "error": str(e)},
            )

        free_percent = round(usage.free / usage.total * 100, 1) if usage.total else 0.0
        if free_percent < self.min_free_percent:
            return degraded(
                f"Low disk space ({free_percent}% free)",
                {"path": str(self.path), "free_percent": free_percent, "free_bytes": usage.free},
            )
        return okay()
