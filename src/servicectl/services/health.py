"""Health probes and the bounded health-wait loop.

``HealthChecker`` runs one-shot probes (command, HTTP, TCP, unix socket).
``poll_until_healthy`` drives repeated probes until a target reports healthy
or the overall deadline passes.

Each probe gets its own context from ``OperationContext.background()``.
Deriving probe contexts from the overall wait deadline makes every probe
near the end of the window fail with an expired deadline even when it
could have finished in time, so only the loop itself watches the overall
deadline.
"""

from __future__ import annotations

import shlex
import socket
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

import requests

from ..context import OperationContext
from ..errors import (
    ContextExpiredError,
    HealthWaitTimeoutError,
    OperationCancelledError,
    ServiceError,
)
from ..executor import Executor
from ..logging_config import get_logger
from .models import HealthCheckConfig, ServiceHealthInfo

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_PROBE_TIMEOUT = 30.0
DEFAULT_DEPENDENCY_PROBE_TIMEOUT = 15.0


@dataclass
class HealthResult:
    healthy: bool
    error: str = ""
    response_time: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)

    def summary(self) -> str:
        if self.healthy:
            return f"healthy ({self.response_time * 1000:.0f}ms)"
        return f"unhealthy: {self.error}" if self.error else "unhealthy"


def _bounded(ctx: OperationContext, timeout: float) -> float:
    remaining = ctx.remaining()
    if remaining is None:
        return timeout
    return max(0.001, min(timeout, remaining))


class HealthChecker:
    """One-shot health probes."""

    def __init__(self, executor: Executor, *, max_workers: int = 4) -> None:
        self.executor = executor
        self.max_workers = max_workers

    def check(self, ctx: OperationContext, config: HealthCheckConfig) -> HealthResult:
        if config.command:
            return self.check_command(ctx, config.command, config.timeout)
        if config.http_endpoint:
            return self.check_http(
                ctx, config.http_endpoint, config.expected_status, config.timeout
            )
        if config.tcp_host and config.tcp_port:
            return self.check_tcp(ctx, config.tcp_host, config.tcp_port, config.timeout)
        if config.socket_path:
            return self.check_socket(ctx, config.socket_path, config.timeout)
        return HealthResult(healthy=False, error="no health check configured")

    def check_command(
        self, ctx: OperationContext, command: str, timeout: float
    ) -> HealthResult:
        start = time.monotonic()
        try:
            parts = shlex.split(command)
        except ValueError as exc:
            return HealthResult(healthy=False, error=f"invalid command: {exc}")
        if not parts:
            return HealthResult(healthy=False, error="empty command")

        with ctx.with_timeout(timeout) as probe_ctx:
            try:
                result = self.executor.run(
                    probe_ctx, parts[0], parts[1:], timeout=_bounded(probe_ctx, timeout)
                )
            except ServiceError as exc:
                return HealthResult(
                    healthy=False,
                    error=f"command failed: {exc}",
                    response_time=time.monotonic() - start,
                    metadata={"command": command},
                )

        metadata = {"command": command, "output": result.stdout.strip()}
        if result.exit_code != 0:
            return HealthResult(
                healthy=False,
                error=f"command exited {result.exit_code}: {result.stderr.strip()}",
                response_time=time.monotonic() - start,
                metadata=metadata,
            )
        return HealthResult(
            healthy=True, response_time=time.monotonic() - start, metadata=metadata
        )

    def check_http(
        self,
        ctx: OperationContext,
        endpoint: str,
        expected_status: int = 200,
        timeout: float = 5.0,
    ) -> HealthResult:
        if ctx.done():
            return HealthResult(healthy=False, error=f"context {ctx.reason()}")
        start = time.monotonic()
        try:
            response = requests.get(endpoint, timeout=_bounded(ctx, timeout))
        except requests.RequestException as exc:
            return HealthResult(
                healthy=False,
                error=f"request failed: {exc}",
                response_time=time.monotonic() - start,
                metadata={"endpoint": endpoint},
            )
        elapsed = time.monotonic() - start
        metadata = {
            "endpoint": endpoint,
            "status_code": response.status_code,
            "expected_status": expected_status,
        }
        if response.status_code != expected_status:
            return HealthResult(
                healthy=False,
                error=f"unexpected status code: got {response.status_code}, "
                f"expected {expected_status}",
                response_time=elapsed,
                metadata=metadata,
            )
        return HealthResult(healthy=True, response_time=elapsed, metadata=metadata)

    def check_tcp(
        self, ctx: OperationContext, host: str, port: int, timeout: float = 5.0
    ) -> HealthResult:
        if ctx.done():
            return HealthResult(healthy=False, error=f"context {ctx.reason()}")
        start = time.monotonic()
        metadata = {"host": host, "port": port}
        try:
            with socket.create_connection((host, port), timeout=_bounded(ctx, timeout)):
                pass
        except OSError as exc:
            return HealthResult(
                healthy=False,
                error=f"connection failed: {exc}",
                response_time=time.monotonic() - start,
                metadata=metadata,
            )
        return HealthResult(
            healthy=True, response_time=time.monotonic() - start, metadata=metadata
        )

    def check_socket(
        self, ctx: OperationContext, path: str, timeout: float = 5.0
    ) -> HealthResult:
        if ctx.done():
            return HealthResult(healthy=False, error=f"context {ctx.reason()}")
        start = time.monotonic()
        metadata = {"socket_path": path}
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.settimeout(_bounded(ctx, timeout))
            sock.connect(path)
        except OSError as exc:
            return HealthResult(
                healthy=False,
                error=f"socket connect failed: {exc}",
                response_time=time.monotonic() - start,
                metadata=metadata,
            )
        finally:
            sock.close()
        return HealthResult(
            healthy=True, response_time=time.monotonic() - start, metadata=metadata
        )

    def check_multiple(
        self, ctx: OperationContext, checks: Mapping[str, HealthCheckConfig]
    ) -> dict[str, HealthResult]:
        """Run several checks concurrently, keyed by service name."""
        results: dict[str, HealthResult] = {}
        if not checks:
            return results
        workers = max(1, min(self.max_workers, len(checks)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            future_map = {
                pool.submit(self.check, ctx, config): name
                for name, config in checks.items()
            }
            for future in as_completed(future_map):
                name = future_map[future]
                try:
                    results[name] = future.result()
                except Exception as exc:
                    results[name] = HealthResult(healthy=False, error=str(exc))
        return results


Probe = Callable[[OperationContext], ServiceHealthInfo]


def poll_until_healthy(
    ctx: OperationContext,
    probe: Probe,
    *,
    timeout: float,
    interval: float = DEFAULT_POLL_INTERVAL,
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
    label: str = "service",
) -> ServiceHealthInfo:
    """Probe every ``interval`` seconds until healthy or ``timeout`` passes.

    The first probe runs after one interval. A probe that raises
    ``ServiceError`` is logged and polling continues. Returns the first
    healthy result.

    Raises:
        HealthWaitTimeoutError: the overall deadline passed first.
        OperationCancelledError: ``ctx`` was cancelled by the caller.
    """
    if ctx.cancelled:
        raise OperationCancelledError(f"wait for {label} cancelled before it started")

    attempts = 0
    last_details = ""
    with ctx.with_timeout(timeout) as operation:
        while True:
            if operation.wait(interval):
                if ctx.cancelled:
                    raise OperationCancelledError(
                        f"wait for {label} cancelled after {attempts} probes",
                        metadata={"attempts": attempts},
                    )
                raise HealthWaitTimeoutError(
                    f"timeout waiting for {label} to become healthy after "
                    f"{attempts} probes"
                    + (f": {last_details}" if last_details else ""),
                    metadata={"attempts": attempts, "timeout": timeout},
                )

            attempts += 1
            with OperationContext.background().with_timeout(probe_timeout) as probe_ctx:
                try:
                    info = probe(probe_ctx)
                except ContextExpiredError as exc:
                    logger.warning("Health probe %d for %s expired: %s", attempts, label, exc)
                    last_details = str(exc)
                    continue
                except ServiceError as exc:
                    logger.debug("Health probe %d for %s failed: %s", attempts, label, exc)
                    last_details = str(exc)
                    continue

            if info.healthy:
                logger.info("%s is healthy after %d probes", label, attempts)
                return info
            last_details = info.details
            logger.debug("%s not healthy yet (probe %d): %s", label, attempts, info.details)


__all__ = [
    "DEFAULT_DEPENDENCY_PROBE_TIMEOUT",
    "DEFAULT_POLL_INTERVAL",
    "DEFAULT_PROBE_TIMEOUT",
    "HealthChecker",
    "HealthResult",
    "Probe",
    "poll_until_healthy",
]
