"""Base class for service lifecycle strategies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Sequence

import psutil

from ...context import OperationContext
from ...errors import CommandExecutionError, StrategyUnsupportedError
from ...executor import ExecResult, Executor, run_argv
from ...logging_config import get_logger
from ..health import HealthChecker
from ..mapping import PackageServiceMapping
from ..models import (
    HealthCheckConfig,
    ManagementStrategy,
    ServiceHealthInfo,
    ServiceStatusInfo,
)

logger = get_logger(__name__)


def process_start_time(process_id: str) -> datetime | None:
    if not process_id:
        return None
    try:
        return datetime.fromtimestamp(psutil.Process(int(process_id)).create_time())
    except (ValueError, psutil.NoSuchProcess, psutil.AccessDenied):
        return None


class LifecycleStrategy(ABC):
    """Controls one kind of service mechanism through an ``Executor``.

    Start and stop are idempotent: a service already in the requested
    state is left alone after a single status probe. Health checks use a
    configured probe when one resolves (explicit override, then mapping
    defaults), else the mechanism's own signal.
    """

    strategy: ManagementStrategy = ManagementStrategy.AUTO
    supports_startup: bool = True

    def __init__(
        self,
        executor: Executor,
        *,
        health_check: HealthCheckConfig | None = None,
        mapping: PackageServiceMapping | None = None,
    ) -> None:
        self.executor = executor
        self.health_override = health_check
        self.mapping = mapping
        self.health_checker = HealthChecker(executor)

    def get_strategy_name(self) -> ManagementStrategy:
        return self.strategy

    # run state

    def start_service(self, ctx: OperationContext, name: str) -> None:
        if self.is_running(ctx, name):
            logger.debug("%s already running (%s)", name, self.strategy.value)
            return
        logger.info("Starting %s via %s", name, self.strategy.value)
        self._start(ctx, name)

    def stop_service(self, ctx: OperationContext, name: str) -> None:
        if not self.is_running(ctx, name):
            logger.debug("%s already stopped (%s)", name, self.strategy.value)
            return
        logger.info("Stopping %s via %s", name, self.strategy.value)
        self._stop(ctx, name)

    def restart_service(self, ctx: OperationContext, name: str) -> None:
        logger.info("Restarting %s via %s", name, self.strategy.value)
        self._restart(ctx, name)

    def _restart(self, ctx: OperationContext, name: str) -> None:
        self.stop_service(ctx, name)
        self.start_service(ctx, name)

    @abstractmethod
    def _start(self, ctx: OperationContext, name: str) -> None:
        ...

    @abstractmethod
    def _stop(self, ctx: OperationContext, name: str) -> None:
        ...

    @abstractmethod
    def is_running(self, ctx: OperationContext, name: str) -> bool:
        ...

    @abstractmethod
    def status_check(self, ctx: OperationContext, name: str) -> ServiceStatusInfo:
        ...

    # startup

    def enable_service(self, ctx: OperationContext, name: str) -> None:
        raise StrategyUnsupportedError(self.strategy.value, "enable", name)

    def disable_service(self, ctx: OperationContext, name: str) -> None:
        raise StrategyUnsupportedError(self.strategy.value, "disable", name)

    def is_enabled(self, ctx: OperationContext, name: str) -> bool:
        return False

    def startup_supported(self, ctx: OperationContext, name: str) -> bool:
        return self.supports_startup

    def set_startup(self, ctx: OperationContext, name: str, enabled: bool) -> None:
        if enabled:
            self.enable_service(ctx, name)
        else:
            self.disable_service(ctx, name)

    # discovery

    def recognizes(self, ctx: OperationContext, name: str) -> bool:
        """Whether this mechanism knows about ``name``. Used by auto discovery."""
        return False

    # health

    def resolve_health_check(self, name: str) -> HealthCheckConfig | None:
        if self.health_override and self.health_override.is_configured():
            return self.health_override
        if self.mapping is not None:
            return self.mapping.resolve_health_check(name)
        return None

    def health_check(self, ctx: OperationContext, name: str) -> ServiceHealthInfo:
        config = self.resolve_health_check(name)
        if config is None:
            return self._native_health(ctx, name)
        result = self.health_checker.check(ctx, config)
        return ServiceHealthInfo(
            healthy=result.healthy,
            strategy=self.strategy,
            details=f"{config.describe()} -> {result.summary()}",
        )

    def _native_health(self, ctx: OperationContext, name: str) -> ServiceHealthInfo:
        running = self.is_running(ctx, name)
        return ServiceHealthInfo(
            healthy=running,
            strategy=self.strategy,
            details="running" if running else "not running",
        )

    # helpers

    def _run(
        self,
        ctx: OperationContext,
        argv: Sequence[str],
        *,
        timeout: float | None = None,
    ) -> ExecResult:
        return run_argv(self.executor, ctx, argv, timeout=timeout)

    def _run_checked(
        self,
        ctx: OperationContext,
        argv: Sequence[str],
        *,
        timeout: float | None = None,
    ) -> ExecResult:
        result = self._run(ctx, argv, timeout=timeout)
        if result.exit_code != 0:
            raise CommandExecutionError(
                f"{' '.join(argv)} failed with exit code {result.exit_code}: "
                f"{result.stderr.strip()}",
                command=argv,
                exit_code=result.exit_code,
                stderr=result.stderr,
            )
        return result

    def _pgrep(self, ctx: OperationContext, pattern: str) -> list[str]:
        """PIDs whose command line matches ``pattern``; exit 1 means none."""
        result = self._run(ctx, ["pgrep", "-f", pattern])
        if result.exit_code == 1:
            return []
        if result.exit_code != 0:
            raise CommandExecutionError(
                f"pgrep failed with exit code {result.exit_code}: {result.stderr.strip()}",
                command=["pgrep", "-f", pattern],
                exit_code=result.exit_code,
                stderr=result.stderr,
            )
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


__all__ = ["LifecycleStrategy", "process_start_time"]
