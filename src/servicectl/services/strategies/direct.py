"""Direct command strategy: run caller-supplied argument vectors."""

from __future__ import annotations

from ...context import OperationContext
from ...errors import (
    CommandExecutionError,
    NoCommandsAvailableError,
    ServiceError,
    StrategyUnsupportedError,
)
from ...logging_config import get_logger
from ..models import CustomCommands, ManagementStrategy, ServiceHealthInfo, ServiceStatusInfo
from .base import LifecycleStrategy

logger = get_logger(__name__)

ALREADY_RUNNING_PATTERNS: dict[str, tuple[str, ...]] = {
    "colima": ("vm is already running", "already running", "vm already exists"),
    "docker": ("docker is already running", "daemon is already running"),
}
ALREADY_STOPPED_PATTERNS: dict[str, tuple[str, ...]] = {
    "colima": ("vm is not running", "already stopped", "no vm found"),
    "docker": ("docker is not running", "daemon not running"),
}
GENERIC_RUNNING_PATTERNS = (
    "already running",
    "already started",
    "service is running",
    "already active",
)
GENERIC_STOPPED_PATTERNS = (
    "already stopped",
    "not running",
    "service is not running",
    "already inactive",
)


def is_already_running(service_name: str, stderr: str) -> bool:
    text = stderr.lower()
    patterns = ALREADY_RUNNING_PATTERNS.get(service_name, GENERIC_RUNNING_PATTERNS)
    return any(pattern in text for pattern in patterns)


def is_already_stopped(service_name: str, stderr: str) -> bool:
    text = stderr.lower()
    patterns = ALREADY_STOPPED_PATTERNS.get(service_name, GENERIC_STOPPED_PATTERNS)
    return any(pattern in text for pattern in patterns)


def parse_health_details(service_name: str, stdout: str) -> str:
    if service_name == "colima":
        if "colima is running" in stdout:
            return " (Colima VM is running)"
        if "colima is not running" in stdout:
            return " (Colima VM is not running)"
        return " (Colima status checked)"
    if service_name == "docker":
        if "Server:" in stdout:
            return " (Docker daemon is responding)"
        return " (Docker status checked)"
    return " (service status checked)"


class DirectCommandStrategy(LifecycleStrategy):
    """Run ``commands`` for each operation.

    Constructed without commands, every operation raises
    ``NoCommandsAvailableError`` rather than running an empty vector.
    """

    strategy = ManagementStrategy.DIRECT_COMMAND

    def __init__(
        self,
        executor,
        commands: CustomCommands | None = None,
        *,
        service_name: str = "",
        **kwargs,
    ) -> None:
        super().__init__(executor, **kwargs)
        self.commands = commands
        self.service_name = service_name

    def _command(self, name: str, operation: str) -> list[str]:
        if self.commands is None:
            raise NoCommandsAvailableError(name, operation)
        argv = self.commands.command_for(operation)
        if not argv:
            raise NoCommandsAvailableError(name, operation)
        return argv

    def _require_commands(self, name: str, operation: str) -> CustomCommands:
        if self.commands is None or self.commands.is_empty():
            raise NoCommandsAvailableError(name, operation)
        return self.commands

    def recognizes(self, ctx: OperationContext, name: str) -> bool:
        return bool(self.commands and (self.commands.start or self.commands.status))

    def start_service(self, ctx: OperationContext, name: str) -> None:
        self._command(name, "start")
        super().start_service(ctx, name)

    def stop_service(self, ctx: OperationContext, name: str) -> None:
        self._command(name, "stop")
        super().stop_service(ctx, name)

    def is_running(self, ctx: OperationContext, name: str) -> bool:
        commands = self._require_commands(name, "status")
        if not commands.status:
            return bool(self._pgrep(ctx, name))
        result = self._run(ctx, commands.status)
        return result.exit_code == 0

    def _start(self, ctx: OperationContext, name: str) -> None:
        argv = self._command(name, "start")
        result = self._run(ctx, argv)
        if result.exit_code == 0:
            return
        if is_already_running(name, result.stderr):
            logger.debug("%s reports already running; treating start as success", name)
            return
        raise CommandExecutionError(
            f"start command for {name} failed with exit code {result.exit_code}: "
            f"{result.stderr.strip()}",
            command=argv,
            exit_code=result.exit_code,
            stderr=result.stderr,
        )

    def _stop(self, ctx: OperationContext, name: str) -> None:
        argv = self._command(name, "stop")
        result = self._run(ctx, argv)
        if result.exit_code == 0:
            return
        if is_already_stopped(name, result.stderr):
            logger.debug("%s reports already stopped; treating stop as success", name)
            return
        raise CommandExecutionError(
            f"stop command for {name} failed with exit code {result.exit_code}: "
            f"{result.stderr.strip()}",
            command=argv,
            exit_code=result.exit_code,
            stderr=result.stderr,
        )

    def _restart(self, ctx: OperationContext, name: str) -> None:
        commands = self._require_commands(name, "restart")
        if commands.restart:
            self._run_checked(ctx, commands.restart)
            return
        self.stop_service(ctx, name)
        self.start_service(ctx, name)

    def enable_service(self, ctx: OperationContext, name: str) -> None:
        commands = self._require_commands(name, "enable")
        if not commands.enable:
            raise StrategyUnsupportedError(self.strategy.value, "enable", name)
        self._run_checked(ctx, commands.enable)

    def disable_service(self, ctx: OperationContext, name: str) -> None:
        commands = self._require_commands(name, "disable")
        if not commands.disable:
            raise StrategyUnsupportedError(self.strategy.value, "disable", name)
        self._run_checked(ctx, commands.disable)

    def status_check(self, ctx: OperationContext, name: str) -> ServiceStatusInfo:
        running = self.is_running(ctx, name)
        return ServiceStatusInfo(
            running=running,
            enabled=False,
            strategy=self.strategy,
            details="direct command service status",
        )

    def _native_health(self, ctx: OperationContext, name: str) -> ServiceHealthInfo:
        commands = self._require_commands(name, "status")
        if not commands.status:
            running = bool(self._pgrep(ctx, name))
            return ServiceHealthInfo(
                healthy=running,
                strategy=self.strategy,
                details="process-based health check (no status command configured)",
            )
        try:
            result = self._run(ctx, commands.status)
        except ServiceError as exc:
            return ServiceHealthInfo(
                healthy=False,
                strategy=self.strategy,
                details=f"status command failed: {exc}",
            )
        healthy = result.exit_code == 0
        details = f"status command exit code: {result.exit_code}"
        if healthy:
            details += parse_health_details(name, result.stdout)
        else:
            details += f", stderr: {result.stderr.strip()}"
        return ServiceHealthInfo(healthy=healthy, strategy=self.strategy, details=details)

    def __repr__(self) -> str:
        return f"DirectCommandStrategy(service_name={self.service_name!r}, commands={self.commands!r})"


__all__ = [
    "DirectCommandStrategy",
    "is_already_running",
    "is_already_stopped",
    "parse_health_details",
]
