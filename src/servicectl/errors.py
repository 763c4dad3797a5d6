"""Error taxonomy for servicectl.

Configuration and cycle errors are fatal and surface to the caller
immediately. Probe errors are absorbed by the health poll loop. A health
wait ends unsuccessfully with ``HealthWaitTimeoutError``, which is kept
distinct from any individual probe failure.
"""

from __future__ import annotations

from typing import Any, Sequence


class ServiceError(Exception):
    """Base exception for all servicectl errors."""

    def __init__(self, message: str, metadata: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.metadata = metadata or {}


class ConfigurationError(ServiceError, ValueError):
    """Invalid or missing configuration (bad durations, missing commands)."""


class NoCommandsAvailableError(ConfigurationError):
    """A direct-command strategy has no command vector for the operation."""

    def __init__(self, service_name: str, operation: str):
        super().__init__(
            f"no {operation} command available for service {service_name}",
            metadata={"service": service_name, "operation": operation},
        )
        self.service_name = service_name
        self.operation = operation


class CommandExecutionError(ServiceError):
    """An external command could not be run, or reported a hard failure."""

    def __init__(
        self,
        message: str,
        command: Sequence[str] | None = None,
        exit_code: int | None = None,
        stderr: str = "",
    ):
        super().__init__(
            message,
            metadata={
                "command": list(command or []),
                "exit_code": exit_code,
                "stderr": stderr,
            },
        )
        self.command = list(command or [])
        self.exit_code = exit_code
        self.stderr = stderr


class CommandTimeoutError(CommandExecutionError):
    """An external command ran past its timeout."""


class ContextExpiredError(ServiceError):
    """The operation context was already done before work was attempted."""


class StrategyUnsupportedError(ServiceError):
    """The selected strategy cannot perform the requested operation."""

    def __init__(self, strategy: str, operation: str, service_name: str):
        super().__init__(
            f"{strategy} strategy does not support {operation} for service {service_name}",
            metadata={"strategy": strategy, "operation": operation, "service": service_name},
        )
        self.strategy = strategy
        self.operation = operation
        self.service_name = service_name


class DependencyCycleError(ServiceError):
    """The dependency graph contains a cycle through ``service_name``."""

    def __init__(self, service_name: str, path: Sequence[str] = ()):
        cycle = " -> ".join(list(path) + [service_name]) if path else service_name
        super().__init__(
            f"circular dependency detected: {service_name} ({cycle})",
            metadata={"service": service_name, "path": list(path)},
        )
        self.service_name = service_name
        self.path = list(path)


class DependencyError(ServiceError):
    """A blocking dependency could not be satisfied."""


class HealthWaitTimeoutError(ServiceError, TimeoutError):
    """The overall wait deadline passed before the target became healthy."""


class OperationCancelledError(ServiceError):
    """The caller cancelled the operation context."""


__all__ = [
    "ServiceError",
    "ConfigurationError",
    "NoCommandsAvailableError",
    "CommandExecutionError",
    "CommandTimeoutError",
    "ContextExpiredError",
    "StrategyUnsupportedError",
    "DependencyCycleError",
    "DependencyError",
    "HealthWaitTimeoutError",
    "OperationCancelledError",
]
