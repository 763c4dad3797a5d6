"""Build lifecycle strategies from a strategy tag."""

from __future__ import annotations

import platform

from ..errors import ConfigurationError
from ..executor import Executor
from ..logging_config import get_logger
from .mapping import PackageServiceMapping, default_mapping
from .models import CustomCommands, HealthCheckConfig, ManagementStrategy
from .strategies import (
    AutoStrategy,
    BrewServicesStrategy,
    DirectCommandStrategy,
    LaunchdStrategy,
    LifecycleStrategy,
    ProcessOnlyStrategy,
    SystemdStrategy,
)
from .strategies.auto import DEFAULT_DISCOVERY_TIMEOUT

logger = get_logger(__name__)

DEFAULT_SERVICE_COMMANDS: dict[str, CustomCommands] = {
    "colima": CustomCommands(
        start=["colima", "start"],
        stop=["colima", "stop"],
        restart=["colima", "restart"],
        status=["colima", "status"],
    ),
    # No restart vectors: stop then start is used instead.
    "docker-desktop": CustomCommands(
        start=["open", "-a", "Docker"],
        stop=["killall", "Docker"],
        status=["pgrep", "-f", "Docker"],
    ),
    "lima": CustomCommands(
        start=["limactl", "start", "default"],
        stop=["limactl", "stop", "default"],
        status=["limactl", "list"],
    ),
    "podman": CustomCommands(
        start=["podman", "machine", "start"],
        stop=["podman", "machine", "stop"],
        restart=["podman", "machine", "restart"],
        status=["podman", "machine", "list"],
    ),
}


def get_default_commands_for_service(service_name: str) -> CustomCommands | None:
    """Return a copy of the built-in commands for ``service_name``, or None."""
    commands = DEFAULT_SERVICE_COMMANDS.get(service_name)
    return commands.copy() if commands else None


def validate_strategy(strategy: str | ManagementStrategy) -> ManagementStrategy:
    return ManagementStrategy.parse(strategy)


def detect_platform(override: str | None = None) -> str:
    name = (override or platform.system()).lower()
    if name.startswith("darwin") or name.startswith("mac"):
        return "darwin"
    if name.startswith("linux"):
        return "linux"
    return name


class ServiceStrategyFactory:
    """Construct strategies. Construction never touches the system."""

    def __init__(
        self,
        executor: Executor,
        *,
        mapping: PackageServiceMapping | None = None,
        platform_name: str | None = None,
        launchd_domain: str = "system",
        discovery_timeout: float = DEFAULT_DISCOVERY_TIMEOUT,
    ) -> None:
        self.executor = executor
        self.mapping = mapping if mapping is not None else default_mapping()
        self.platform_name = detect_platform(platform_name)
        self.launchd_domain = launchd_domain
        self.discovery_timeout = discovery_timeout

    def create_lifecycle_strategy(
        self,
        strategy: str | ManagementStrategy,
        custom_commands: CustomCommands | None,
        service_name: str,
        *,
        health_check: HealthCheckConfig | None = None,
    ) -> LifecycleStrategy:
        tag = validate_strategy(strategy)
        commands = custom_commands
        if commands is not None and commands.is_empty():
            commands = None
        if commands is None and tag in (
            ManagementStrategy.DIRECT_COMMAND,
            ManagementStrategy.AUTO,
        ):
            commands = get_default_commands_for_service(service_name)

        common = {"health_check": health_check, "mapping": self.mapping}

        def build(kind: ManagementStrategy) -> LifecycleStrategy:
            if kind is ManagementStrategy.BREW_SERVICES:
                return BrewServicesStrategy(self.executor, **common)
            if kind is ManagementStrategy.DIRECT_COMMAND:
                if commands is None:
                    logger.debug("No commands known for %s; strategy will fail on use", service_name)
                return DirectCommandStrategy(
                    self.executor, commands, service_name=service_name, **common
                )
            if kind is ManagementStrategy.LAUNCHD:
                return self._init_system_strategy(common)
            if kind is ManagementStrategy.PROCESS_ONLY:
                return ProcessOnlyStrategy(self.executor, **common)
            if kind is ManagementStrategy.AUTO:
                return AutoStrategy(
                    self.executor,
                    build,
                    direct_command_available=commands is not None,
                    discovery_timeout=self.discovery_timeout,
                    **common,
                )
            raise ConfigurationError(f"unsupported management strategy: {kind}")

        return build(tag)

    def _init_system_strategy(self, common: dict) -> LifecycleStrategy:
        if self.platform_name == "darwin":
            return LaunchdStrategy(self.executor, domain=self.launchd_domain, **common)
        return SystemdStrategy(self.executor, **common)


def create_lifecycle_strategy(
    executor: Executor,
    strategy: str | ManagementStrategy,
    custom_commands: CustomCommands | None,
    service_name: str,
    *,
    health_check: HealthCheckConfig | None = None,
    mapping: PackageServiceMapping | None = None,
    platform_name: str | None = None,
) -> LifecycleStrategy:
    factory = ServiceStrategyFactory(executor, mapping=mapping, platform_name=platform_name)
    return factory.create_lifecycle_strategy(
        strategy, custom_commands, service_name, health_check=health_check
    )


__all__ = [
    "DEFAULT_SERVICE_COMMANDS",
    "ServiceStrategyFactory",
    "create_lifecycle_strategy",
    "detect_platform",
    "get_default_commands_for_service",
    "validate_strategy",
]
