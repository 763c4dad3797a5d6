"""Per-service settings used when starting a dependency."""

from __future__ import annotations

from pathlib import Path

from ...context import OperationContext
from ...errors import ServiceError
from ...executor import Executor
from ...logging_config import get_logger
from ..models import CustomCommands, HealthCheckConfig, ManagementStrategy
from .models import DependencyConfig

logger = get_logger(__name__)


def default_dependency_configs() -> dict[str, DependencyConfig]:
    return {
        "colima": DependencyConfig(
            service_name="colima",
            strategy=ManagementStrategy.DIRECT_COMMAND,
            auto_detect=True,
            custom_commands=CustomCommands(
                start=["colima", "start"],
                stop=["colima", "stop"],
                restart=["colima", "restart"],
                status=["colima", "status"],
            ),
            health_check=HealthCheckConfig(command="colima status", timeout=30.0, interval=5.0),
            metadata={
                "description": "Container runtime for Docker on macOS",
                "category": "container_runtime",
            },
        ),
        "docker": DependencyConfig(
            service_name="docker",
            strategy=ManagementStrategy.AUTO,
            auto_detect=True,
            health_check=HealthCheckConfig(command="docker version", timeout=10.0, interval=2.0),
            metadata={
                "description": "Docker client for container management",
                "category": "container_client",
            },
        ),
    }


class DependencyConfigManager:
    """Resolve a ``DependencyConfig`` for a service.

    Precedence: registered config, environment detection, built-in default,
    then a plain ``auto`` config.
    """

    def __init__(self, executor: Executor | None = None) -> None:
        self.executor = executor
        self._configs: dict[str, DependencyConfig] = {}
        self._defaults = default_dependency_configs()

    def register_config(self, config: DependencyConfig) -> None:
        self._configs[config.service_name] = config

    def get_config(self, service_name: str) -> DependencyConfig | None:
        return self._configs.get(service_name)

    def get_default_configs(self) -> dict[str, DependencyConfig]:
        return default_dependency_configs()

    def resolve(self, ctx: OperationContext, service_name: str) -> DependencyConfig:
        registered = self._configs.get(service_name)
        if registered is not None:
            return registered
        try:
            detected = self.detect_service_configuration(ctx, service_name)
        except ServiceError as exc:
            logger.debug("Configuration detection for %s failed: %s", service_name, exc)
            detected = None
        if detected is not None:
            return detected
        default = self._defaults.get(service_name)
        if default is not None:
            return default
        return DependencyConfig(service_name=service_name)

    def detect_service_configuration(
        self, ctx: OperationContext, service_name: str
    ) -> DependencyConfig | None:
        if self.executor is None:
            return None
        name = service_name.lower()
        if name == "colima":
            return self._detect_colima(ctx)
        if name == "docker":
            return self._detect_docker(ctx)
        return None

    def _detect_colima(self, ctx: OperationContext) -> DependencyConfig | None:
        result = self.executor.run(ctx, "colima", ["status"])
        if result.exit_code != 0:
            return None
        config = default_dependency_configs()["colima"]
        config_file = Path.home() / ".colima" / "default" / "colima.yaml"
        if config_file.exists():
            config.metadata["config_file"] = str(config_file)
        output = f"{result.stdout}\n{result.stderr}"
        if "runtime: docker" in output:
            config.metadata["runtime"] = "docker"
        for line in output.splitlines():
            stripped = line.strip()
            if stripped.startswith("arch:"):
                config.metadata["architecture"] = stripped[len("arch:"):].strip()
                break
        return config

    def _detect_docker(self, ctx: OperationContext) -> DependencyConfig | None:
        result = self.executor.run(ctx, "docker", ["context", "show"])
        if result.exit_code != 0:
            return None
        context_name = result.stdout.strip()
        config = default_dependency_configs()["docker"]
        config.metadata["context"] = context_name
        if "colima" in context_name.lower():
            config.metadata["runtime"] = "colima"
            config.metadata["dependency"] = "colima"
        return config


__all__ = ["DependencyConfigManager", "default_dependency_configs"]
