"""Data models for service dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ...errors import ConfigurationError
from ..models import CustomCommands, HealthCheckConfig, ManagementStrategy


class DependencyType(str, Enum):
    REQUIRED = "required"
    PROXY = "proxy"
    FORWARD = "forward"
    CONTAINER = "container"
    OPTIONAL = "optional"

    @classmethod
    def parse(cls, value: str | DependencyType) -> DependencyType:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ConfigurationError(f"invalid dependency type: {value!r}") from exc


DEFAULT_BLOCKING_TYPES: frozenset[DependencyType] = frozenset(
    {DependencyType.REQUIRED, DependencyType.PROXY, DependencyType.CONTAINER}
)


@dataclass
class ProxyConfig:
    proxy_type: str
    proxy_endpoint: str
    target_endpoint: str
    timeout: float = 30.0
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class ServiceDependency:
    source_service: str
    target_service: str
    dependency_type: DependencyType = DependencyType.REQUIRED
    health_check: HealthCheckConfig | None = None
    startup_order: int = 0
    proxy_config: ProxyConfig | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ServiceDependency:
        source = str(data.get("source") or data.get("source_service") or "")
        target = str(data.get("target") or data.get("target_service") or "")
        if not source:
            raise ConfigurationError(f"dependency is missing a source service: {data!r}")
        return cls(
            source_service=source,
            target_service=target,
            dependency_type=DependencyType.parse(data.get("type", "required")),
            health_check=HealthCheckConfig.from_dict(data.get("health_check")),
            startup_order=int(data.get("startup_order", 0)),
            metadata={str(k): str(v) for k, v in (data.get("metadata") or {}).items()},
        )


@dataclass
class DependencyConfig:
    """How to manage a service when it is started as someone's dependency."""

    service_name: str
    strategy: ManagementStrategy = ManagementStrategy.AUTO
    custom_commands: CustomCommands | None = None
    health_check: HealthCheckConfig | None = None
    auto_detect: bool = False
    metadata: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> DependencyConfig:
        return cls(
            service_name=name,
            strategy=ManagementStrategy.parse(data.get("strategy")),
            custom_commands=CustomCommands.from_dict(data.get("commands")),
            health_check=HealthCheckConfig.from_dict(data.get("health_check")),
            auto_detect=bool(data.get("auto_detect", False)),
            metadata={str(k): str(v) for k, v in (data.get("metadata") or {}).items()},
        )


__all__ = [
    "DEFAULT_BLOCKING_TYPES",
    "DependencyConfig",
    "DependencyType",
    "ProxyConfig",
    "ServiceDependency",
]
