"""Configuration schema for servicectl."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .durations import parse_duration
from .errors import ConfigurationError
from .services.dependencies.models import (
    DEFAULT_BLOCKING_TYPES,
    DependencyConfig,
    DependencyType,
    ServiceDependency,
)
from .services.models import ServiceSpec


def _as_path(value: str | Path) -> Path:
    return value if isinstance(value, Path) else Path(value).expanduser().resolve()


def _duration(data: dict[str, Any], key: str, default: float) -> float:
    if key not in data:
        return default
    return parse_duration(data[key])


@dataclass
class GeneralConfig:
    poll_interval: float = 5.0
    probe_timeout: float = 30.0
    dependency_probe_timeout: float = 15.0
    dependency_wait_timeout: float = 30.0
    discovery_timeout: float = 5.0
    command_timeout: float = 300.0
    platform: str | None = None
    launchd_domain: str = "system"
    use_sudo: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GeneralConfig":
        defaults = cls()
        platform_name = data.get("platform")
        if platform_name in ("", "auto"):
            platform_name = None
        return cls(
            poll_interval=_duration(data, "poll_interval", defaults.poll_interval),
            probe_timeout=_duration(data, "probe_timeout", defaults.probe_timeout),
            dependency_probe_timeout=_duration(
                data, "dependency_probe_timeout", defaults.dependency_probe_timeout
            ),
            dependency_wait_timeout=_duration(
                data, "dependency_wait_timeout", defaults.dependency_wait_timeout
            ),
            discovery_timeout=_duration(data, "discovery_timeout", defaults.discovery_timeout),
            command_timeout=_duration(data, "command_timeout", defaults.command_timeout),
            platform=str(platform_name) if platform_name else None,
            launchd_domain=str(data.get("launchd_domain", defaults.launchd_domain)),
            use_sudo=bool(data.get("use_sudo", False)),
        )


@dataclass
class DependenciesConfig:
    blocking_types: list[DependencyType] = field(
        default_factory=lambda: sorted(DEFAULT_BLOCKING_TYPES, key=lambda item: item.value)
    )
    static: list[ServiceDependency] = field(default_factory=list)
    services: dict[str, DependencyConfig] = field(default_factory=dict)
    container_runtime_detection: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DependenciesConfig":
        raw_blocking = data.get("blocking_types")
        if raw_blocking is None:
            blocking_types = cls().blocking_types
        elif isinstance(raw_blocking, list):
            blocking_types = [DependencyType.parse(item) for item in raw_blocking]
        else:
            raise ConfigurationError("dependencies.blocking_types must be a list")
        static = [
            ServiceDependency.from_dict(item)
            for item in data.get("static", [])
            if isinstance(item, dict)
        ]
        services = {
            name: DependencyConfig.from_dict(name, item)
            for name, item in (data.get("services") or {}).items()
            if isinstance(item, dict)
        }
        return cls(
            blocking_types=blocking_types,
            static=static,
            services=services,
            container_runtime_detection=bool(data.get("container_runtime_detection", True)),
        )


@dataclass
class MappingConfig:
    packages: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MappingConfig":
        packages: dict[str, list[str]] = {}
        for name, services in (data.get("packages") or {}).items():
            if isinstance(services, str):
                services = [services]
            if not isinstance(services, list):
                raise ConfigurationError(f"mapping.packages.{name} must be a list")
            packages[str(name)] = [str(item) for item in services]
        return cls(packages=packages)


@dataclass
class PluginsConfig:
    enabled_plugins: list[str] = field(default_factory=list)
    plugin_dirs: list[Path] = field(default_factory=list)
    auto_discover: bool = True
    auto_discover_prefixes: list[str] = field(default_factory=lambda: ["servicectl_plugin"])

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PluginsConfig":
        enabled_plugins = [
            item for item in data.get("enabled_plugins", []) if isinstance(item, str)
        ]
        plugin_dirs = [
            _as_path(item)
            for item in data.get("plugin_dirs", [])
            if isinstance(item, (str, Path))
        ]
        auto_discover = data.get("auto_discover", True)
        prefixes = data.get("auto_discover_prefixes")
        if prefixes and isinstance(prefixes, list):
            auto_discover_prefixes = [p for p in prefixes if isinstance(p, str)]
        else:
            auto_discover_prefixes = cls().auto_discover_prefixes
        return cls(
            enabled_plugins=enabled_plugins,
            plugin_dirs=plugin_dirs,
            auto_discover=bool(auto_discover),
            auto_discover_prefixes=auto_discover_prefixes,
        )


@dataclass
class ServicectlConfig:
    general: GeneralConfig = field(default_factory=GeneralConfig)
    dependencies: DependenciesConfig = field(default_factory=DependenciesConfig)
    mapping: MappingConfig = field(default_factory=MappingConfig)
    services: dict[str, ServiceSpec] = field(default_factory=dict)
    plugins: PluginsConfig = field(default_factory=PluginsConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ServicectlConfig":
        data = data or {}
        services = {
            name: ServiceSpec.from_dict(name, item)
            for name, item in (data.get("services") or {}).items()
            if isinstance(item, dict)
        }
        return cls(
            general=GeneralConfig.from_dict(data.get("general", {})),
            dependencies=DependenciesConfig.from_dict(data.get("dependencies", {})),
            mapping=MappingConfig.from_dict(data.get("mapping", {})),
            services=services,
            plugins=PluginsConfig.from_dict(data.get("plugins", {})),
        )
