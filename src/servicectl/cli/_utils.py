"""Shared CLI utilities and helpers."""

from __future__ import annotations

import argparse
import json
import shlex
from dataclasses import dataclass, replace
from pathlib import Path

from ..config import load_config_model
from ..executor import SystemExecutor
from ..logging_config import get_logger
from ..plugins import call_plugin_hook, load_enabled_plugins
from ..schema import ServicectlConfig
from ..services.dependencies import (
    ContainerRuntimeDetector,
    DependencyConfigManager,
    DependencyManager,
    StaticDependencyDetector,
)
from ..services.factory import ServiceStrategyFactory
from ..services.mapping import PackageServiceMapping, default_mapping
from ..services.models import (
    CustomCommands,
    HealthCheckConfig,
    ManagementStrategy,
    RunState,
    ServiceObservation,
    ServiceSpec,
    Startup,
)
from ..services.orchestrator import OrchestratorSettings, ServiceOrchestrator

logger = get_logger(__name__)


@dataclass
class Runtime:
    config: ServicectlConfig
    executor: SystemExecutor
    mapping: PackageServiceMapping
    dependency_manager: DependencyManager
    orchestrator: ServiceOrchestrator


def load_cli_config(args: argparse.Namespace) -> ServicectlConfig:
    config_path = Path(args.config) if getattr(args, "config", None) else None
    return load_config_model(config_path=config_path)


def build_mapping(config: ServicectlConfig) -> PackageServiceMapping:
    mapping = default_mapping()
    if config.mapping.packages:
        mapping = mapping.extended(config.mapping.packages)
    return mapping


def build_runtime(args: argparse.Namespace) -> Runtime:
    config = load_cli_config(args)
    general = config.general
    executor = SystemExecutor(default_timeout=general.command_timeout, use_sudo=general.use_sudo)
    mapping = build_mapping(config)
    factory = ServiceStrategyFactory(
        executor,
        mapping=mapping,
        platform_name=general.platform,
        launchd_domain=general.launchd_domain,
        discovery_timeout=general.discovery_timeout,
    )

    config_manager = DependencyConfigManager(executor)
    for dependency_config in config.dependencies.services.values():
        config_manager.register_config(dependency_config)

    manager = DependencyManager(
        executor,
        factory=factory,
        config_manager=config_manager,
        blocking_types=config.dependencies.blocking_types,
        wait_timeout=general.dependency_wait_timeout,
        probe_timeout=general.dependency_probe_timeout,
    )
    if config.dependencies.static:
        manager.register_detector(StaticDependencyDetector(config.dependencies.static))
    if config.dependencies.container_runtime_detection:
        manager.register_detector(ContainerRuntimeDetector(executor))

    plugins = load_enabled_plugins(config)
    call_plugin_hook("register_detectors", manager, plugins=plugins.values())

    orchestrator = ServiceOrchestrator(
        executor,
        mapping=mapping,
        dependency_manager=manager,
        factory=factory,
        settings=OrchestratorSettings.from_general(general),
    )
    return Runtime(
        config=config,
        executor=executor,
        mapping=mapping,
        dependency_manager=manager,
        orchestrator=orchestrator,
    )


def _split(command: str | None) -> list[str] | None:
    return shlex.split(command) if command else None


def spec_from_args(args: argparse.Namespace, config: ServicectlConfig) -> ServiceSpec:
    """Start from ``[services.<name>]`` if present, then apply CLI flags."""
    base = config.services.get(args.name)
    spec = ServiceSpec(name=args.name) if base is None else replace(base)

    if getattr(args, "state", None):
        spec.state = RunState(args.state)
    if getattr(args, "startup", None):
        spec.startup = Startup(args.startup)
    if getattr(args, "strategy", None):
        spec.strategy = ManagementStrategy.parse(args.strategy)

    overrides = {
        "start": _split(getattr(args, "start_cmd", None)),
        "stop": _split(getattr(args, "stop_cmd", None)),
        "restart": _split(getattr(args, "restart_cmd", None)),
        "status": _split(getattr(args, "status_cmd", None)),
    }
    if any(overrides.values()):
        commands = spec.custom_commands.copy() if spec.custom_commands else CustomCommands()
        for key, value in overrides.items():
            if value:
                setattr(commands, key, value)
        spec.custom_commands = commands

    if getattr(args, "health_command", None):
        spec.health_check = HealthCheckConfig(command=args.health_command)
    elif getattr(args, "health_http", None):
        spec.health_check = HealthCheckConfig(http_endpoint=args.health_http)

    if getattr(args, "package", None):
        spec.package = args.package
    if getattr(args, "wait", False):
        spec.wait_for_healthy = True
    if getattr(args, "wait_timeout", None):
        spec.wait_timeout = args.wait_timeout
    return spec


def print_observation(observation: ServiceObservation, as_json: bool = False) -> None:
    if as_json:
        print(json.dumps(observation.to_dict(), indent=2))
        return
    running = observation.running
    symbol = "●" if running else "○"
    color = "\033[32m" if running else "\033[31m"
    reset = "\033[0m"
    state = "running" if running else "stopped"
    print(f"{color}{symbol}{reset} {observation.name}: {state}")
    print(f"  Healthy: {'yes' if observation.healthy else 'no'}")
    print(f"  Enabled: {'yes' if observation.enabled else 'no'}")
    print(f"  Manager: {observation.manager_type.value}")
    if observation.process_id:
        print(f"  PID: {observation.process_id}")
    if observation.start_time:
        print(f"  Started: {observation.start_time.isoformat()}")
    if observation.package:
        print(f"  Package: {observation.package}")
    details = observation.metadata.get("health_details")
    if details:
        print(f"  Health: {details}")
