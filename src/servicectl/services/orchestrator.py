"""Bring a service to its desired run state and boot registration."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..context import OperationContext
from ..durations import parse_duration
from ..errors import ConfigurationError, ServiceError, StrategyUnsupportedError
from ..executor import Executor
from ..logging_config import LogContext, get_logger
from .dependencies import DependencyManager
from .factory import ServiceStrategyFactory
from .health import DEFAULT_POLL_INTERVAL, DEFAULT_PROBE_TIMEOUT, poll_until_healthy
from .mapping import PackageServiceMapping, default_mapping
from .models import (
    ManagementStrategy,
    RunState,
    ServiceHealthInfo,
    ServiceObservation,
    ServiceSpec,
    Startup,
    TeardownReport,
)
from .strategies import AutoStrategy, LifecycleStrategy
from .strategies.auto import DEFAULT_DISCOVERY_TIMEOUT

logger = get_logger(__name__)


@dataclass
class OrchestratorSettings:
    poll_interval: float = DEFAULT_POLL_INTERVAL
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    discovery_timeout: float = DEFAULT_DISCOVERY_TIMEOUT
    platform: str | None = None
    launchd_domain: str = "system"

    @classmethod
    def from_general(cls, general: Any) -> OrchestratorSettings:
        """Build from a ``GeneralConfig``."""
        return cls(
            poll_interval=general.poll_interval,
            probe_timeout=general.probe_timeout,
            discovery_timeout=general.discovery_timeout,
            platform=general.platform,
            launchd_domain=general.launchd_domain,
        )


class ServiceOrchestrator:
    """Apply ``ServiceSpec`` desired state through a lifecycle strategy.

    Order of operations for an apply: boot registration first, then
    dependencies (only when the service should run), then the run state,
    then an optional health wait. Reads always probe fresh.
    """

    def __init__(
        self,
        executor: Executor,
        *,
        mapping: PackageServiceMapping | None = None,
        dependency_manager: DependencyManager | None = None,
        factory: ServiceStrategyFactory | None = None,
        settings: OrchestratorSettings | None = None,
    ) -> None:
        self.executor = executor
        self.settings = settings or OrchestratorSettings()
        self.mapping = mapping if mapping is not None else default_mapping()
        self.factory = factory or ServiceStrategyFactory(
            executor,
            mapping=self.mapping,
            platform_name=self.settings.platform,
            launchd_domain=self.settings.launchd_domain,
            discovery_timeout=self.settings.discovery_timeout,
        )
        self.dependency_manager = dependency_manager or DependencyManager(
            executor, factory=self.factory
        )

    def strategy_for(self, spec: ServiceSpec) -> LifecycleStrategy:
        return self.factory.create_lifecycle_strategy(
            spec.strategy,
            spec.custom_commands,
            spec.name,
            health_check=spec.health_check,
        )

    def create(self, ctx: OperationContext, spec: ServiceSpec) -> ServiceObservation:
        with LogContext(service=spec.name, operation="create"):
            self.dependency_manager.detect_dependencies(ctx, spec.name)
            self.dependency_manager.validate_dependency_chain(ctx, spec.name)
            self._validate_package(spec)
            strategy = self.apply_service_state(ctx, spec)
            return self.refresh(ctx, spec, strategy)

    def update(self, ctx: OperationContext, spec: ServiceSpec) -> ServiceObservation:
        with LogContext(service=spec.name, operation="update"):
            strategy = self.apply_service_state(ctx, spec)
            return self.refresh(ctx, spec, strategy)

    def read(self, ctx: OperationContext, spec: ServiceSpec) -> ServiceObservation:
        with LogContext(service=spec.name, operation="read"):
            return self.refresh(ctx, spec)

    def apply_service_state(
        self,
        ctx: OperationContext,
        spec: ServiceSpec,
        strategy: LifecycleStrategy | None = None,
    ) -> LifecycleStrategy:
        wait_timeout = None
        if spec.state is RunState.RUNNING and spec.wait_for_healthy:
            wait_timeout = parse_duration(spec.wait_timeout)

        strategy = strategy or self.strategy_for(spec)
        if spec.state is RunState.RUNNING:
            # Reject cycles before anything is changed on the system.
            self.dependency_manager.validate_dependency_chain(ctx, spec.name)

        if spec.startup is not None and strategy.startup_supported(ctx, spec.name):
            self._apply_startup(ctx, spec, strategy)

        if spec.state is RunState.RUNNING:
            self.dependency_manager.satisfy_dependencies(ctx, spec.name)
            strategy.start_service(ctx, spec.name)
            if wait_timeout is not None:
                self._wait(ctx, spec.name, strategy, wait_timeout)
        else:
            strategy.stop_service(ctx, spec.name)
        return strategy

    def _apply_startup(
        self, ctx: OperationContext, spec: ServiceSpec, strategy: LifecycleStrategy
    ) -> None:
        enabled = spec.startup is Startup.ENABLED
        try:
            strategy.set_startup(ctx, spec.name, enabled)
        except StrategyUnsupportedError as exc:
            if enabled:
                raise
            logger.info("Nothing to disable for %s: %s", spec.name, exc)

    def wait_for_healthy(
        self,
        ctx: OperationContext,
        spec: ServiceSpec,
        strategy: LifecycleStrategy | None = None,
    ) -> ServiceHealthInfo:
        timeout = parse_duration(spec.wait_timeout)
        return self._wait(ctx, spec.name, strategy or self.strategy_for(spec), timeout)

    def _wait(
        self,
        ctx: OperationContext,
        name: str,
        strategy: LifecycleStrategy,
        timeout: float,
    ) -> ServiceHealthInfo:
        logger.info("Waiting up to %.0fs for %s to become healthy", timeout, name)
        return poll_until_healthy(
            ctx,
            lambda probe_ctx: strategy.health_check(probe_ctx, name),
            timeout=timeout,
            interval=self.settings.poll_interval,
            probe_timeout=self.settings.probe_timeout,
            label=name,
        )

    def refresh(
        self,
        ctx: OperationContext,
        spec: ServiceSpec,
        strategy: LifecycleStrategy | None = None,
    ) -> ServiceObservation:
        strategy = strategy or self.strategy_for(spec)
        status = strategy.status_check(ctx, spec.name)
        try:
            health = strategy.health_check(ctx, spec.name)
        except ServiceError as exc:
            logger.warning("Health check for %s failed: %s", spec.name, exc)
            health = ServiceHealthInfo(
                healthy=False,
                strategy=strategy.get_strategy_name(),
                details=f"health check failed: {exc}",
            )

        metadata = {
            "strategy": spec.strategy.value,
            "resolved_strategy": status.strategy.value,
            "status_details": status.details,
            "health_details": health.details,
        }
        if isinstance(strategy, AutoStrategy):
            resolved = strategy.resolved_strategy(spec.name)
            if resolved is not None:
                metadata["resolved_strategy"] = resolved.value

        return ServiceObservation(
            name=spec.name,
            running=status.running,
            healthy=health.healthy,
            enabled=status.enabled,
            process_id=status.process_id,
            start_time=status.start_time,
            manager_type=status.strategy,
            package=spec.package or self.mapping.get_package_for_service(spec.name),
            metadata=metadata,
            last_updated=datetime.now(),
        )

    def teardown(self, ctx: OperationContext, spec: ServiceSpec) -> TeardownReport:
        """Undo the desired state. Failures are collected as warnings."""
        report = TeardownReport(name=spec.name)
        with LogContext(service=spec.name, operation="teardown"):
            try:
                strategy = self.strategy_for(spec)
            except ServiceError as exc:
                report.warnings.append(f"could not build strategy: {exc}")
                return report

            if spec.state is RunState.RUNNING:
                try:
                    strategy.stop_service(ctx, spec.name)
                    report.stopped = True
                except ServiceError as exc:
                    logger.warning("Failed to stop %s during teardown: %s", spec.name, exc)
                    report.warnings.append(f"failed to stop service: {exc}")

            if spec.startup is Startup.ENABLED:
                try:
                    if strategy.startup_supported(ctx, spec.name):
                        strategy.disable_service(ctx, spec.name)
                        report.disabled = True
                    else:
                        logger.info("%s has no boot registration to remove", spec.name)
                except ServiceError as exc:
                    logger.warning("Failed to disable %s during teardown: %s", spec.name, exc)
                    report.warnings.append(f"failed to disable service: {exc}")
        return report

    def import_service(
        self, ctx: OperationContext, name: str
    ) -> tuple[ServiceSpec, ServiceObservation]:
        """Describe an existing service as a spec matching its current state."""
        spec = ServiceSpec(name=name, strategy=ManagementStrategy.AUTO)
        with LogContext(service=name, operation="import"):
            observation = self.refresh(ctx, spec)
        spec.state = RunState.RUNNING if observation.running else RunState.STOPPED
        spec.startup = Startup.ENABLED if observation.enabled else Startup.DISABLED
        return spec, observation

    def _validate_package(self, spec: ServiceSpec) -> None:
        if not spec.validate_package or not spec.package:
            return
        services = self.mapping.get_services_for_package(spec.package)
        if not services:
            logger.warning("Package %s has no known services", spec.package)
            return
        if spec.name not in services:
            raise ConfigurationError(
                f"service {spec.name} is not provided by package {spec.package} "
                f"(known services: {', '.join(services)})"
            )


__all__ = ["OrchestratorSettings", "ServiceOrchestrator"]
