"""Dependency detection, ordering and satisfaction."""

from __future__ import annotations

from typing import Iterable

from ...context import OperationContext
from ...errors import (
    ConfigurationError,
    DependencyCycleError,
    DependencyError,
    OperationCancelledError,
    ServiceError,
)
from ...executor import Executor
from ...logging_config import LogContext, get_logger
from ..factory import ServiceStrategyFactory
from ..health import (
    DEFAULT_DEPENDENCY_PROBE_TIMEOUT,
    HealthChecker,
    poll_until_healthy,
)
from ..models import HealthCheckConfig, ServiceHealthInfo
from .config import DependencyConfigManager
from .detectors import DependencyDetector
from .models import DEFAULT_BLOCKING_TYPES, DependencyType, ServiceDependency

logger = get_logger(__name__)

DEFAULT_DEPENDENCY_WAIT_TIMEOUT = 30.0


class DependencyManager:
    """Collect dependency edges from detectors and bring dependencies up.

    Detector failures are logged and skipped; partial knowledge is better
    than refusing to manage any service. Cycles are always fatal and are
    rejected before anything is started.
    """

    def __init__(
        self,
        executor: Executor | None = None,
        *,
        factory: ServiceStrategyFactory | None = None,
        config_manager: DependencyConfigManager | None = None,
        blocking_types: Iterable[DependencyType | str] = DEFAULT_BLOCKING_TYPES,
        wait_timeout: float = DEFAULT_DEPENDENCY_WAIT_TIMEOUT,
        probe_timeout: float = DEFAULT_DEPENDENCY_PROBE_TIMEOUT,
        poll_interval: float | None = None,
    ) -> None:
        self.executor = executor
        if factory is None and executor is not None:
            factory = ServiceStrategyFactory(executor)
        self.factory = factory
        self.config_manager = config_manager or DependencyConfigManager(executor)
        self.blocking_types = frozenset(DependencyType.parse(item) for item in blocking_types)
        self.wait_timeout = wait_timeout
        self.probe_timeout = probe_timeout
        self.poll_interval = poll_interval
        self._detectors: list[DependencyDetector] = []
        self._dependencies: dict[str, list[ServiceDependency]] = {}

    @property
    def detectors(self) -> list[DependencyDetector]:
        return list(self._detectors)

    def register_detector(self, detector: DependencyDetector) -> None:
        self._detectors.append(detector)
        self._dependencies.clear()

    def clear_cache(self) -> None:
        self._dependencies.clear()

    def detect_dependencies(
        self, ctx: OperationContext, service_name: str
    ) -> list[ServiceDependency]:
        found: list[ServiceDependency] = []
        for detector in self._detectors:
            try:
                found.extend(detector.detect(ctx, service_name))
            except Exception as exc:
                logger.warning(
                    "Dependency detector %s failed for %s: %s",
                    getattr(detector, "name", type(detector).__name__),
                    service_name,
                    exc,
                )
        self._dependencies[service_name] = found
        return list(found)

    def get_dependencies(self, service_name: str) -> list[ServiceDependency]:
        return list(self._dependencies.get(service_name, []))

    def _edges(self, ctx: OperationContext, service_name: str) -> list[ServiceDependency]:
        if service_name in self._dependencies:
            return self._dependencies[service_name]
        return self.detect_dependencies(ctx, service_name)

    def _walk(self, ctx: OperationContext, service_name: str) -> list[str]:
        """Depth-first post-order over the graph rooted at ``service_name``.

        ``visiting`` holds the nodes on the current path; reaching one of
        them again is a cycle. ``visited`` nodes are complete and never
        walked twice.
        """
        visiting: set[str] = set()
        visited: set[str] = set()
        path: list[str] = []
        order: list[str] = []

        def visit(node: str) -> None:
            if node in visiting:
                raise DependencyCycleError(node, path[path.index(node):])
            if node in visited:
                return
            visiting.add(node)
            path.append(node)
            for dependency in self._edges(ctx, node):
                target = dependency.target_service
                if not target:
                    if dependency.dependency_type is DependencyType.REQUIRED:
                        raise DependencyError(
                            f"required dependency of {node} has no target service"
                        )
                    continue
                visit(target)
            path.pop()
            visiting.discard(node)
            visited.add(node)
            order.append(node)

        visit(service_name)
        return order

    def validate_dependency_chain(self, ctx: OperationContext, service_name: str) -> None:
        self._walk(ctx, service_name)

    def get_dependency_chain(
        self, ctx: OperationContext, service_name: str
    ) -> list[ServiceDependency]:
        """All edges reachable from ``service_name``, leaves' edges first."""
        chain: list[ServiceDependency] = []
        for node in self._walk(ctx, service_name):
            chain.extend(self._edges(ctx, node))
        return chain

    def get_startup_order(self, ctx: OperationContext, service_name: str) -> list[str]:
        """Services to start before ``service_name``, dependencies first."""
        return self._walk(ctx, service_name)[:-1]

    def is_blocking(self, dependency_type: DependencyType) -> bool:
        return dependency_type in self.blocking_types

    def satisfy_dependencies(self, ctx: OperationContext, service_name: str) -> list[str]:
        """Start and health-gate every actionable dependency of ``service_name``.

        Returns the dependency services that were handled, in order.
        """
        order = self._walk(ctx, service_name)
        handled: list[str] = []
        for node in order:
            for dependency in self._edges(ctx, node):
                target = dependency.target_service
                if not target or target in handled:
                    continue
                if dependency.dependency_type is DependencyType.OPTIONAL:
                    logger.debug("Skipping optional dependency %s of %s", target, node)
                    continue
                with LogContext(dependency=target, dependent=node):
                    try:
                        self._satisfy(ctx, dependency)
                    except OperationCancelledError:
                        raise
                    except ServiceError as exc:
                        if self.is_blocking(dependency.dependency_type):
                            raise DependencyError(
                                f"dependency {target} of {node} could not be satisfied: {exc}",
                                metadata={
                                    "dependency": target,
                                    "dependent": node,
                                    "type": dependency.dependency_type.value,
                                },
                            ) from exc
                        logger.warning(
                            "Best-effort %s dependency %s of %s failed: %s",
                            dependency.dependency_type.value,
                            target,
                            node,
                            exc,
                        )
                        continue
                handled.append(target)
        return handled

    def _satisfy(self, ctx: OperationContext, dependency: ServiceDependency) -> None:
        if self.factory is None:
            raise ConfigurationError("dependency manager has no strategy factory")
        target = dependency.target_service
        config = self.config_manager.resolve(ctx, target)
        strategy = self.factory.create_lifecycle_strategy(
            config.strategy,
            config.custom_commands,
            target,
            health_check=config.health_check,
        )

        status = strategy.status_check(ctx, target)
        if not status.running:
            logger.info(
                "Starting dependency %s for %s", target, dependency.source_service
            )
            strategy.start_service(ctx, target)

        if dependency.health_check is not None and dependency.health_check.is_configured():
            self._wait_healthy(ctx, target, dependency.health_check)

    def _wait_healthy(
        self, ctx: OperationContext, target: str, health_check: HealthCheckConfig
    ) -> None:
        checker = HealthChecker(self.executor) if self.executor is not None else None
        if checker is None:
            raise ConfigurationError("dependency manager has no executor for health checks")

        def probe(probe_ctx: OperationContext) -> ServiceHealthInfo:
            result = checker.check(probe_ctx, health_check)
            return ServiceHealthInfo(healthy=result.healthy, details=result.summary())

        interval = self.poll_interval
        if interval is None:
            interval = health_check.interval or 5.0
        poll_until_healthy(
            ctx,
            probe,
            timeout=health_check.timeout or self.wait_timeout,
            interval=interval,
            probe_timeout=self.probe_timeout,
            label=f"dependency {target}",
        )


__all__ = ["DEFAULT_DEPENDENCY_WAIT_TIMEOUT", "DependencyManager"]
