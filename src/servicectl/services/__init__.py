"""Service lifecycle management primitives."""

from .dependencies import DependencyManager, ServiceDependency
from .factory import (
    ServiceStrategyFactory,
    create_lifecycle_strategy,
    get_default_commands_for_service,
    validate_strategy,
)
from .health import HealthChecker, HealthResult, poll_until_healthy
from .mapping import PackageServiceMapping, default_mapping
from .models import (
    CustomCommands,
    HealthCheckConfig,
    ManagementStrategy,
    RunState,
    ServiceHealthInfo,
    ServiceObservation,
    ServiceSpec,
    ServiceStatusInfo,
    Startup,
    TeardownReport,
)
from .orchestrator import OrchestratorSettings, ServiceOrchestrator
from .strategies import AUTO_DISCOVERY_ORDER, LifecycleStrategy

__all__ = [
    "AUTO_DISCOVERY_ORDER",
    "CustomCommands",
    "DependencyManager",
    "HealthCheckConfig",
    "HealthChecker",
    "HealthResult",
    "LifecycleStrategy",
    "ManagementStrategy",
    "OrchestratorSettings",
    "PackageServiceMapping",
    "RunState",
    "ServiceDependency",
    "ServiceHealthInfo",
    "ServiceObservation",
    "ServiceOrchestrator",
    "ServiceSpec",
    "ServiceStatusInfo",
    "ServiceStrategyFactory",
    "Startup",
    "TeardownReport",
    "create_lifecycle_strategy",
    "default_mapping",
    "get_default_commands_for_service",
    "poll_until_healthy",
    "validate_strategy",
]
