"""Service dependency detection and satisfaction."""

from .config import DependencyConfigManager, default_dependency_configs
from .detectors import ContainerRuntimeDetector, DependencyDetector, StaticDependencyDetector
from .manager import DependencyManager
from .models import (
    DEFAULT_BLOCKING_TYPES,
    DependencyConfig,
    DependencyType,
    ProxyConfig,
    ServiceDependency,
)

__all__ = [
    "DEFAULT_BLOCKING_TYPES",
    "ContainerRuntimeDetector",
    "DependencyConfig",
    "DependencyConfigManager",
    "DependencyDetector",
    "DependencyManager",
    "DependencyType",
    "ProxyConfig",
    "ServiceDependency",
    "StaticDependencyDetector",
    "default_dependency_configs",
]
