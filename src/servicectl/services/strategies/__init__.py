"""Service lifecycle strategies."""

from .auto import AUTO_DISCOVERY_ORDER, AutoStrategy
from .base import LifecycleStrategy
from .brew import BrewServicesStrategy
from .direct import DirectCommandStrategy
from .launchd import LaunchdStrategy
from .process import ProcessOnlyStrategy
from .systemd import SystemdStrategy

__all__ = [
    "AUTO_DISCOVERY_ORDER",
    "AutoStrategy",
    "BrewServicesStrategy",
    "DirectCommandStrategy",
    "LaunchdStrategy",
    "LifecycleStrategy",
    "ProcessOnlyStrategy",
    "SystemdStrategy",
]
