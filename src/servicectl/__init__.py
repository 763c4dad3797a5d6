"""servicectl: declarative service lifecycle orchestration."""

__version__ = "0.1.0"

from .config import load_config, load_config_model
from .context import OperationContext
from .plugins import discover_plugins, load_plugins

__all__ = [
    "OperationContext",
    "load_config",
    "load_config_model",
    "discover_plugins",
    "load_plugins",
]
