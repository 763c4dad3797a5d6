"""Plugin discovery and loading helpers.

A plugin is any importable module whose name starts with one of the
configured prefixes (default ``servicectl_plugin``) or that is listed in
``plugins.enabled_plugins``. Plugins extend servicectl through hooks:

- ``register_detectors(manager)`` adds dependency detectors.
- ``register_parsers(subparsers)`` adds CLI commands.
"""

from __future__ import annotations

import importlib
import pkgutil
import sys
from contextlib import contextmanager
from pathlib import Path
from types import ModuleType
from typing import Any, Iterable

from .logging_config import get_logger
from .schema import PluginsConfig, ServicectlConfig

logger = get_logger(__name__)


def _iter_module_names(paths: list[Path] | None) -> set[str]:
    module_names: set[str] = set()
    if paths:
        search_paths = [str(path) for path in paths if path.exists()]
        for module in pkgutil.iter_modules(search_paths):
            module_names.add(module.name)
        return module_names
    for module in pkgutil.iter_modules():
        module_names.add(module.name)
    return module_names


def _filter_prefixes(names: Iterable[str], prefixes: list[str]) -> list[str]:
    return sorted(
        {
            name
            for name in names
            if any(name.startswith(prefix) for prefix in prefixes)
        }
    )


@contextmanager
def _prepend_sys_path(paths: list[Path]) -> Iterable[None]:
    path_strings = [str(path) for path in paths if path.exists()]
    if not path_strings:
        yield
        return
    original = list(sys.path)
    sys.path = path_strings + sys.path
    try:
        yield
    finally:
        sys.path = original


def _normalize_plugins_config(
    config: ServicectlConfig | PluginsConfig | dict | None,
) -> PluginsConfig:
    if config is None:
        return PluginsConfig()
    if isinstance(config, PluginsConfig):
        return config
    if isinstance(config, ServicectlConfig):
        return config.plugins
    if isinstance(config, dict):
        return PluginsConfig.from_dict(config.get("plugins", config))
    return PluginsConfig()


def discover_plugins(
    config: ServicectlConfig | PluginsConfig | dict | None = None,
    extra_paths: Iterable[Path] | None = None,
) -> list[str]:
    plugins_config = _normalize_plugins_config(config)
    names = set(plugins_config.enabled_plugins)

    if not plugins_config.auto_discover:
        return sorted(names)

    prefixes = plugins_config.auto_discover_prefixes or ["servicectl_plugin"]
    search_paths = list(plugins_config.plugin_dirs)
    if extra_paths:
        search_paths.extend(extra_paths)

    if search_paths:
        names.update(_filter_prefixes(_iter_module_names(search_paths), prefixes))
    names.update(_filter_prefixes(_iter_module_names(None), prefixes))
    return sorted(names)


def load_plugins(
    plugin_names: Iterable[str],
    plugin_dirs: Iterable[Path] | None = None,
) -> dict[str, ModuleType]:
    loaded: dict[str, ModuleType] = {}
    dirs = list(plugin_dirs or [])
    with _prepend_sys_path(dirs):
        for name in plugin_names:
            try:
                loaded[name] = importlib.import_module(name)
            except Exception as exc:
                logger.warning("Failed to load plugin %s: %s", name, exc)
    return loaded


def load_enabled_plugins(
    config: ServicectlConfig | PluginsConfig | dict | None = None,
) -> dict[str, ModuleType]:
    plugins_config = _normalize_plugins_config(config)
    names = discover_plugins(plugins_config)
    return load_plugins(names, plugins_config.plugin_dirs)


def call_plugin_hook(
    hook: str,
    *args: Any,
    plugins: Iterable[ModuleType],
) -> list[str]:
    """Call ``hook(*args)`` on every plugin that defines it.

    Returns the names of plugins whose hook ran. A failing hook is logged
    and does not stop the others.
    """
    called: list[str] = []
    for module in plugins:
        func = getattr(module, hook, None)
        if not callable(func):
            continue
        try:
            func(*args)
        except Exception as exc:
            logger.warning("Plugin %s hook %s failed: %s", module.__name__, hook, exc)
            continue
        called.append(module.__name__)
    return called
