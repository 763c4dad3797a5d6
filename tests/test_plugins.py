from __future__ import annotations

from pathlib import Path
from types import ModuleType

from servicectl.plugins import call_plugin_hook, discover_plugins, load_enabled_plugins
from servicectl.schema import PluginsConfig, ServicectlConfig


def _write_plugin(plugin_dir: Path, name: str, body: str = "") -> None:
    package_dir = plugin_dir / name
    package_dir.mkdir(parents=True)
    (package_dir / "__init__.py").write_text(body, encoding="utf-8")


def test_discover_plugins_in_custom_dir(tmp_path: Path) -> None:
    plugin_dir = tmp_path / "plugins"
    _write_plugin(plugin_dir, "servicectl_plugin_demo")
    _write_plugin(plugin_dir, "unrelated_module")

    plugins = PluginsConfig(plugin_dirs=[plugin_dir], auto_discover=True)
    names = discover_plugins(ServicectlConfig(plugins=plugins))

    assert "servicectl_plugin_demo" in names
    assert "unrelated_module" not in names


def test_auto_discover_off_returns_enabled_only(tmp_path: Path) -> None:
    plugins = PluginsConfig(enabled_plugins=["my_plugin"], auto_discover=False)
    assert discover_plugins(plugins) == ["my_plugin"]


def test_load_enabled_plugins_and_call_hook(tmp_path: Path) -> None:
    plugin_dir = tmp_path / "plugins"
    _write_plugin(
        plugin_dir,
        "servicectl_plugin_detectors_fixture",
        "def register_detectors(manager):\n    manager.append('registered')\n",
    )
    plugins = PluginsConfig(plugin_dirs=[plugin_dir], auto_discover=True)

    loaded = load_enabled_plugins(plugins)

    assert "servicectl_plugin_detectors_fixture" in loaded
    target: list[str] = []
    called = call_plugin_hook("register_detectors", target, plugins=loaded.values())
    assert "servicectl_plugin_detectors_fixture" in called
    assert target == ["registered"]


def test_failing_hook_does_not_stop_others(caplog) -> None:
    broken = ModuleType("broken_plugin")

    def explode(target):
        raise RuntimeError("nope")

    broken.register_detectors = explode
    working = ModuleType("working_plugin")
    working.register_detectors = lambda target: target.append("ok")
    silent = ModuleType("silent_plugin")

    target: list[str] = []
    with caplog.at_level("WARNING", logger="servicectl"):
        called = call_plugin_hook(
            "register_detectors", target, plugins=[broken, working, silent]
        )

    assert called == ["working_plugin"]
    assert target == ["ok"]
    assert "broken_plugin" in caplog.text
