"""Tests for applying desired state through the orchestrator."""

from __future__ import annotations

import json
import os
import time
from unittest.mock import patch

import pytest

from conftest import fail, ok
from servicectl.errors import (
    ConfigurationError,
    DependencyCycleError,
    HealthWaitTimeoutError,
    StrategyUnsupportedError,
)
from servicectl.services.dependencies import (
    DependencyConfig,
    DependencyConfigManager,
    DependencyManager,
    ServiceDependency,
    StaticDependencyDetector,
)
from servicectl.services.factory import ServiceStrategyFactory
from servicectl.services.models import (
    CustomCommands,
    HealthCheckConfig,
    ManagementStrategy,
    RunState,
    ServiceSpec,
    Startup,
)
from servicectl.services.orchestrator import OrchestratorSettings, ServiceOrchestrator

GUI_DOMAIN = f"gui/{os.getuid()}"


def _brew_list(status: str, pid: int | None = None) -> str:
    entry = {"name": "redis", "status": status}
    if pid:
        entry["pid"] = pid
    return json.dumps([entry])


def _direct_spec(name: str, **kwargs) -> ServiceSpec:
    return ServiceSpec(
        name=name,
        strategy=ManagementStrategy.DIRECT_COMMAND,
        custom_commands=CustomCommands(
            start=[f"{name}-start"], stop=[f"{name}-stop"], status=[f"{name}-status"]
        ),
        **kwargs,
    )


def _orchestrator(executor, *dependencies, configs=()) -> ServiceOrchestrator:
    factory = ServiceStrategyFactory(executor, platform_name="linux")
    config_manager = DependencyConfigManager(executor)
    for config in configs:
        config_manager.register_config(config)
    manager = DependencyManager(executor, factory=factory, config_manager=config_manager)
    if dependencies:
        manager.register_detector(StaticDependencyDetector(dependencies))
    return ServiceOrchestrator(
        executor,
        dependency_manager=manager,
        factory=factory,
        settings=OrchestratorSettings(poll_interval=0.01, probe_timeout=1.0, platform="linux"),
    )


class TestRedisScenario:
    """brew services, enabled at login, running, wait for healthy."""

    @pytest.fixture
    def spec(self):
        return ServiceSpec(
            name="redis",
            strategy=ManagementStrategy.BREW_SERVICES,
            startup=Startup.ENABLED,
            state=RunState.RUNNING,
            wait_for_healthy=True,
            wait_timeout="2s",
        )

    def _script(self, executor):
        executor.script(
            ["brew", "services", "list", "--json"],
            ok(_brew_list("none")),
            ok(_brew_list("started", 4242)),
        )
        executor.script(
            ["launchctl", "print-disabled", GUI_DOMAIN],
            ok(f'disabled services = {{\n\t"homebrew.mxcl.redis" => enabled\n}}\n'),
        )
        executor.script(["launchctl", "enable", f"{GUI_DOMAIN}/homebrew.mxcl.redis"], ok())
        executor.script(["brew", "services", "start", "redis"], ok())

    def test_create_enables_starts_and_waits(self, spec, executor, ctx):
        self._script(executor)
        executor.script(["redis-cli", "ping"], fail(1, stderr="Connection refused"), ok("PONG\n"))
        orchestrator = _orchestrator(executor)

        observation = orchestrator.create(ctx, spec)

        enable = executor.index("launchctl", "enable", f"{GUI_DOMAIN}/homebrew.mxcl.redis")
        start = executor.index("brew", "services", "start", "redis")
        assert enable < start
        assert executor.count("redis-cli", "ping") >= 2
        assert observation.running
        assert observation.healthy
        assert observation.enabled
        assert observation.process_id == "4242"
        assert observation.manager_type is ManagementStrategy.BREW_SERVICES
        assert observation.package == "redis"
        assert observation.metadata["strategy"] == "brew_services"

    def test_unset_startup_never_touches_login_registration(self, executor, ctx):
        spec = ServiceSpec(name="redis", strategy=ManagementStrategy.BREW_SERVICES)
        executor.script(
            ["brew", "services", "list", "--json"],
            ok(_brew_list("none")),
            ok(_brew_list("started", 4242)),
        )
        executor.script(["launchctl", "print-disabled", GUI_DOMAIN], ok("disabled services = {\n}\n"))
        executor.script(["brew", "services", "run", "redis"], ok())

        _orchestrator(executor).apply_service_state(ctx, spec)

        assert executor.called("brew", "services", "run", "redis")
        assert not executor.called("brew", "services", "start", "redis")
        assert not any(call[:2] == ["launchctl", "enable"] for call in executor.calls)
        assert not any(call[:2] == ["launchctl", "disable"] for call in executor.calls)

    def test_unset_startup_stop_keeps_registration(self, executor, ctx):
        spec = ServiceSpec(
            name="redis", strategy=ManagementStrategy.BREW_SERVICES, state=RunState.STOPPED
        )
        executor.script(["brew", "services", "list", "--json"], ok(_brew_list("started", 4242)))
        executor.script(["launchctl", "print-disabled", GUI_DOMAIN], ok("disabled services = {\n}\n"))
        executor.script(["brew", "services", "kill", "redis"], ok())

        _orchestrator(executor).apply_service_state(ctx, spec)

        assert executor.calls == [
            ["brew", "services", "list", "--json"],
            ["launchctl", "print-disabled", GUI_DOMAIN],
            ["brew", "services", "kill", "redis"],
        ]

    def test_auto_resolves_and_waits(self, executor, ctx):
        spec = ServiceSpec(name="redis", wait_for_healthy=True, wait_timeout="30s")
        executor.script(["systemctl", "show", "redis", "--property=LoadState"], ok("LoadState=loaded\n"))
        executor.script(["systemctl", "is-active", "redis"], fail(3), ok("active\n"))
        executor.script(["systemctl", "start", "redis"], ok())
        executor.script(["systemctl", "show", "redis", "--property=MainPID"], ok("MainPID=99\n"))
        executor.script(["systemctl", "is-enabled", "redis"], ok("enabled\n"))
        executor.script(["redis-cli", "ping"], fail(1), fail(1), ok("PONG\n"))
        start = time.monotonic()

        observation = _orchestrator(executor).create(ctx, spec)

        assert time.monotonic() - start < 30
        assert executor.called("systemctl", "start", "redis")
        assert executor.count("redis-cli", "ping") >= 3
        assert observation.healthy
        assert observation.metadata["strategy"] == "auto"
        assert observation.metadata["resolved_strategy"] == "launchd"
        assert not executor.called("systemctl", "enable", "redis")

    def test_wait_times_out(self, spec, executor, ctx):
        self._script(executor)
        executor.script(["redis-cli", "ping"], fail(1, stderr="Connection refused"))
        spec.wait_timeout = "100ms"
        orchestrator = _orchestrator(executor)

        with pytest.raises(HealthWaitTimeoutError):
            orchestrator.create(ctx, spec)
        assert executor.called("brew", "services", "start", "redis")


class TestApplyServiceState:
    def test_stopped_never_polls_health(self, executor, ctx):
        spec = _direct_spec("app", state=RunState.STOPPED, wait_for_healthy=True)
        executor.script(["app-status"], ok(), fail(1))
        executor.script(["app-stop"], ok())
        orchestrator = _orchestrator(executor)

        with patch("servicectl.services.orchestrator.poll_until_healthy") as poll:
            orchestrator.apply_service_state(ctx, spec)

        poll.assert_not_called()
        assert executor.called("app-stop")

    def test_running_without_wait_never_polls(self, executor, ctx):
        spec = _direct_spec("app")
        executor.script(["app-status"], fail(1))
        executor.script(["app-start"], ok())

        with patch("servicectl.services.orchestrator.poll_until_healthy") as poll:
            _orchestrator(executor).apply_service_state(ctx, spec)

        poll.assert_not_called()

    def test_invalid_wait_timeout_fails_before_side_effects(self, executor, ctx):
        spec = _direct_spec("app", wait_for_healthy=True, wait_timeout="soon")
        with pytest.raises(ConfigurationError):
            _orchestrator(executor).apply_service_state(ctx, spec)
        assert executor.calls == []

    def test_cycle_fails_before_side_effects(self, executor, ctx):
        spec = _direct_spec("a", startup=Startup.ENABLED)
        spec.custom_commands.enable = ["a-enable"]
        orchestrator = _orchestrator(
            executor,
            ServiceDependency(source_service="a", target_service="b"),
            ServiceDependency(source_service="b", target_service="a"),
        )

        with pytest.raises(DependencyCycleError):
            orchestrator.create(ctx, spec)
        with pytest.raises(DependencyCycleError):
            orchestrator.update(ctx, spec)
        assert executor.calls == []

    def test_dependencies_start_before_service(self, executor, ctx):
        spec = _direct_spec("app")
        orchestrator = _orchestrator(
            executor,
            ServiceDependency(source_service="app", target_service="db"),
            configs=[
                DependencyConfig(
                    service_name="db",
                    strategy=ManagementStrategy.DIRECT_COMMAND,
                    custom_commands=CustomCommands(start=["db-start"], status=["db-status"]),
                )
            ],
        )
        executor.script(["db-status"], fail(1))
        executor.script(["db-start"], ok())
        executor.script(["app-status"], fail(1))
        executor.script(["app-start"], ok())

        orchestrator.apply_service_state(ctx, spec)

        assert executor.index("db-start") < executor.index("app-start")

    def test_stopped_service_skips_dependencies(self, executor, ctx):
        spec = _direct_spec("app", state=RunState.STOPPED)
        orchestrator = _orchestrator(
            executor, ServiceDependency(source_service="app", target_service="db")
        )
        executor.script(["app-status"], fail(1))

        orchestrator.apply_service_state(ctx, spec)

        assert not any(call[0].startswith("db") for call in executor.calls)

    def test_enable_unsupported_raises(self, executor, ctx):
        spec = _direct_spec("app", startup=Startup.ENABLED)
        with pytest.raises(StrategyUnsupportedError):
            _orchestrator(executor).apply_service_state(ctx, spec)
        assert not executor.called("app-start")

    def test_process_only_ignores_startup(self, executor, ctx):
        spec = ServiceSpec(
            name="ollama", strategy=ManagementStrategy.PROCESS_ONLY, startup=Startup.ENABLED
        )
        executor.script(["pgrep", "-f", "ollama"], ok("12\n"))

        _orchestrator(executor).apply_service_state(ctx, spec)

        assert executor.calls == [["pgrep", "-f", "ollama"]]


class TestIndependentAxes:
    """Run state and boot registration are applied separately."""

    def test_running_but_disabled(self, executor, ctx):
        spec = ServiceSpec(
            name="app",
            strategy=ManagementStrategy.LAUNCHD,
            state=RunState.RUNNING,
            startup=Startup.DISABLED,
        )
        executor.script(["systemctl", "disable", "app"], ok())
        executor.script(["systemctl", "is-active", "app"], fail(3), ok("active\n"))
        executor.script(["systemctl", "start", "app"], ok())
        executor.script(["systemctl", "show", "app", "--property=MainPID"], ok("MainPID=77\n"))
        executor.script(["systemctl", "is-enabled", "app"], fail(1, stdout="disabled\n"))
        orchestrator = _orchestrator(executor)

        orchestrator.apply_service_state(ctx, spec)

        assert executor.calls == [
            ["systemctl", "disable", "app"],
            ["systemctl", "is-active", "app"],
            ["systemctl", "start", "app"],
        ]
        observation = orchestrator.read(ctx, spec)
        assert observation.running
        assert not observation.enabled
        assert not executor.called("systemctl", "enable", "app")

    def test_stopped_but_enabled(self, executor, ctx):
        spec = ServiceSpec(
            name="app",
            strategy=ManagementStrategy.LAUNCHD,
            state=RunState.STOPPED,
            startup=Startup.ENABLED,
        )
        executor.script(["systemctl", "enable", "app"], ok())
        executor.script(["systemctl", "is-active", "app"], ok("active\n"), fail(3))
        executor.script(["systemctl", "stop", "app"], ok())
        executor.script(["systemctl", "is-enabled", "app"], ok("enabled\n"))
        orchestrator = _orchestrator(executor)

        orchestrator.apply_service_state(ctx, spec)

        assert executor.calls == [
            ["systemctl", "enable", "app"],
            ["systemctl", "is-active", "app"],
            ["systemctl", "stop", "app"],
        ]
        observation = orchestrator.read(ctx, spec)
        assert not observation.running
        assert observation.enabled
        assert not executor.called("systemctl", "disable", "app")


class TestRefresh:
    def test_read_probes_fresh(self, executor, ctx):
        spec = _direct_spec("app")
        executor.script(["app-status"], ok(), fail(1))
        orchestrator = _orchestrator(executor)

        first = orchestrator.read(ctx, spec)
        second = orchestrator.read(ctx, spec)

        assert first.running
        assert not second.running

    def test_health_failure_is_unhealthy_not_an_error(self, executor, ctx):
        spec = _direct_spec("app", health_check=HealthCheckConfig(command="app-ping"))
        executor.script(["app-status"], ok())
        executor.script(["app-ping"], fail(2, stderr="bad"))

        observation = _orchestrator(executor).read(ctx, spec)

        assert observation.running
        assert not observation.healthy
        assert "app-ping" in observation.metadata["health_details"]


class TestTeardown:
    def test_failures_become_warnings(self, executor, ctx):
        spec = _direct_spec("app", startup=Startup.ENABLED)
        executor.script(["app-status"], ok())
        executor.script(["app-stop"], fail(1, stderr="permission denied"))

        report = _orchestrator(executor).teardown(ctx, spec)

        assert not report.stopped
        assert not report.disabled
        assert len(report.warnings) == 2
        assert not report.clean

    def test_clean_teardown(self, executor, ctx):
        spec = _direct_spec("app", startup=Startup.ENABLED)
        spec.custom_commands.disable = ["app-disable"]
        executor.script(["app-status"], ok())
        executor.script(["app-stop"], ok())
        executor.script(["app-disable"], ok())

        report = _orchestrator(executor).teardown(ctx, spec)

        assert report.stopped
        assert report.disabled
        assert report.clean

    def test_auto_resolved_to_process_only_does_not_report_disabled(self, executor, ctx):
        spec = ServiceSpec(name="worker", state=RunState.STOPPED, startup=Startup.ENABLED)
        executor.script(["systemctl", "show", "worker", "--property=LoadState"], ok("LoadState=not-found\n"))
        executor.script(["brew", "services", "list", "--json"], ok("[]"))

        report = _orchestrator(executor).teardown(ctx, spec)

        assert not report.disabled
        assert report.clean
        assert executor.calls == [
            ["systemctl", "show", "worker", "--property=LoadState"],
            ["brew", "services", "list", "--json"],
        ]

    def test_stopped_spec_does_not_stop(self, executor, ctx):
        spec = _direct_spec("app", state=RunState.STOPPED)
        report = _orchestrator(executor).teardown(ctx, spec)
        assert executor.calls == []
        assert report.clean


class TestPackageValidation:
    def test_mismatch_is_rejected(self, executor, ctx):
        spec = _direct_spec("mysqld", package="redis", validate_package=True)
        with pytest.raises(ConfigurationError):
            _orchestrator(executor).create(ctx, spec)
        assert executor.calls == []

    def test_unknown_package_only_warns(self, executor, ctx, caplog):
        spec = _direct_spec("app", package="in-house", validate_package=True)
        executor.script(["app-status"], ok())

        with caplog.at_level("WARNING", logger="servicectl"):
            observation = _orchestrator(executor).create(ctx, spec)

        assert observation.package == "in-house"
        assert "has no known services" in caplog.text


def test_import_service(executor, ctx) -> None:
    executor.script(["systemctl", "show", "nginx", "--property=LoadState"], ok("LoadState=loaded\n"))
    executor.script(["systemctl", "is-active", "nginx"], ok())
    executor.script(["systemctl", "show", "nginx", "--property=MainPID"], ok("MainPID=0\n"))
    executor.script(["systemctl", "is-enabled", "nginx"], fail(1))

    with patch("servicectl.services.health.requests.get") as get:
        get.return_value.status_code = 200
        spec, observation = _orchestrator(executor).import_service(ctx, "nginx")

    assert spec.state is RunState.RUNNING
    assert spec.startup is Startup.DISABLED
    assert observation.metadata["resolved_strategy"] == "launchd"
    assert observation.package == "nginx"
