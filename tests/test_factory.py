"""Tests for strategy construction."""

from __future__ import annotations

import pytest

from servicectl.errors import ConfigurationError, NoCommandsAvailableError
from servicectl.services.factory import (
    ServiceStrategyFactory,
    create_lifecycle_strategy,
    detect_platform,
    get_default_commands_for_service,
    validate_strategy,
)
from servicectl.services.models import CustomCommands, ManagementStrategy
from servicectl.services.strategies import (
    AutoStrategy,
    BrewServicesStrategy,
    DirectCommandStrategy,
    LaunchdStrategy,
    ProcessOnlyStrategy,
    SystemdStrategy,
)


class TestServiceStrategyFactory:
    @pytest.fixture
    def factory(self, executor):
        return ServiceStrategyFactory(executor, platform_name="linux")

    def test_construction_runs_nothing(self, factory, executor):
        for tag in ManagementStrategy:
            factory.create_lifecycle_strategy(tag, None, "redis")
        assert executor.calls == []

    def test_direct_uses_builtin_commands(self, factory):
        strategy = factory.create_lifecycle_strategy("direct_command", None, "colima")
        assert isinstance(strategy, DirectCommandStrategy)
        assert strategy.commands.start == ["colima", "start"]

    def test_empty_custom_commands_fall_back_to_builtins(self, factory):
        strategy = factory.create_lifecycle_strategy(
            ManagementStrategy.DIRECT_COMMAND, CustomCommands(), "podman"
        )
        assert strategy.commands.start == ["podman", "machine", "start"]

    def test_custom_commands_win(self, factory):
        commands = CustomCommands(start=["my", "start"])
        strategy = factory.create_lifecycle_strategy("direct_command", commands, "colima")
        assert strategy.commands.start == ["my", "start"]

    def test_unknown_direct_service_fails_on_use(self, factory, executor, ctx):
        strategy = factory.create_lifecycle_strategy("direct_command", None, "mystery")
        with pytest.raises(NoCommandsAvailableError):
            strategy.start_service(ctx, "mystery")
        assert executor.calls == []

    def test_auto_knows_when_direct_is_available(self, factory):
        with_commands = factory.create_lifecycle_strategy("auto", None, "colima")
        without = factory.create_lifecycle_strategy("auto", None, "redis")
        assert isinstance(with_commands, AutoStrategy)
        assert with_commands.direct_command_available
        assert not without.direct_command_available
        assert ManagementStrategy.DIRECT_COMMAND not in without.candidates()

    def test_launchd_tag_is_systemd_on_linux(self, factory):
        assert isinstance(factory.create_lifecycle_strategy("launchd", None, "nginx"), SystemdStrategy)

    def test_launchd_tag_on_darwin(self, executor):
        factory = ServiceStrategyFactory(executor, platform_name="Darwin", launchd_domain="gui/501")
        strategy = factory.create_lifecycle_strategy("launchd", None, "redis")
        assert isinstance(strategy, LaunchdStrategy)
        assert strategy.domain == "gui/501"

    def test_other_tags(self, factory):
        assert isinstance(factory.create_lifecycle_strategy("brew_services", None, "redis"), BrewServicesStrategy)
        assert isinstance(factory.create_lifecycle_strategy("process_only", None, "redis"), ProcessOnlyStrategy)

    def test_invalid_tag(self, factory):
        with pytest.raises(ConfigurationError):
            factory.create_lifecycle_strategy("supervisord", None, "redis")

    def test_module_level_helper(self, executor):
        strategy = create_lifecycle_strategy(executor, "", None, "redis", platform_name="linux")
        assert isinstance(strategy, AutoStrategy)


def test_default_commands_are_copies() -> None:
    commands = get_default_commands_for_service("colima")
    commands.start.append("--extra")
    assert get_default_commands_for_service("colima").start == ["colima", "start"]
    assert get_default_commands_for_service("redis") is None


def test_validate_strategy() -> None:
    assert validate_strategy("Brew_Services") is ManagementStrategy.BREW_SERVICES
    assert validate_strategy(None) is ManagementStrategy.AUTO
    with pytest.raises(ConfigurationError):
        validate_strategy("nope")


def test_detect_platform() -> None:
    assert detect_platform("Darwin") == "darwin"
    assert detect_platform("Linux") == "linux"
