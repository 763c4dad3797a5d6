"""Homebrew ``brew services`` strategy.

Run state goes through ``brew services``. Login registration is only
changed by ``enable_service``/``disable_service``: a service is started with
``brew services run`` and stopped with ``brew services kill``, neither of
which touches registration. ``start``/``stop`` are used only when an
explicit launchd override on ``gui/<uid>/homebrew.mxcl.<name>`` already
says the service should (not) be registered.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from ...context import OperationContext
from ...errors import CommandExecutionError
from ...logging_config import get_logger
from ..models import ManagementStrategy, ServiceStatusInfo
from .base import LifecycleStrategy, process_start_time
from .launchd import parse_print_disabled

logger = get_logger(__name__)

DEFAULT_LAUNCH_AGENTS_DIR = Path.home() / "Library" / "LaunchAgents"


def parse_services_list(output: str) -> list[dict[str, Any]]:
    try:
        data = json.loads(output or "[]")
    except json.JSONDecodeError as exc:
        raise CommandExecutionError(
            f"could not parse brew services output: {exc}",
            command=["brew", "services", "list", "--json"],
        ) from exc
    if not isinstance(data, list):
        raise CommandExecutionError(
            "unexpected brew services output",
            command=["brew", "services", "list", "--json"],
        )
    return [item for item in data if isinstance(item, dict)]


class BrewServicesStrategy(LifecycleStrategy):
    strategy = ManagementStrategy.BREW_SERVICES

    def __init__(
        self,
        executor,
        *,
        uid: int | None = None,
        launch_agents_dir: Path | None = None,
        **kwargs,
    ) -> None:
        super().__init__(executor, **kwargs)
        self.uid = uid
        self.launch_agents_dir = launch_agents_dir or DEFAULT_LAUNCH_AGENTS_DIR

    @property
    def domain(self) -> str:
        uid = self.uid if self.uid is not None else os.getuid()
        return f"gui/{uid}"

    def launchd_label(self, name: str) -> str:
        return f"homebrew.mxcl.{name}"

    def _entry(self, ctx: OperationContext, name: str) -> dict[str, Any] | None:
        result = self._run_checked(ctx, ["brew", "services", "list", "--json"])
        for item in parse_services_list(result.stdout):
            if item.get("name") == name:
                return item
        return None

    def _override(self, ctx: OperationContext, name: str) -> bool | None:
        """True/False for an explicit enable/disable override, None if absent."""
        result = self._run(ctx, ["launchctl", "print-disabled", self.domain])
        if result.exit_code != 0:
            return None
        disabled = parse_print_disabled(result.stdout).get(self.launchd_label(name))
        if disabled is None:
            return None
        return not disabled

    def _registered(self, name: str) -> bool:
        """Whether ``brew services start`` left a login agent plist behind."""
        return (self.launch_agents_dir / f"{self.launchd_label(name)}.plist").exists()

    def recognizes(self, ctx: OperationContext, name: str) -> bool:
        return self._entry(ctx, name) is not None

    def is_running(self, ctx: OperationContext, name: str) -> bool:
        entry = self._entry(ctx, name)
        return entry is not None and entry.get("status") == "started"

    def _start(self, ctx: OperationContext, name: str) -> None:
        verb = "start" if self._override(ctx, name) is True else "run"
        self._run_checked(ctx, ["brew", "services", verb, name])

    def _stop(self, ctx: OperationContext, name: str) -> None:
        verb = "stop" if self._override(ctx, name) is False else "kill"
        self._run_checked(ctx, ["brew", "services", verb, name])

    def enable_service(self, ctx: OperationContext, name: str) -> None:
        target = f"{self.domain}/{self.launchd_label(name)}"
        logger.info("Enabling %s at login", target)
        self._run_checked(ctx, ["launchctl", "enable", target])

    def disable_service(self, ctx: OperationContext, name: str) -> None:
        target = f"{self.domain}/{self.launchd_label(name)}"
        logger.info("Disabling %s at login", target)
        self._run_checked(ctx, ["launchctl", "disable", target])

    def is_enabled(self, ctx: OperationContext, name: str) -> bool:
        override = self._override(ctx, name)
        if override is not None:
            return override
        return self._registered(name)

    def status_check(self, ctx: OperationContext, name: str) -> ServiceStatusInfo:
        entry = self._entry(ctx, name)
        if entry is None:
            return ServiceStatusInfo(
                running=False,
                enabled=False,
                strategy=self.strategy,
                details=f"{name} not found in brew services",
            )
        status = str(entry.get("status") or "none")
        running = status == "started"
        override = self._override(ctx, name)
        enabled = override if override is not None else self._registered(name)
        process_id = str(entry.get("pid") or "") if running else ""
        return ServiceStatusInfo(
            running=running,
            enabled=enabled,
            process_id=process_id,
            strategy=self.strategy,
            details=f"brew services status: {status}",
            start_time=process_start_time(process_id),
        )

    def _native_health(self, ctx, name):
        info = super()._native_health(ctx, name)
        info.details = (
            "started via brew services" if info.healthy else "not started via brew services"
        )
        return info


__all__ = ["BrewServicesStrategy", "parse_services_list"]
