"""launchd strategy (macOS)."""

from __future__ import annotations

import re
from dataclasses import dataclass

from ...context import OperationContext
from ...logging_config import get_logger
from ..models import ManagementStrategy, ServiceStatusInfo
from .base import LifecycleStrategy, process_start_time

logger = get_logger(__name__)

_DISABLED_LINE = re.compile(r'^\s*"?([^"=]+?)"?\s*=>\s*(\w+)')


@dataclass
class LaunchdEntry:
    label: str
    pid: str
    last_exit: str

    @property
    def running(self) -> bool:
        return self.pid not in ("", "-")


def parse_launchctl_list(output: str) -> dict[str, LaunchdEntry]:
    """Parse the ``PID  Status  Label`` table printed by ``launchctl list``."""
    entries: dict[str, LaunchdEntry] = {}
    for line in output.splitlines():
        fields = line.split()
        if len(fields) < 3 or fields[0] == "PID":
            continue
        pid, last_exit, label = fields[0], fields[1], fields[2]
        entries[label] = LaunchdEntry(label=label, pid=pid, last_exit=last_exit)
    return entries


def parse_print_disabled(output: str) -> dict[str, bool]:
    """Map label -> disabled from ``launchctl print-disabled`` output.

    Newer releases print ``=> disabled``/``=> enabled``; older ones print
    ``=> true``/``=> false``.
    """
    overrides: dict[str, bool] = {}
    for line in output.splitlines():
        match = _DISABLED_LINE.match(line)
        if not match:
            continue
        value = match.group(2).lower()
        if value in ("disabled", "true"):
            overrides[match.group(1).strip()] = True
        elif value in ("enabled", "false"):
            overrides[match.group(1).strip()] = False
    return overrides


class LaunchdStrategy(LifecycleStrategy):
    strategy = ManagementStrategy.LAUNCHD

    def __init__(self, executor, *, domain: str = "system", **kwargs) -> None:
        super().__init__(executor, **kwargs)
        self.domain = domain

    def label_candidates(self, name: str) -> list[str]:
        candidates = [name]
        if not name.startswith("homebrew.mxcl."):
            candidates.append(f"homebrew.mxcl.{name}")
        return candidates

    def _find(self, ctx: OperationContext, name: str) -> LaunchdEntry | None:
        result = self._run_checked(ctx, ["launchctl", "list"])
        entries = parse_launchctl_list(result.stdout)
        for label in self.label_candidates(name):
            if label in entries:
                return entries[label]
        return None

    def _label(self, ctx: OperationContext, name: str) -> str:
        entry = self._find(ctx, name)
        return entry.label if entry else name

    def recognizes(self, ctx: OperationContext, name: str) -> bool:
        return self._find(ctx, name) is not None

    def is_running(self, ctx: OperationContext, name: str) -> bool:
        entry = self._find(ctx, name)
        return entry is not None and entry.running

    def _start(self, ctx: OperationContext, name: str) -> None:
        self._run_checked(ctx, ["launchctl", "start", self._label(ctx, name)])

    def _stop(self, ctx: OperationContext, name: str) -> None:
        self._run_checked(ctx, ["launchctl", "stop", self._label(ctx, name)])

    def enable_service(self, ctx: OperationContext, name: str) -> None:
        target = f"{self.domain}/{self._label(ctx, name)}"
        logger.info("Enabling %s at boot", target)
        self._run_checked(ctx, ["launchctl", "enable", target])

    def disable_service(self, ctx: OperationContext, name: str) -> None:
        target = f"{self.domain}/{self._label(ctx, name)}"
        logger.info("Disabling %s at boot", target)
        self._run_checked(ctx, ["launchctl", "disable", target])

    def is_enabled(self, ctx: OperationContext, name: str) -> bool:
        entry = self._find(ctx, name)
        result = self._run_checked(ctx, ["launchctl", "print-disabled", self.domain])
        overrides = parse_print_disabled(result.stdout)
        for label in self.label_candidates(name):
            if label in overrides:
                return not overrides[label]
        # No override: a loaded job is enabled.
        return entry is not None

    def status_check(self, ctx: OperationContext, name: str) -> ServiceStatusInfo:
        entry = self._find(ctx, name)
        if entry is None:
            return ServiceStatusInfo(
                running=False,
                enabled=False,
                strategy=self.strategy,
                details=f"{name} not loaded in launchd",
            )
        process_id = entry.pid if entry.running else ""
        return ServiceStatusInfo(
            running=entry.running,
            enabled=self.is_enabled(ctx, name),
            process_id=process_id,
            strategy=self.strategy,
            details=f"launchd label {entry.label} (last exit {entry.last_exit})",
            start_time=process_start_time(process_id),
        )

    def _native_health(self, ctx, name):
        info = super()._native_health(ctx, name)
        info.details = (
            "loaded and running in launchd" if info.healthy else "not running in launchd"
        )
        return info


__all__ = [
    "LaunchdEntry",
    "LaunchdStrategy",
    "parse_launchctl_list",
    "parse_print_disabled",
]
