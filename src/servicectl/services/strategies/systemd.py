"""systemd strategy, the native init system on Linux."""

from __future__ import annotations

from ...context import OperationContext
from ...logging_config import get_logger
from ..models import ManagementStrategy, ServiceStatusInfo
from .base import LifecycleStrategy, process_start_time

logger = get_logger(__name__)


def _show_property(output: str, name: str) -> str:
    prefix = f"{name}="
    for line in output.splitlines():
        if line.startswith(prefix):
            return line[len(prefix):].strip()
    return ""


class SystemdStrategy(LifecycleStrategy):
    """``systemctl`` control. Reported under the ``launchd`` tag."""

    strategy = ManagementStrategy.LAUNCHD

    def recognizes(self, ctx: OperationContext, name: str) -> bool:
        result = self._run(ctx, ["systemctl", "show", name, "--property=LoadState"])
        if result.exit_code != 0:
            return False
        load_state = _show_property(result.stdout, "LoadState")
        return bool(load_state) and load_state != "not-found"

    def is_running(self, ctx: OperationContext, name: str) -> bool:
        # is-active exits non-zero for inactive, failed and unknown units.
        result = self._run(ctx, ["systemctl", "is-active", name])
        return result.exit_code == 0

    def _start(self, ctx: OperationContext, name: str) -> None:
        self._run_checked(ctx, ["systemctl", "start", name])

    def _stop(self, ctx: OperationContext, name: str) -> None:
        self._run_checked(ctx, ["systemctl", "stop", name])

    def _restart(self, ctx: OperationContext, name: str) -> None:
        self._run_checked(ctx, ["systemctl", "restart", name])

    def enable_service(self, ctx: OperationContext, name: str) -> None:
        logger.info("Enabling %s at boot", name)
        self._run_checked(ctx, ["systemctl", "enable", name])

    def disable_service(self, ctx: OperationContext, name: str) -> None:
        logger.info("Disabling %s at boot", name)
        self._run_checked(ctx, ["systemctl", "disable", name])

    def is_enabled(self, ctx: OperationContext, name: str) -> bool:
        result = self._run(ctx, ["systemctl", "is-enabled", name])
        return result.exit_code == 0

    def status_check(self, ctx: OperationContext, name: str) -> ServiceStatusInfo:
        running = self.is_running(ctx, name)
        process_id = ""
        if running:
            result = self._run(ctx, ["systemctl", "show", name, "--property=MainPID"])
            pid = _show_property(result.stdout, "MainPID")
            if pid and pid != "0":
                process_id = pid
        return ServiceStatusInfo(
            running=running,
            enabled=self.is_enabled(ctx, name),
            process_id=process_id,
            strategy=self.strategy,
            details=f"systemd unit {name} is {'active' if running else 'inactive'}",
            start_time=process_start_time(process_id),
        )


__all__ = ["SystemdStrategy"]
