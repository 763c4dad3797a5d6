"""Process-only strategy: observe a process, never control it."""

from __future__ import annotations

from ...context import OperationContext
from ...errors import StrategyUnsupportedError
from ...logging_config import get_logger
from ..models import ManagementStrategy, ServiceHealthInfo, ServiceStatusInfo
from .base import LifecycleStrategy, process_start_time

logger = get_logger(__name__)


class ProcessOnlyStrategy(LifecycleStrategy):
    """Probe for a live process with ``pgrep -f``.

    Start and stop succeed only when the process is already in the
    requested state. Boot registration does not exist for a bare process,
    so enable and disable are no-ops.
    """

    strategy = ManagementStrategy.PROCESS_ONLY
    supports_startup = False

    def recognizes(self, ctx: OperationContext, name: str) -> bool:
        return True

    def is_running(self, ctx: OperationContext, name: str) -> bool:
        return bool(self._pgrep(ctx, name))

    def _start(self, ctx: OperationContext, name: str) -> None:
        raise StrategyUnsupportedError(self.strategy.value, "start", name)

    def _stop(self, ctx: OperationContext, name: str) -> None:
        raise StrategyUnsupportedError(self.strategy.value, "stop", name)

    def _restart(self, ctx: OperationContext, name: str) -> None:
        raise StrategyUnsupportedError(self.strategy.value, "restart", name)

    def enable_service(self, ctx: OperationContext, name: str) -> None:
        logger.debug("process_only has no boot registration; ignoring enable for %s", name)

    def disable_service(self, ctx: OperationContext, name: str) -> None:
        logger.debug("process_only has no boot registration; ignoring disable for %s", name)

    def status_check(self, ctx: OperationContext, name: str) -> ServiceStatusInfo:
        pids = self._pgrep(ctx, name)
        process_id = pids[0] if pids else ""
        return ServiceStatusInfo(
            running=bool(pids),
            enabled=False,
            process_id=process_id,
            strategy=self.strategy,
            details=f"PIDs: {', '.join(pids)}" if pids else "no matching process",
            start_time=process_start_time(process_id),
        )

    def _native_health(self, ctx: OperationContext, name: str) -> ServiceHealthInfo:
        pids = self._pgrep(ctx, name)
        if pids:
            details = f"process found (PIDs: {' '.join(pids)})"
        else:
            details = "no matching process found"
        return ServiceHealthInfo(healthy=bool(pids), strategy=self.strategy, details=details)


__all__ = ["ProcessOnlyStrategy"]
