"""Auto strategy: pick the first mechanism that answers for a service."""

from __future__ import annotations

from typing import Callable

from ...context import OperationContext
from ...errors import ContextExpiredError, ServiceError
from ...logging_config import get_logger
from ..models import ManagementStrategy, ServiceHealthInfo, ServiceStatusInfo
from .base import LifecycleStrategy

logger = get_logger(__name__)

AUTO_DISCOVERY_ORDER: tuple[ManagementStrategy, ...] = (
    ManagementStrategy.LAUNCHD,
    ManagementStrategy.BREW_SERVICES,
    ManagementStrategy.DIRECT_COMMAND,
    ManagementStrategy.PROCESS_ONLY,
)

DEFAULT_DISCOVERY_TIMEOUT = 5.0

StrategyBuilder = Callable[[ManagementStrategy], LifecycleStrategy]


class AutoStrategy(LifecycleStrategy):
    """Delegate every call to the first mechanism in ``AUTO_DISCOVERY_ORDER``
    that recognizes the service.

    Resolution happens on first use and is cached per service name, so all
    later calls go to the same mechanism. Each discovery probe runs under
    its own ``discovery_timeout``; a probe that errors counts as "not
    recognized". ``process_only`` recognizes everything, so resolution
    always ends.
    """

    strategy = ManagementStrategy.AUTO

    def __init__(
        self,
        executor,
        builder: StrategyBuilder,
        *,
        direct_command_available: bool = False,
        discovery_timeout: float = DEFAULT_DISCOVERY_TIMEOUT,
        order: tuple[ManagementStrategy, ...] = AUTO_DISCOVERY_ORDER,
        **kwargs,
    ) -> None:
        super().__init__(executor, **kwargs)
        self.builder = builder
        self.direct_command_available = direct_command_available
        self.discovery_timeout = discovery_timeout
        self.order = order
        self._resolved: dict[str, LifecycleStrategy] = {}

    def candidates(self) -> list[ManagementStrategy]:
        return [
            tag
            for tag in self.order
            if tag is not ManagementStrategy.DIRECT_COMMAND or self.direct_command_available
        ]

    def resolve(self, ctx: OperationContext, name: str) -> LifecycleStrategy:
        cached = self._resolved.get(name)
        if cached is not None:
            return cached
        if ctx.done():
            raise ContextExpiredError(
                f"context already {ctx.reason()} before resolving a strategy for {name}"
            )

        chosen: LifecycleStrategy | None = None
        for tag in self.candidates():
            candidate = self.builder(tag)
            with ctx.with_timeout(self.discovery_timeout) as probe_ctx:
                try:
                    recognized = candidate.recognizes(probe_ctx, name)
                except ServiceError as exc:
                    logger.debug("%s probe for %s failed: %s", tag.value, name, exc)
                    recognized = False
            if recognized:
                chosen = candidate
                break

        if chosen is None:
            chosen = self.builder(ManagementStrategy.PROCESS_ONLY)
        logger.info("Auto-detected %s for %s", chosen.get_strategy_name().value, name)
        self._resolved[name] = chosen
        return chosen

    def resolved_strategy(self, name: str) -> ManagementStrategy | None:
        strategy = self._resolved.get(name)
        return strategy.get_strategy_name() if strategy else None

    def start_service(self, ctx: OperationContext, name: str) -> None:
        self.resolve(ctx, name).start_service(ctx, name)

    def stop_service(self, ctx: OperationContext, name: str) -> None:
        self.resolve(ctx, name).stop_service(ctx, name)

    def restart_service(self, ctx: OperationContext, name: str) -> None:
        self.resolve(ctx, name).restart_service(ctx, name)

    def _start(self, ctx: OperationContext, name: str) -> None:
        self.resolve(ctx, name)._start(ctx, name)

    def _stop(self, ctx: OperationContext, name: str) -> None:
        self.resolve(ctx, name)._stop(ctx, name)

    def is_running(self, ctx: OperationContext, name: str) -> bool:
        return self.resolve(ctx, name).is_running(ctx, name)

    def status_check(self, ctx: OperationContext, name: str) -> ServiceStatusInfo:
        return self.resolve(ctx, name).status_check(ctx, name)

    def enable_service(self, ctx: OperationContext, name: str) -> None:
        self.resolve(ctx, name).enable_service(ctx, name)

    def disable_service(self, ctx: OperationContext, name: str) -> None:
        self.resolve(ctx, name).disable_service(ctx, name)

    def is_enabled(self, ctx: OperationContext, name: str) -> bool:
        return self.resolve(ctx, name).is_enabled(ctx, name)

    def startup_supported(self, ctx: OperationContext, name: str) -> bool:
        return self.resolve(ctx, name).startup_supported(ctx, name)

    def recognizes(self, ctx: OperationContext, name: str) -> bool:
        return True

    def health_check(self, ctx: OperationContext, name: str) -> ServiceHealthInfo:
        delegate = self.resolve(ctx, name)
        info = delegate.health_check(ctx, name)
        return ServiceHealthInfo(
            healthy=info.healthy,
            strategy=self.strategy,
            details=f"Auto-detected via {delegate.get_strategy_name().value}: {info.details}",
        )


__all__ = ["AUTO_DISCOVERY_ORDER", "DEFAULT_DISCOVERY_TIMEOUT", "AutoStrategy"]
