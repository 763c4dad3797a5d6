"""Data models for service lifecycle management."""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from ..durations import parse_duration
from ..errors import ConfigurationError


class ManagementStrategy(str, Enum):
    AUTO = "auto"
    BREW_SERVICES = "brew_services"
    DIRECT_COMMAND = "direct_command"
    LAUNCHD = "launchd"
    PROCESS_ONLY = "process_only"

    @classmethod
    def parse(cls, value: str | ManagementStrategy | None) -> ManagementStrategy:
        if value is None or value == "":
            return cls.AUTO
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            valid = ", ".join(item.value for item in cls)
            raise ConfigurationError(
                f"invalid management strategy {value!r}; expected one of: {valid}"
            ) from exc


class RunState(str, Enum):
    RUNNING = "running"
    STOPPED = "stopped"


class Startup(str, Enum):
    ENABLED = "enabled"
    DISABLED = "disabled"


def _argv(value: Any) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return shlex.split(value) or None
    if isinstance(value, (list, tuple)):
        items = [str(item) for item in value]
        return items or None
    raise ConfigurationError(f"command must be a list of strings, got {value!r}")


@dataclass
class CustomCommands:
    """Argument vectors (program first) for a direct-command service."""

    start: list[str] | None = None
    stop: list[str] | None = None
    restart: list[str] | None = None
    status: list[str] | None = None
    enable: list[str] | None = None
    disable: list[str] | None = None

    def command_for(self, operation: str) -> list[str] | None:
        value = getattr(self, operation, None)
        return list(value) if value else None

    def is_empty(self) -> bool:
        return not any(
            (self.start, self.stop, self.restart, self.status, self.enable, self.disable)
        )

    def copy(self) -> CustomCommands:
        return CustomCommands(
            start=list(self.start) if self.start else None,
            stop=list(self.stop) if self.stop else None,
            restart=list(self.restart) if self.restart else None,
            status=list(self.status) if self.status else None,
            enable=list(self.enable) if self.enable else None,
            disable=list(self.disable) if self.disable else None,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> CustomCommands | None:
        if not data:
            return None
        commands = cls(
            start=_argv(data.get("start")),
            stop=_argv(data.get("stop")),
            restart=_argv(data.get("restart")),
            status=_argv(data.get("status")),
            enable=_argv(data.get("enable")),
            disable=_argv(data.get("disable")),
        )
        return None if commands.is_empty() else commands


@dataclass
class HealthCheckConfig:
    """Health probe override. The first configured probe kind wins."""

    command: str | None = None
    http_endpoint: str | None = None
    expected_status: int = 200
    tcp_host: str | None = None
    tcp_port: int | None = None
    socket_path: str | None = None
    timeout: float = 5.0
    interval: float = 5.0

    def is_configured(self) -> bool:
        return bool(
            self.command
            or self.http_endpoint
            or (self.tcp_host and self.tcp_port)
            or self.socket_path
        )

    def describe(self) -> str:
        if self.command:
            return f"command: {self.command}"
        if self.http_endpoint:
            return f"http: {self.http_endpoint}"
        if self.tcp_host and self.tcp_port:
            return f"tcp: {self.tcp_host}:{self.tcp_port}"
        if self.socket_path:
            return f"socket: {self.socket_path}"
        return "none"

    def copy(self) -> HealthCheckConfig:
        return HealthCheckConfig(**self.__dict__)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> HealthCheckConfig | None:
        if not data:
            return None
        tcp_port = data.get("tcp_port")
        return cls(
            command=data.get("command") or None,
            http_endpoint=data.get("http_endpoint") or data.get("http") or None,
            expected_status=int(data.get("expected_status", 200)),
            tcp_host=data.get("tcp_host") or None,
            tcp_port=int(tcp_port) if tcp_port else None,
            socket_path=data.get("socket_path") or None,
            timeout=parse_duration(data.get("timeout", 5)),
            interval=parse_duration(data.get("interval", 5)),
        )


@dataclass
class ServiceStatusInfo:
    running: bool
    enabled: bool = False
    process_id: str = ""
    strategy: ManagementStrategy = ManagementStrategy.AUTO
    details: str = ""
    start_time: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "running": self.running,
            "enabled": self.enabled,
            "process_id": self.process_id,
            "strategy": self.strategy.value,
            "details": self.details,
            "start_time": self.start_time.isoformat() if self.start_time else None,
        }


@dataclass
class ServiceHealthInfo:
    healthy: bool
    strategy: ManagementStrategy = ManagementStrategy.AUTO
    details: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthy": self.healthy,
            "strategy": self.strategy.value,
            "details": self.details,
        }


@dataclass
class ServiceSpec:
    """Desired state for one service.

    ``startup`` is ``None`` when boot registration should be left alone.
    """

    name: str
    state: RunState = RunState.RUNNING
    startup: Startup | None = None
    strategy: ManagementStrategy = ManagementStrategy.AUTO
    custom_commands: CustomCommands | None = None
    health_check: HealthCheckConfig | None = None
    package: str | None = None
    validate_package: bool = False
    wait_for_healthy: bool = False
    wait_timeout: str = "30s"

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> ServiceSpec:
        state_raw = data.get("state", RunState.RUNNING.value)
        try:
            state = RunState(state_raw)
        except ValueError as exc:
            raise ConfigurationError(
                f"service {name}: invalid state {state_raw!r}"
            ) from exc

        startup_raw = data.get("startup")
        startup = None
        if startup_raw is not None:
            try:
                startup = Startup(startup_raw)
            except ValueError as exc:
                raise ConfigurationError(
                    f"service {name}: invalid startup {startup_raw!r}"
                ) from exc

        return cls(
            name=str(data.get("name", name)),
            state=state,
            startup=startup,
            strategy=ManagementStrategy.parse(data.get("strategy")),
            custom_commands=CustomCommands.from_dict(data.get("commands")),
            health_check=HealthCheckConfig.from_dict(data.get("health_check")),
            package=data.get("package") or None,
            validate_package=bool(data.get("validate_package", False)),
            wait_for_healthy=bool(data.get("wait_for_healthy", False)),
            wait_timeout=str(data.get("wait_timeout", "30s")),
        )


@dataclass
class ServiceObservation:
    """Computed state of a service, always from a fresh probe."""

    name: str
    running: bool
    healthy: bool
    enabled: bool
    process_id: str = ""
    start_time: datetime | None = None
    manager_type: ManagementStrategy = ManagementStrategy.AUTO
    package: str = ""
    metadata: dict[str, str] = field(default_factory=dict)
    last_updated: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "running": self.running,
            "healthy": self.healthy,
            "enabled": self.enabled,
            "process_id": self.process_id,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "manager_type": self.manager_type.value,
            "package": self.package,
            "metadata": dict(self.metadata),
            "last_updated": self.last_updated.isoformat(),
        }


@dataclass
class TeardownReport:
    name: str
    stopped: bool = False
    disabled: bool = False
    warnings: list[str] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.warnings
