"""Dependency detectors.

A detector inspects the environment for one service name and reports the
services it needs. New detectors can be added by plugins through
``DependencyManager.register_detector``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable

from ...context import OperationContext
from ...errors import ServiceError
from ...executor import Executor
from ...logging_config import get_logger
from ..models import HealthCheckConfig
from .models import DependencyType, ProxyConfig, ServiceDependency

logger = get_logger(__name__)


class DependencyDetector(ABC):
    name: str = "detector"

    @abstractmethod
    def detect(self, ctx: OperationContext, service_name: str) -> list[ServiceDependency]:
        ...


class StaticDependencyDetector(DependencyDetector):
    """Dependencies declared up front, e.g. under ``[[dependencies.static]]``."""

    name = "static"

    def __init__(self, dependencies: Iterable[ServiceDependency] = ()) -> None:
        self._edges: dict[str, list[ServiceDependency]] = {}
        for dependency in dependencies:
            self.add(dependency)

    def add(self, dependency: ServiceDependency) -> None:
        self._edges.setdefault(dependency.source_service, []).append(dependency)

    def detect(self, ctx: OperationContext, service_name: str) -> list[ServiceDependency]:
        return list(self._edges.get(service_name, []))


def colima_socket_path() -> str:
    return str(Path.home() / ".colima" / "default" / "docker.sock")


def podman_machine_socket_path() -> str:
    return str(
        Path.home()
        / ".local/share/containers/podman/machine/podman-machine-default/podman.sock"
    )


class ContainerRuntimeDetector(DependencyDetector):
    """Find the VM a container client talks to (colima or podman machine).

    Docker Desktop manages its own VM, so a Docker Desktop install reports
    no dependency.
    """

    name = "container-runtime"

    def __init__(self, executor: Executor) -> None:
        self.executor = executor

    def detect(self, ctx: OperationContext, service_name: str) -> list[ServiceDependency]:
        name = service_name.lower()
        if name == "docker":
            return self._docker(ctx)
        if name == "podman":
            return self._podman(ctx)
        return []

    def _output(self, ctx: OperationContext, command: str, args: list[str]) -> str | None:
        try:
            result = self.executor.run(ctx, command, args)
        except ServiceError as exc:
            logger.debug("%s %s failed: %s", command, " ".join(args), exc)
            return None
        if result.exit_code != 0:
            return None
        return result.stdout

    def _docker_context(self, ctx: OperationContext) -> str:
        output = self._output(ctx, "docker", ["context", "show"])
        return (output or "").strip().lower()

    def _is_docker_desktop(self, ctx: OperationContext) -> bool:
        output = self._output(ctx, "ps", ["aux"]) or ""
        return "Docker Desktop" in output or "com.docker.backend" in output

    def _docker(self, ctx: OperationContext) -> list[ServiceDependency]:
        if self._is_docker_desktop(ctx):
            return []
        docker_context = self._docker_context(ctx)
        dependencies: list[ServiceDependency] = []
        if "colima" in docker_context:
            dependencies.append(
                self._proxy_edge(
                    "docker", "colima", "/var/run/docker.sock", colima_socket_path(),
                    probe="docker version",
                )
            )
        if "podman" in docker_context:
            dependencies.append(
                self._proxy_edge(
                    "docker", "podman-machine", "/var/run/docker.sock",
                    podman_machine_socket_path(), probe="docker version",
                )
            )
        return dependencies

    def _podman(self, ctx: OperationContext) -> list[ServiceDependency]:
        output = self._output(ctx, "podman", ["machine", "list"]) or ""
        if "Currently running" not in output:
            return []
        return [
            self._proxy_edge(
                "podman", "podman-machine", "/run/podman/podman.sock",
                podman_machine_socket_path(), probe="podman version",
            )
        ]

    def _proxy_edge(
        self, source: str, target: str, endpoint: str, target_endpoint: str, *, probe: str
    ) -> ServiceDependency:
        return ServiceDependency(
            source_service=source,
            target_service=target,
            dependency_type=DependencyType.PROXY,
            startup_order=1,
            proxy_config=ProxyConfig(
                proxy_type="socket",
                proxy_endpoint=endpoint,
                target_endpoint=target_endpoint,
                metadata={"type": f"{source}-{target}-proxy"},
            ),
            health_check=HealthCheckConfig(command=probe, timeout=10.0, interval=5.0),
            metadata={
                "detector": self.name,
                "runtime": target,
                "socket_path": target_endpoint,
            },
        )


__all__ = [
    "ContainerRuntimeDetector",
    "DependencyDetector",
    "StaticDependencyDetector",
]
