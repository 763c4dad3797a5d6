"""Package to service name lookup.

The table is immutable once built. ``extended`` returns a new mapping
rather than mutating the shared default.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping

from .models import HealthCheckConfig

DEFAULT_PACKAGE_SERVICES: dict[str, tuple[str, ...]] = {
    # Container runtimes
    "colima": ("colima",),
    "docker": ("docker", "docker-desktop"),
    "podman": ("podman",),
    "lima": ("lima",),
    # Databases
    "postgresql": ("postgres", "postgresql"),
    "mysql": ("mysqld", "mysql"),
    "redis": ("redis-server", "redis"),
    "mongodb": ("mongod", "mongodb"),
    "sqlite": ("sqlite3",),
    "cassandra": ("cassandra",),
    "elasticsearch": ("elasticsearch",),
    # Web servers
    "nginx": ("nginx",),
    "apache2": ("apache2", "httpd"),
    "caddy": ("caddy",),
    "traefik": ("traefik",),
    # Message queues
    "rabbitmq": ("rabbitmq-server",),
    "kafka": ("kafka",),
    "nats": ("nats-server",),
    # Monitoring
    "prometheus": ("prometheus",),
    "grafana": ("grafana-server",),
    "jaeger": ("jaeger",),
    "zipkin": ("zipkin",),
    # Development tools
    "node": ("node",),
    "python": ("python", "python3"),
    "java": ("java",),
    "golang": ("go",),
    "git": ("git",),
    "mercurial": ("hg",),
    # Search
    "solr": ("solr",),
    "opensearch": ("opensearch",),
    # Caches
    "memcached": ("memcached",),
    "hazelcast": ("hazelcast",),
    # Gateways and service mesh
    "kong": ("kong",),
    "envoy": ("envoy",),
    "istio": ("istio-proxy", "pilot-discovery"),
    "consul": ("consul",),
    "vault": ("vault",),
    # Build tools
    "jenkins": ("jenkins",),
    "gitlab-runner": ("gitlab-runner",),
    # Storage
    "minio": ("minio",),
    "samba": ("smbd", "nmbd"),
}

_PG_READY = "pg_isready -h localhost -p 5432"
_MYSQL_PING = "mysqladmin ping -h localhost"
_MONGO_PING = "mongosh --eval \"db.adminCommand('ping')\""


def _http(endpoint: str, timeout: float = 5.0) -> HealthCheckConfig:
    return HealthCheckConfig(http_endpoint=endpoint, expected_status=200, timeout=timeout)


def _command(command: str, timeout: float = 5.0) -> HealthCheckConfig:
    return HealthCheckConfig(command=command, timeout=timeout)


DEFAULT_HEALTH_CHECKS: dict[str, HealthCheckConfig] = {
    "colima": _command("colima status", 10.0),
    "docker": _http("http://localhost:2375/_ping"),
    "postgres": _command(_PG_READY),
    "postgresql": _command(_PG_READY),
    "mysql": _command(_MYSQL_PING),
    "mysqld": _command(_MYSQL_PING),
    "redis": _command("redis-cli ping", 3.0),
    "redis-server": _command("redis-cli ping", 3.0),
    "nginx": _http("http://localhost:80"),
    "elasticsearch": _http("http://localhost:9200/_health", 10.0),
    "prometheus": _http("http://localhost:9090/-/healthy"),
    "grafana-server": _http("http://localhost:3000/api/health"),
    "mongodb": _command(_MONGO_PING),
    "mongod": _command(_MONGO_PING),
    "rabbitmq-server": _http("http://localhost:15672/api/overview"),
    "consul": _http("http://localhost:8500/v1/status/leader"),
    "vault": _http("http://localhost:8200/v1/sys/health"),
}


class PackageServiceMapping:
    """Read-only package/service tables with default health checks."""

    def __init__(
        self,
        package_services: Mapping[str, Iterable[str]],
        health_checks: Mapping[str, HealthCheckConfig] | None = None,
    ) -> None:
        packages = {name: tuple(services) for name, services in package_services.items()}
        reverse: dict[str, str] = {}
        for package_name, services in packages.items():
            for service in services:
                reverse[service] = package_name
        self._packages = MappingProxyType(packages)
        self._services = MappingProxyType(reverse)
        self._health_checks = MappingProxyType(dict(health_checks or {}))

    @property
    def package_to_services(self) -> Mapping[str, tuple[str, ...]]:
        return self._packages

    @property
    def service_to_package(self) -> Mapping[str, str]:
        return self._services

    def get_services_for_package(self, package_name: str) -> list[str]:
        return list(self._packages.get(package_name, ()))

    def get_package_for_service(self, service_name: str) -> str:
        return self._services.get(service_name, "")

    def get_default_health_check(self, service_name: str) -> HealthCheckConfig | None:
        config = self._health_checks.get(service_name)
        return config.copy() if config else None

    def resolve_health_check(self, service_name: str) -> HealthCheckConfig | None:
        """Default for the service, else for a sibling service of its package."""
        config = self.get_default_health_check(service_name)
        if config:
            return config
        package_name = self.get_package_for_service(service_name)
        for sibling in self.get_services_for_package(package_name):
            config = self.get_default_health_check(sibling)
            if config:
                return config
        return None

    def find_service_by_name(self, query: str) -> list[str]:
        needle = query.lower()
        exact = sorted(name for name in self._services if name.lower() == needle)
        if exact:
            return exact
        return sorted(name for name in self._services if needle in name.lower())

    def all_services(self) -> list[str]:
        return sorted(self._services)

    def all_packages(self) -> list[str]:
        return sorted(self._packages)

    def extended(
        self, packages: Mapping[str, Iterable[str]]
    ) -> PackageServiceMapping:
        """Return a new mapping with ``packages`` added or replaced."""
        merged: dict[str, Iterable[str]] = dict(self._packages)
        merged.update({name: tuple(services) for name, services in packages.items()})
        return PackageServiceMapping(merged, self._health_checks)


_DEFAULT: PackageServiceMapping | None = None


def default_mapping() -> PackageServiceMapping:
    global _DEFAULT
    if _DEFAULT is None:
        _DEFAULT = PackageServiceMapping(DEFAULT_PACKAGE_SERVICES, DEFAULT_HEALTH_CHECKS)
    return _DEFAULT


__all__ = [
    "DEFAULT_HEALTH_CHECKS",
    "DEFAULT_PACKAGE_SERVICES",
    "PackageServiceMapping",
    "default_mapping",
]
