"""Tests for the package to service mapping."""

from __future__ import annotations

from servicectl.services.mapping import PackageServiceMapping, default_mapping


class TestPackageServiceMapping:
    def test_services_for_package(self):
        mapping = default_mapping()
        assert mapping.get_services_for_package("redis") == ["redis-server", "redis"]
        assert mapping.get_services_for_package("postgresql") == ["postgres", "postgresql"]

    def test_unknown_names(self):
        mapping = default_mapping()
        assert mapping.get_services_for_package("nope") == []
        assert mapping.get_package_for_service("nope") == ""

    def test_package_for_service(self):
        mapping = default_mapping()
        assert mapping.get_package_for_service("redis-server") == "redis"
        assert mapping.get_package_for_service("httpd") == "apache2"

    def test_returned_lists_are_copies(self):
        mapping = default_mapping()
        services = mapping.get_services_for_package("redis")
        services.append("intruder")
        assert "intruder" not in mapping.get_services_for_package("redis")

    def test_default_health_check_is_a_copy(self):
        mapping = default_mapping()
        check = mapping.get_default_health_check("redis")
        assert check.command == "redis-cli ping"
        assert check.timeout == 3.0
        check.command = "changed"
        assert mapping.get_default_health_check("redis").command == "redis-cli ping"

    def test_resolve_health_check_uses_sibling(self):
        mapping = default_mapping()
        check = mapping.resolve_health_check("docker-desktop")
        assert check is not None
        assert check.http_endpoint == "http://localhost:2375/_ping"

    def test_resolve_health_check_none_for_unknown(self):
        assert default_mapping().resolve_health_check("mystery") is None

    def test_find_service_exact_then_substring(self):
        mapping = default_mapping()
        assert mapping.find_service_by_name("REDIS") == ["redis"]
        assert mapping.find_service_by_name("redi") == ["redis", "redis-server"]
        assert mapping.find_service_by_name("zzz") == []

    def test_extended_leaves_default_untouched(self):
        base = default_mapping()
        extended = base.extended({"myapp": ["myapp-web", "myapp-worker"]})
        assert extended.get_package_for_service("myapp-worker") == "myapp"
        assert extended.get_default_health_check("redis") is not None
        assert base.get_services_for_package("myapp") == []

    def test_listing_is_sorted(self):
        mapping = PackageServiceMapping({"b": ["y", "x"], "a": ["z"]})
        assert mapping.all_packages() == ["a", "b"]
        assert mapping.all_services() == ["x", "y", "z"]
