"""Core CLI commands: plugins, mapping."""

from __future__ import annotations

import argparse
import json

from ..plugins import discover_plugins, load_plugins
from ._utils import build_mapping, load_cli_config


def plugins_command(args: argparse.Namespace) -> int:
    """List or load plugins."""
    config = load_cli_config(args)
    plugin_names = discover_plugins(config)
    if args.load:
        loaded = load_plugins(plugin_names, config.plugins.plugin_dirs)
        for name in plugin_names:
            status = "ok" if name in loaded else "failed"
            print(f"{name}\t{status}")
    else:
        for name in plugin_names:
            print(name)
    return 0


def mapping_packages_command(args: argparse.Namespace) -> int:
    """List known packages and the services they provide."""
    mapping = build_mapping(load_cli_config(args))
    if args.json:
        payload = {
            package: mapping.get_services_for_package(package)
            for package in mapping.all_packages()
        }
        print(json.dumps(payload, indent=2))
        return 0
    for package in mapping.all_packages():
        print(f"{package}\t{', '.join(mapping.get_services_for_package(package))}")
    return 0


def mapping_services_command(args: argparse.Namespace) -> int:
    """List known services and their package."""
    mapping = build_mapping(load_cli_config(args))
    for service in mapping.all_services():
        print(f"{service}\t{mapping.get_package_for_service(service)}")
    return 0


def mapping_lookup_command(args: argparse.Namespace) -> int:
    """Find services by name and show their package and default health check."""
    mapping = build_mapping(load_cli_config(args))
    matches = mapping.find_service_by_name(args.query)
    if not matches:
        print(f"No services match: {args.query}")
        return 1
    for service in matches:
        package = mapping.get_package_for_service(service) or "-"
        health = mapping.resolve_health_check(service)
        health_text = health.describe() if health else "none"
        print(f"{service}\t{package}\t{health_text}")
    return 0


def register_parsers(subparsers: argparse._SubParsersAction) -> None:
    """Register core commands."""
    plugins_parser = subparsers.add_parser("plugins", help="List or load plugins.")
    plugins_parser.add_argument("--load", action="store_true", help="Attempt to import plugins.")
    plugins_parser.set_defaults(func=plugins_command)

    mapping_parser = subparsers.add_parser("mapping", help="Package to service mapping.")
    mapping_sub = mapping_parser.add_subparsers(dest="mapping_command")

    packages_parser = mapping_sub.add_parser("packages", help="List known packages.")
    packages_parser.add_argument("--json", action="store_true", help="Output JSON.")
    packages_parser.set_defaults(func=mapping_packages_command)

    services_parser = mapping_sub.add_parser("services", help="List known services.")
    services_parser.set_defaults(func=mapping_services_command)

    lookup_parser = mapping_sub.add_parser("lookup", help="Find services by name.")
    lookup_parser.add_argument("query", help="Service name or fragment.")
    lookup_parser.set_defaults(func=mapping_lookup_command)
