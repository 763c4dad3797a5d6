"""Service CLI commands: apply, status, stop, teardown, import, deps, apply-config."""

from __future__ import annotations

import argparse
import json
import sys

from ..context import OperationContext
from ..errors import ServiceError
from ..services.models import ManagementStrategy, RunState, Startup
from ._utils import build_runtime, print_observation, spec_from_args


def apply_command(args: argparse.Namespace) -> int:
    """Apply desired state to a service."""
    runtime = build_runtime(args)
    spec = spec_from_args(args, runtime.config)
    observation = runtime.orchestrator.create(OperationContext.background(), spec)
    print_observation(observation, as_json=args.json)
    return 0


def status_command(args: argparse.Namespace) -> int:
    """Show fresh status and health for a service."""
    runtime = build_runtime(args)
    spec = spec_from_args(args, runtime.config)
    observation = runtime.orchestrator.read(OperationContext.background(), spec)
    print_observation(observation, as_json=args.json)
    return 0


def stop_command(args: argparse.Namespace) -> int:
    """Stop a service without touching its boot registration."""
    runtime = build_runtime(args)
    spec = spec_from_args(args, runtime.config)
    spec.state = RunState.STOPPED
    spec.startup = None
    spec.wait_for_healthy = False
    observation = runtime.orchestrator.update(OperationContext.background(), spec)
    print_observation(observation, as_json=args.json)
    return 0


def teardown_command(args: argparse.Namespace) -> int:
    """Stop and disable a service, reporting failures as warnings."""
    runtime = build_runtime(args)
    spec = spec_from_args(args, runtime.config)
    report = runtime.orchestrator.teardown(OperationContext.background(), spec)
    for warning in report.warnings:
        print(f"warning: {warning}", file=sys.stderr)
    print(
        f"Teardown {report.name}: stopped={'yes' if report.stopped else 'no'} "
        f"disabled={'yes' if report.disabled else 'no'}"
    )
    return 0


def import_command(args: argparse.Namespace) -> int:
    """Print a spec that matches a service's current state."""
    runtime = build_runtime(args)
    spec, observation = runtime.orchestrator.import_service(
        OperationContext.background(), args.name
    )
    payload = {
        "name": spec.name,
        "state": spec.state.value,
        "startup": spec.startup.value if spec.startup else None,
        "strategy": spec.strategy.value,
        "observation": observation.to_dict(),
    }
    print(json.dumps(payload, indent=2))
    return 0


def deps_command(args: argparse.Namespace) -> int:
    """Show the dependency chain and startup order for a service."""
    runtime = build_runtime(args)
    ctx = OperationContext.background()
    manager = runtime.dependency_manager
    manager.detect_dependencies(ctx, args.name)
    chain = manager.get_dependency_chain(ctx, args.name)
    order = manager.get_startup_order(ctx, args.name)

    if args.json:
        payload = {
            "service": args.name,
            "dependencies": [
                {
                    "source": dep.source_service,
                    "target": dep.target_service,
                    "type": dep.dependency_type.value,
                    "blocking": manager.is_blocking(dep.dependency_type),
                }
                for dep in chain
            ],
            "startup_order": order,
        }
        print(json.dumps(payload, indent=2))
        return 0

    if not chain:
        print(f"{args.name}: no dependencies")
        return 0
    for dep in chain:
        flag = "blocking" if manager.is_blocking(dep.dependency_type) else "best-effort"
        print(f"{dep.source_service} -> {dep.target_service} ({dep.dependency_type.value}, {flag})")
    print(f"Startup order: {' -> '.join(order + [args.name])}")
    return 0


def apply_config_command(args: argparse.Namespace) -> int:
    """Apply every ``[services.*]`` entry from the config."""
    runtime = build_runtime(args)
    specs = runtime.config.services
    if not specs:
        print("No services configured.")
        return 0
    failed = 0
    for name in sorted(specs):
        try:
            observation = runtime.orchestrator.create(OperationContext.background(), specs[name])
        except ServiceError as exc:
            failed += 1
            print(f"error: {name}: {exc}", file=sys.stderr)
            continue
        print_observation(observation, as_json=args.json)
    return 1 if failed else 0


def _add_spec_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("name", help="Service name.")
    parser.add_argument(
        "--strategy",
        choices=[item.value for item in ManagementStrategy],
        help="Management strategy (default: auto).",
    )
    parser.add_argument("--start", dest="start_cmd", help="Custom start command.")
    parser.add_argument("--stop", dest="stop_cmd", help="Custom stop command.")
    parser.add_argument("--restart", dest="restart_cmd", help="Custom restart command.")
    parser.add_argument("--status", dest="status_cmd", help="Custom status command.")
    parser.add_argument("--health-command", help="Health check command.")
    parser.add_argument("--health-http", help="Health check HTTP endpoint.")
    parser.add_argument("--package", help="Package that provides the service.")
    parser.add_argument("--json", action="store_true", help="Output JSON.")


def register_parsers(subparsers: argparse._SubParsersAction) -> None:
    """Register service commands."""
    apply_parser = subparsers.add_parser("apply", help="Apply desired state to a service.")
    _add_spec_arguments(apply_parser)
    apply_parser.add_argument(
        "--state",
        choices=[item.value for item in RunState],
        help="Desired run state (default: running).",
    )
    apply_parser.add_argument(
        "--startup",
        choices=[item.value for item in Startup],
        help="Desired boot registration (default: leave unchanged).",
    )
    apply_parser.add_argument(
        "--wait", action="store_true", help="Wait for the service to become healthy."
    )
    apply_parser.add_argument("--wait-timeout", help="Health wait timeout, e.g. 30s or 1m30s.")
    apply_parser.set_defaults(func=apply_command)

    status_parser = subparsers.add_parser("status", help="Show service status and health.")
    _add_spec_arguments(status_parser)
    status_parser.set_defaults(func=status_command)

    stop_parser = subparsers.add_parser("stop", help="Stop a service.")
    _add_spec_arguments(stop_parser)
    stop_parser.set_defaults(func=stop_command)

    teardown_parser = subparsers.add_parser(
        "teardown", help="Stop and disable a service (best effort)."
    )
    _add_spec_arguments(teardown_parser)
    teardown_parser.add_argument(
        "--startup",
        choices=[item.value for item in Startup],
        help="Boot registration that was applied (enabled means disable it).",
    )
    teardown_parser.set_defaults(func=teardown_command)

    import_parser = subparsers.add_parser("import", help="Describe an existing service.")
    import_parser.add_argument("name", help="Service name.")
    import_parser.set_defaults(func=import_command)

    deps_parser = subparsers.add_parser("deps", help="Show service dependencies.")
    deps_parser.add_argument("name", help="Service name.")
    deps_parser.add_argument("--json", action="store_true", help="Output JSON.")
    deps_parser.set_defaults(func=deps_command)

    apply_config_parser = subparsers.add_parser(
        "apply-config", help="Apply all services declared in the config."
    )
    apply_config_parser.add_argument("--json", action="store_true", help="Output JSON.")
    apply_config_parser.set_defaults(func=apply_config_command)
