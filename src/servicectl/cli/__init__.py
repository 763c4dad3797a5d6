"""servicectl command-line interface package.

Commands are organized into groups:
- core: plugins, mapping
- services: apply, status, stop, teardown, import, deps, apply-config
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Iterable

from . import core
from . import services
from ..errors import ServiceError
from ..logging_config import get_logger, setup_logging

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the main argument parser."""
    parser = argparse.ArgumentParser(prog="servicectl")
    parser.add_argument("--config", help="Path to a servicectl.toml config file.")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Console log level.",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Also write JSON logs to ~/.servicectl/logs.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # Register core commands (plugins, mapping)
    core.register_parsers(subparsers)

    # Register service commands (apply, status, stop, teardown, import, deps, apply-config)
    services.register_parsers(subparsers)

    # Allow plugins to extend the CLI surface.
    try:
        from ..plugins import call_plugin_hook, load_enabled_plugins

        plugins = load_enabled_plugins()
        call_plugin_hook("register_parsers", subparsers, plugins=plugins.values())
    except Exception as exc:
        logger.debug("Plugin CLI registration skipped: %s", exc)

    return parser


def _get_subparser_action(
    parser: argparse.ArgumentParser,
) -> argparse._SubParsersAction | None:
    for action in parser._actions:
        if isinstance(action, argparse._SubParsersAction):
            return action
    return None


def _get_command_parser(
    parser: argparse.ArgumentParser, command: str
) -> argparse.ArgumentParser | None:
    sub_action = _get_subparser_action(parser)
    if not sub_action:
        return None
    return sub_action.choices.get(command)


def _requires_subcommand(
    parser: argparse.ArgumentParser, args: argparse.Namespace
) -> bool:
    command = getattr(args, "command", None)
    if not command:
        return False
    command_parser = _get_command_parser(parser, command)
    if not command_parser:
        return False
    sub_action = _get_subparser_action(command_parser)
    if not sub_action:
        return False
    return not getattr(args, sub_action.dest, None)


def main(argv: Iterable[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not getattr(args, "command", None):
        parser.print_help()
        return 1

    if _requires_subcommand(parser, args):
        command_parser = _get_command_parser(parser, args.command)
        if command_parser:
            command_parser.print_help()
        else:
            parser.print_help()
        return 1

    setup_logging(
        "servicectl",
        level=getattr(logging, args.log_level),
        enable_rotation=args.json_logs,
    )

    try:
        return args.func(args)
    except ServiceError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


__all__ = ["build_parser", "main"]
