"""Process execution for service control commands.

Strategies never spawn processes themselves; they go through an
``Executor`` so tests can substitute a scripted fake.
"""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass, field
from typing import Protocol, Sequence

from .context import OperationContext
from .errors import CommandExecutionError, CommandTimeoutError, ContextExpiredError
from .logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_COMMAND_TIMEOUT = 300.0


@dataclass
class ExecResult:
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class Executor(Protocol):
    def run(
        self,
        ctx: OperationContext,
        command: str,
        args: Sequence[str] = (),
        *,
        timeout: float | None = None,
    ) -> ExecResult:
        ...


@dataclass
class SystemExecutor:
    """Run commands with ``subprocess.run``.

    A non-zero exit status is returned in the result; only failures to
    spawn the process or a timeout raise.
    """

    default_timeout: float = DEFAULT_COMMAND_TIMEOUT
    use_sudo: bool = False
    working_directory: str | None = None
    environment: dict[str, str] = field(default_factory=dict)

    def run(
        self,
        ctx: OperationContext,
        command: str,
        args: Sequence[str] = (),
        *,
        timeout: float | None = None,
    ) -> ExecResult:
        if ctx.done():
            raise ContextExpiredError(
                f"context already {ctx.reason()} before running {command}",
                metadata={"command": command},
            )

        argv = [command, *args]
        if self.use_sudo:
            argv = ["sudo", "-n", *argv]

        effective = self._effective_timeout(ctx, timeout)
        env = None
        if self.environment:
            env = dict(os.environ)
            env.update(self.environment)

        logger.debug("Running %s (timeout %.1fs)", " ".join(argv), effective)
        try:
            completed = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=effective,
                cwd=self.working_directory,
                env=env,
            )
        except subprocess.TimeoutExpired as exc:
            raise CommandTimeoutError(
                f"{command} timed out after {effective:.1f}s",
                command=argv,
            ) from exc
        except (FileNotFoundError, PermissionError) as exc:
            raise CommandExecutionError(
                f"failed to run {command}: {exc}",
                command=argv,
            ) from exc

        if completed.returncode != 0:
            logger.debug(
                "%s exited %d: %s",
                command,
                completed.returncode,
                (completed.stderr or "").strip()[:200],
            )
        return ExecResult(
            exit_code=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )

    def _effective_timeout(self, ctx: OperationContext, timeout: float | None) -> float:
        candidates = [self.default_timeout]
        if timeout is not None:
            candidates.append(timeout)
        remaining = ctx.remaining()
        if remaining is not None:
            candidates.append(remaining)
        return max(0.001, min(candidates))


def run_argv(
    executor: Executor,
    ctx: OperationContext,
    argv: Sequence[str],
    *,
    timeout: float | None = None,
) -> ExecResult:
    """Run a full argument vector (program first) through ``executor``."""
    if not argv:
        raise CommandExecutionError("empty command vector")
    return executor.run(ctx, argv[0], list(argv[1:]), timeout=timeout)


__all__ = [
    "DEFAULT_COMMAND_TIMEOUT",
    "ExecResult",
    "Executor",
    "SystemExecutor",
    "run_argv",
]
