"""Tests for the subprocess-backed executor."""

from __future__ import annotations

import subprocess
from unittest.mock import patch

import pytest

from servicectl.context import OperationContext
from servicectl.errors import (
    CommandExecutionError,
    CommandTimeoutError,
    ContextExpiredError,
)
from servicectl.executor import SystemExecutor, run_argv


def _completed(argv, returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(argv, returncode, stdout=stdout, stderr=stderr)


class TestSystemExecutor:
    @pytest.fixture
    def executor(self):
        return SystemExecutor(default_timeout=60)

    def test_returns_output(self, executor, ctx):
        with patch("servicectl.executor.subprocess.run") as run:
            run.return_value = _completed(["echo", "hi"], stdout="hi\n")
            result = executor.run(ctx, "echo", ["hi"])
        assert result.ok
        assert result.stdout == "hi\n"
        assert run.call_args.args[0] == ["echo", "hi"]

    def test_non_zero_exit_is_not_an_error(self, executor, ctx):
        with patch("servicectl.executor.subprocess.run") as run:
            run.return_value = _completed(["false"], returncode=3, stderr="nope")
            result = executor.run(ctx, "false")
        assert result.exit_code == 3
        assert not result.ok
        assert result.stderr == "nope"

    def test_timeout_raises(self, executor, ctx):
        with patch("servicectl.executor.subprocess.run") as run:
            run.side_effect = subprocess.TimeoutExpired(["sleep"], 1)
            with pytest.raises(CommandTimeoutError):
                executor.run(ctx, "sleep", ["10"])

    def test_missing_binary_raises(self, executor, ctx):
        with patch("servicectl.executor.subprocess.run") as run:
            run.side_effect = FileNotFoundError("no such file")
            with pytest.raises(CommandExecutionError) as excinfo:
                executor.run(ctx, "does-not-exist")
        assert excinfo.value.command == ["does-not-exist"]

    def test_done_context_never_spawns(self, executor):
        ctx = OperationContext.background()
        ctx.cancel()
        with patch("servicectl.executor.subprocess.run") as run:
            with pytest.raises(ContextExpiredError):
                executor.run(ctx, "true")
        run.assert_not_called()

    def test_timeout_bounded_by_context(self, executor):
        ctx = OperationContext.background().with_timeout(2)
        with patch("servicectl.executor.subprocess.run") as run:
            run.return_value = _completed(["true"])
            executor.run(ctx, "true", timeout=100)
        assert run.call_args.kwargs["timeout"] <= 2

    def test_explicit_timeout_wins_when_smaller(self, executor, ctx):
        with patch("servicectl.executor.subprocess.run") as run:
            run.return_value = _completed(["true"])
            executor.run(ctx, "true", timeout=1.5)
        assert run.call_args.kwargs["timeout"] == 1.5

    def test_sudo_prefix(self, ctx):
        executor = SystemExecutor(use_sudo=True)
        with patch("servicectl.executor.subprocess.run") as run:
            run.return_value = _completed(["sudo"])
            executor.run(ctx, "systemctl", ["start", "nginx"])
        assert run.call_args.args[0] == ["sudo", "-n", "systemctl", "start", "nginx"]


def test_run_argv_rejects_empty_vector(ctx) -> None:
    with pytest.raises(CommandExecutionError):
        run_argv(SystemExecutor(), ctx, [])
