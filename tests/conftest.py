from __future__ import annotations

import sys
import tempfile
from pathlib import Path
from typing import Sequence

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from servicectl.context import OperationContext  # noqa: E402
from servicectl.errors import ContextExpiredError  # noqa: E402
from servicectl.executor import ExecResult  # noqa: E402


class FakeExecutor:
    """Scripted executor keyed by the full argument vector.

    ``script(argv, *results)`` queues results for ``argv``; the last queued
    result repeats. Results may be exceptions, which are raised. Unscripted
    commands exit 1 with empty output.
    """

    def __init__(self) -> None:
        self.responses: dict[tuple[str, ...], list[ExecResult | Exception]] = {}
        self.calls: list[list[str]] = []
        self.contexts: list[OperationContext] = []

    def script(self, argv: Sequence[str], *results: ExecResult | Exception) -> None:
        self.responses[tuple(argv)] = list(results)

    def run(self, ctx, command, args=(), *, timeout=None) -> ExecResult:
        if ctx.done():
            raise ContextExpiredError(f"context already {ctx.reason()} before running {command}")
        argv = (command, *args)
        self.calls.append(list(argv))
        self.contexts.append(ctx)
        queue = self.responses.get(argv)
        if not queue:
            return ExecResult(exit_code=1)
        result = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(result, Exception):
            raise result
        return result

    def called(self, *argv: str) -> bool:
        return list(argv) in self.calls

    def index(self, *argv: str) -> int:
        return self.calls.index(list(argv))

    def count(self, *argv: str) -> int:
        return sum(1 for call in self.calls if call == list(argv))


def ok(stdout: str = "", stderr: str = "") -> ExecResult:
    return ExecResult(exit_code=0, stdout=stdout, stderr=stderr)


def fail(exit_code: int = 1, stderr: str = "", stdout: str = "") -> ExecResult:
    return ExecResult(exit_code=exit_code, stdout=stdout, stderr=stderr)


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def ctx() -> OperationContext:
    return OperationContext.background()


@pytest.fixture
def temp_dir() -> Path:
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def isolated_config(tmp_path, monkeypatch) -> Path:
    """Run with no user, local or environment config."""
    monkeypatch.setattr("servicectl.config.USER_CONFIG_PATH", tmp_path / "missing.toml")
    monkeypatch.delenv("SERVICECTL_CONFIG_PATH", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path
