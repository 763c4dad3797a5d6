"""Deadline and cancellation tokens for service operations.

An ``OperationContext`` carries an optional deadline and a cancellation
flag. Children derived with ``with_timeout`` finish no later than their
parent and are cancelled when the parent is cancelled. Contexts are
context managers; leaving the ``with`` block cancels the context and
detaches it from its parent.

    with OperationContext.background().with_timeout(30) as probe_ctx:
        strategy.health_check(probe_ctx, "redis")

Probe contexts inside a poll loop must come from ``background()``, not
from the loop's overall deadline, so that a late probe still gets its full
timeout.
"""

from __future__ import annotations

import threading
import time


class OperationContext:
    """Cooperative deadline/cancellation token, the analogue of a request context."""

    def __init__(
        self,
        deadline: float | None = None,
        parent: OperationContext | None = None,
    ) -> None:
        self._deadline = deadline
        self._parent = parent
        self._cancelled = threading.Event()
        self._children: set[OperationContext] = set()
        self._lock = threading.Lock()
        if parent is not None:
            parent._attach(self)

    @classmethod
    def background(cls) -> OperationContext:
        """Return a fresh root context with no deadline."""
        return cls()

    def with_timeout(self, seconds: float) -> OperationContext:
        """Derive a child that expires after ``seconds`` or with this context."""
        deadline = time.monotonic() + max(0.0, seconds)
        if self._deadline is not None:
            deadline = min(deadline, self._deadline)
        return OperationContext(deadline=deadline, parent=self)

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def remaining(self) -> float | None:
        """Seconds until the deadline, ``None`` when unbounded, 0.0 once done."""
        if self.cancelled:
            return 0.0
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    @property
    def cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def done(self) -> bool:
        return self.cancelled or self.expired

    def reason(self) -> str | None:
        if self.cancelled:
            return "cancelled"
        if self.expired:
            return "deadline exceeded"
        return None

    def cancel(self) -> None:
        self._cancelled.set()
        with self._lock:
            children = list(self._children)
        for child in children:
            child.cancel()

    def wait(self, seconds: float) -> bool:
        """Block up to ``seconds``; return True as soon as the context is done."""
        end = time.monotonic() + max(0.0, seconds)
        while True:
            if self.done():
                return True
            now = time.monotonic()
            if now >= end:
                return False
            step = end - now
            if self._deadline is not None:
                step = min(step, max(0.0, self._deadline - now))
            # Parent cancellation is pushed down through cancel(), so waiting
            # on our own event is enough.
            self._cancelled.wait(step)

    def _attach(self, child: OperationContext) -> None:
        with self._lock:
            self._children.add(child)
        if self.cancelled:
            child.cancel()

    def _detach(self, child: OperationContext) -> None:
        with self._lock:
            self._children.discard(child)

    def __enter__(self) -> OperationContext:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cancel()
        if self._parent is not None:
            self._parent._detach(self)

    def __repr__(self) -> str:
        remaining = self.remaining()
        window = "unbounded" if remaining is None else f"{remaining:.3f}s"
        return f"OperationContext(remaining={window}, done={self.done()})"


__all__ = ["OperationContext"]
