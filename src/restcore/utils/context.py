# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Per-call cancellation context.

A CallContext carries a cancellation flag, an optional deadline and a
correlation id for one logical call. Every wait inside the request pipeline
goes through CallContext.sleep so that cancellation wins over a pending delay.
A ContextVar-backed ambient context is used when callers omit one.
"""

from __future__ import annotations

import threading
import time
import weakref
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from ..errors import CancelledError, ContextError, DeadlineExceededError


class CallContext:
    """Cooperative cancellation token with an optional monotonic deadline."""

    def __init__(
        self,
        *,
        deadline: float | None = None,
        correlation_id: str | None = None,
        parent: CallContext | None = None,
    ):
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        if correlation_id is None and parent is not None:
            correlation_id = parent.correlation_id
        self.deadline = deadline
        self.correlation_id = correlation_id
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._children: weakref.WeakSet[CallContext] = weakref.WeakSet()
        self._cancel_error: ContextError | None = None
        self._parent = parent
        if parent is not None:
            parent._attach(self)

    @classmethod
    def background(cls) -> CallContext:
        return cls()

    def with_timeout(self, seconds: float) -> CallContext:
        """Derive a child context that expires after `seconds` (or earlier, with the parent)."""
        return CallContext(deadline=time.monotonic() + seconds, parent=self)

    def with_cancel(self) -> CallContext:
        return CallContext(parent=self)

    def _attach(self, child: CallContext) -> None:
        with self._lock:
            error = self._cancel_error
            if error is None:
                self._prune_expired()
                self._children.add(child)
        if error is not None:
            child._cancel(error)

    def cancel(self) -> None:
        self._cancel(CancelledError())

    def _cancel(self, error: ContextError) -> None:
        with self._lock:
            if self._cancel_error is not None:
                return
            self._cancel_error = error
            children = list(self._children)
            self._children.clear()
        self._event.set()
        for child in children:
            child._cancel(error)
        if self._parent is not None:
            self._parent._detach(self)

    def _detach(self, child: CallContext) -> None:
        with self._lock:
            self._children.discard(child)

    def _prune_expired(self) -> None:
        # Expired children are already done and need no propagation.
        now = time.monotonic()
        for child in [c for c in self._children if c.deadline is not None and now >= c.deadline]:
            self._children.discard(child)

    def remaining(self) -> float | None:
        """Seconds until the deadline, or None when there is no deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def error(self) -> ContextError | None:
        if self._cancel_error is not None:
            return self._cancel_error
        if self.deadline is not None and time.monotonic() >= self.deadline:
            return DeadlineExceededError()
        return None

    def done(self) -> bool:
        return self.error() is not None

    def raise_if_done(self) -> None:
        error = self.error()
        if error is not None:
            raise error

    def sleep(self, seconds: float) -> None:
        """Wait for `seconds` or until the context is done, whichever comes first."""
        self.raise_if_done()
        if seconds <= 0:
            return
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            self._event.wait(remaining)
            self.raise_if_done()
            raise DeadlineExceededError()
        self._event.wait(seconds)
        self.raise_if_done()


_current_call_context: ContextVar[CallContext | None] = ContextVar("restcore_call_context", default=None)


def get_call_context() -> CallContext:
    """Return the ambient call context, or a fresh background context."""
    return _current_call_context.get() or CallContext.background()


@contextmanager
def call_context(
    *,
    timeout: float | None = None,
    correlation_id: str | None = None,
) -> Iterator[CallContext]:
    """
    Context manager that installs a child of the ambient context.

    The child is cancelled on exit so that nothing keeps waiting on it.
    """
    parent = _current_call_context.get()
    deadline = time.monotonic() + timeout if timeout is not None else None
    context = CallContext(deadline=deadline, correlation_id=correlation_id, parent=parent)
    token = _current_call_context.set(context)
    try:
        yield context
    finally:
        _current_call_context.reset(token)
        context.cancel()


__all__ = [
    "CallContext",
    "call_context",
    "get_call_context",
]
