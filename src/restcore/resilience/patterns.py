# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Thread-safe circuit breaker, token bucket and bulkhead used by ResilienceAdapter."""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum

from ..errors import BulkheadFullError, CircuitOpenError
from ..utils.context import CallContext

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker.

    CLOSED -> OPEN after `threshold` consecutive failures (the count resets every
    `interval` seconds); OPEN -> HALF_OPEN once `timeout` seconds have passed;
    HALF_OPEN admits up to `half_open_max_calls` trial calls and closes on the
    first success or reopens on the first failure.
    """

    def __init__(self, *, threshold: int, interval: float, timeout: float, half_open_max_calls: int = 1):
        self.threshold = max(1, threshold)
        self.interval = interval
        self.timeout = timeout
        self.half_open_max_calls = max(1, half_open_max_calls)
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._window_started = time.monotonic()
        self._opened_at = 0.0
        self._half_open_calls = 0
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._update_state()
            return self._state

    def _transition(self, new_state: CircuitState) -> None:
        old_state = self._state
        self._state = new_state
        if new_state is CircuitState.OPEN:
            self._opened_at = time.monotonic()
        elif new_state is CircuitState.HALF_OPEN:
            self._half_open_calls = 0
        else:
            self._failures = 0
            self._window_started = time.monotonic()
        logger.info("Circuit %s -> %s", old_state.value, new_state.value)

    def _update_state(self) -> None:
        now = time.monotonic()
        if self._state is CircuitState.OPEN and now - self._opened_at >= self.timeout:
            self._transition(CircuitState.HALF_OPEN)
        elif self._state is CircuitState.CLOSED and self.interval > 0 and now - self._window_started >= self.interval:
            self._failures = 0
            self._window_started = now

    def before_call(self) -> None:
        with self._lock:
            self._update_state()
            if self._state is CircuitState.OPEN:
                raise CircuitOpenError("circuit breaker is open")
            if self._state is CircuitState.HALF_OPEN:
                if self._half_open_calls >= self.half_open_max_calls:
                    raise CircuitOpenError("circuit breaker is half-open and at capacity")
                self._half_open_calls += 1

    def record_success(self) -> None:
        with self._lock:
            if self._state is CircuitState.HALF_OPEN:
                self._transition(CircuitState.CLOSED)
            else:
                self._failures = 0

    def record_failure(self) -> None:
        with self._lock:
            if self._state is CircuitState.HALF_OPEN:
                self._transition(CircuitState.OPEN)
                return
            self._failures += 1
            if self._state is CircuitState.CLOSED and self._failures >= self.threshold:
                self._transition(CircuitState.OPEN)


class TokenBucket:
    """Token bucket refilled at `rate` tokens per `window` seconds, holding at most `burst` tokens."""

    def __init__(self, *, rate: int, window: float, burst: int):
        self.rate_per_second = rate / window if window > 0 else float(rate)
        self.capacity = max(1, burst)
        self._tokens = float(self.capacity)
        self._last_update = time.monotonic()
        self._lock = threading.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        self._tokens = min(self.capacity, self._tokens + (now - self._last_update) * self.rate_per_second)
        self._last_update = now

    def try_acquire(self) -> float:
        """Take a token and return 0, or return the seconds until one is available."""
        with self._lock:
            self._refill()
            if self._tokens >= 1:
                self._tokens -= 1
                return 0.0
            if self.rate_per_second <= 0:
                return float("inf")
            return (1 - self._tokens) / self.rate_per_second

    def wait(self, ctx: CallContext) -> None:
        while True:
            delay = self.try_acquire()
            if delay == 0:
                return
            ctx.sleep(delay)


class Bulkhead:
    """Caps concurrent calls; at most `max_queue` callers wait, each for at most `queue_timeout` seconds."""

    def __init__(self, *, max_concurrent: int, max_queue: int, queue_timeout: float):
        self._slots = threading.BoundedSemaphore(max(1, max_concurrent))
        self.max_queue = max(0, max_queue)
        self.queue_timeout = queue_timeout
        self._waiting = 0
        self._lock = threading.Lock()

    def acquire(self, ctx: CallContext) -> None:
        if self._slots.acquire(blocking=False):
            return
        with self._lock:
            if self._waiting >= self.max_queue:
                raise BulkheadFullError("bulkhead queue is full")
            self._waiting += 1
        try:
            timeout = self.queue_timeout
            remaining = ctx.remaining()
            if remaining is not None:
                timeout = min(timeout, remaining)
            if not self._slots.acquire(timeout=timeout):
                ctx.raise_if_done()
                raise BulkheadFullError("timed out waiting for a bulkhead slot")
        finally:
            with self._lock:
                self._waiting -= 1

    def release(self) -> None:
        self._slots.release()


__all__ = ["Bulkhead", "CircuitBreaker", "CircuitState", "TokenBucket"]
