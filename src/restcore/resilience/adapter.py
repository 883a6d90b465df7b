# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Production Resilience implementation.

Patterns are layered, outermost first: retry -> circuit breaker -> timeout ->
rate limit -> bulkhead -> inner pipeline. Retries use tenacity; every wait goes
through CallContext.sleep so cancellation still wins.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

import httpx
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
    wait_exponential_jitter,
)

from ..errors import (
    RETRYABLE_STATUS_CODES,
    DeadlineExceededError,
    ErrorCategory,
    RetryExhaustedError,
    TransportError,
)
from ..http.models import ApiRequest, ExecuteFn, close_response
from ..utils.context import CallContext
from .base import ResilienceConfig
from .patterns import Bulkhead, CircuitBreaker, TokenBucket

logger = logging.getLogger(__name__)

Step = Callable[[CallContext], httpx.Response]


def _is_retryable_response(response: httpx.Response) -> bool:
    return response.status_code in RETRYABLE_STATUS_CODES


def _close_before_retry(state: RetryCallState) -> None:
    outcome = state.outcome
    if outcome is not None and not outcome.failed:
        close_response(outcome.result())
    logger.debug("Resilience retry %d scheduled", state.attempt_number)


def _raise_exhausted(state: RetryCallState) -> httpx.Response:
    outcome = state.outcome
    if outcome is None:
        raise RuntimeError("retry stopped before any attempt ran")
    if outcome.failed:
        exc = outcome.exception()
        raise RetryExhaustedError(state.attempt_number, exc) from exc
    return outcome.result()


class ResilienceAdapter:
    """Applies the patterns enabled in a ResilienceConfig around the inner pipeline."""

    def __init__(self, config: ResilienceConfig | None = None):
        self.config = config or ResilienceConfig()
        cfg = self.config

        self.circuit_breaker: CircuitBreaker | None = None
        if cfg.circuit_breaker_enabled:
            self.circuit_breaker = CircuitBreaker(
                threshold=cfg.circuit_breaker_threshold,
                interval=cfg.circuit_breaker_interval,
                timeout=cfg.circuit_breaker_timeout,
                half_open_max_calls=cfg.circuit_breaker_half_open_max_calls,
            )

        self.rate_limiter: TokenBucket | None = None
        if cfg.rate_limit_enabled:
            self.rate_limiter = TokenBucket(
                rate=cfg.rate_limit_rate,
                window=cfg.rate_limit_window,
                burst=cfg.rate_limit_burst,
            )

        self.bulkhead: Bulkhead | None = None
        if cfg.bulkhead_enabled:
            self.bulkhead = Bulkhead(
                max_concurrent=cfg.bulkhead_max_concurrent,
                max_queue=cfg.bulkhead_max_queue,
                queue_timeout=cfg.bulkhead_queue_timeout,
            )

    def circuit_state(self) -> str:
        if self.circuit_breaker is None:
            return "disabled"
        return self.circuit_breaker.state.value

    def _wait_strategy(self):
        cfg = self.config
        if cfg.retry_jitter:
            return wait_exponential_jitter(
                initial=cfg.retry_initial_delay,
                max=cfg.retry_max_delay,
                exp_base=cfg.retry_multiplier,
                jitter=cfg.retry_initial_delay,
            )
        return wait_exponential(
            multiplier=cfg.retry_initial_delay,
            exp_base=cfg.retry_multiplier,
            max=cfg.retry_max_delay,
        )

    def _with_bulkhead(self, step: Step) -> Step:
        bulkhead = self.bulkhead
        if bulkhead is None:
            return step

        def run(ctx: CallContext) -> httpx.Response:
            bulkhead.acquire(ctx)
            try:
                return step(ctx)
            finally:
                bulkhead.release()

        return run

    def _with_rate_limit(self, step: Step) -> Step:
        limiter = self.rate_limiter
        if limiter is None:
            return step

        def run(ctx: CallContext) -> httpx.Response:
            limiter.wait(ctx)
            return step(ctx)

        return run

    def _with_timeout(self, step: Step) -> Step:
        if not self.config.timeout_enabled:
            return step
        duration = self.config.timeout_duration

        def run(ctx: CallContext) -> httpx.Response:
            attempt_ctx = ctx.with_timeout(duration)
            try:
                return step(attempt_ctx)
            except DeadlineExceededError:
                if ctx.done():
                    raise
                raise TransportError(
                    f"request timed out after {duration:.1f}s", category=ErrorCategory.TIMEOUT
                ) from None
            finally:
                attempt_ctx.cancel()

        return run

    def _with_circuit_breaker(self, step: Step) -> Step:
        breaker = self.circuit_breaker
        if breaker is None:
            return step

        def run(ctx: CallContext) -> httpx.Response:
            breaker.before_call()
            try:
                response = step(ctx)
            except TransportError:
                breaker.record_failure()
                raise
            if response.status_code >= 500:
                breaker.record_failure()
            else:
                breaker.record_success()
            return response

        return run

    def _with_retry(self, step: Step) -> Step:
        cfg = self.config
        if not cfg.retry_enabled:
            return step

        def run(ctx: CallContext) -> httpx.Response:
            retrying = Retrying(
                stop=stop_after_attempt(max(1, cfg.retry_max_attempts)),
                wait=self._wait_strategy(),
                retry=retry_if_exception_type(TransportError) | retry_if_result(_is_retryable_response),
                sleep=ctx.sleep,
                before_sleep=_close_before_retry,
                retry_error_callback=_raise_exhausted,
            )
            return retrying(step, ctx)

        return run

    def execute_request(self, ctx: CallContext, request: ApiRequest, do: ExecuteFn) -> httpx.Response:
        def step(attempt_ctx: CallContext) -> httpx.Response:
            return do(attempt_ctx, request)

        execute = self._with_bulkhead(step)
        execute = self._with_rate_limit(execute)
        execute = self._with_timeout(execute)
        execute = self._with_circuit_breaker(execute)
        execute = self._with_retry(execute)
        return execute(ctx)


__all__ = ["ResilienceAdapter"]
