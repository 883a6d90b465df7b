# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Retry-with-backoff middleware."""

from __future__ import annotations

import logging
import random
from collections.abc import Collection

import httpx

from ..errors import RETRYABLE_STATUS_CODES, RetryExhaustedError, TransportError
from ..utils.context import CallContext
from .models import ApiRequest, ExecuteFn, Middleware, close_response

logger = logging.getLogger(__name__)

BASE_DELAY = 0.1
MAX_DELAY = 30.0
JITTER = 0.25
MAX_EXPONENT = 64


def is_retryable_status(status_code: int, retry_statuses: Collection[int] = RETRYABLE_STATUS_CODES) -> bool:
    return status_code in retry_statuses


def calculate_backoff(attempt: int, *, base_delay: float = BASE_DELAY, max_delay: float = MAX_DELAY) -> float:
    """
    Delay in seconds before retry number `attempt` (0-based).

    min(base_delay * 2**attempt, max_delay), then scaled by a random factor in [0.75, 1.25].
    """
    delay = min(base_delay * (2 ** min(attempt, MAX_EXPONENT)), max_delay)
    jitter = delay * JITTER * (random.random() * 2 - 1)
    return delay + jitter


def retry_middleware(
    max_retries: int,
    *,
    retry_statuses: Collection[int] = RETRYABLE_STATUS_CODES,
) -> Middleware:
    """
    Retry transport failures and retryable statuses up to `max_retries` extra times.

    Only TransportError is retried; authentication, API and context errors pass
    straight through. When attempts run out the last retryable response is
    returned as-is, or the last TransportError is raised wrapped in
    RetryExhaustedError.
    """
    if max_retries < 0:
        raise ValueError("max_retries must be non-negative")
    statuses = frozenset(retry_statuses)

    def wrap(next_fn: ExecuteFn) -> ExecuteFn:
        def execute(ctx: CallContext, request: ApiRequest) -> httpx.Response:
            response: httpx.Response | None = None
            last_error: TransportError | None = None

            for attempt in range(max_retries + 1):
                ctx.raise_if_done()

                try:
                    response = next_fn(ctx, request)
                    last_error = None
                except TransportError as exc:
                    response = None
                    last_error = exc

                if last_error is None and response is not None and response.status_code not in statuses:
                    return response

                if attempt == max_retries:
                    break

                delay = calculate_backoff(attempt)
                logger.debug(
                    "Retrying %s %s in %.3fs (attempt %d/%d): %s",
                    request.method,
                    request.url,
                    delay,
                    attempt + 1,
                    max_retries,
                    last_error if last_error is not None else f"HTTP {response.status_code}",
                )
                try:
                    ctx.sleep(delay)
                finally:
                    close_response(response)

            if last_error is not None:
                raise RetryExhaustedError(max_retries + 1, last_error) from last_error
            return response

        return execute

    return wrap


__all__ = [
    "BASE_DELAY",
    "MAX_DELAY",
    "calculate_backoff",
    "is_retryable_status",
    "retry_middleware",
]
