# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Single-purpose request middleware: authentication, user agent, rate-limit recovery."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING

import httpx

from ..errors import AuthenticationError, ContextError
from ..utils.context import CallContext
from .models import ApiRequest, ExecuteFn, Middleware, close_response

if TYPE_CHECKING:  # pragma: no cover - typing-only imports
    from ..auth import Authenticator
    from ..resilience import Resilience

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER = 1.0


def auth_middleware(authenticator: Authenticator) -> Middleware:
    """Attach credentials; an authenticator failure stops the call before any network I/O."""

    def wrap(next_fn: ExecuteFn) -> ExecuteFn:
        def execute(ctx: CallContext, request: ApiRequest) -> httpx.Response:
            try:
                authenticator.authenticate(request, ctx)
            except (AuthenticationError, ContextError):
                raise
            except Exception as exc:
                raise AuthenticationError(str(exc) or type(exc).__name__, auth_type=authenticator.type()) from exc
            return next_fn(ctx, request)

        return execute

    return wrap


def user_agent_middleware(user_agent: str) -> Middleware:
    def wrap(next_fn: ExecuteFn) -> ExecuteFn:
        def execute(ctx: CallContext, request: ApiRequest) -> httpx.Response:
            request.set_header("User-Agent", user_agent)
            return next_fn(ctx, request)

        return execute

    return wrap


def parse_retry_after(value: str | None, *, now: datetime | None = None) -> float:
    """
    Seconds to wait according to a Retry-After header value.

    Accepts delta-seconds ("120") or an HTTP-date; anything else, or a date in
    the past, yields DEFAULT_RETRY_AFTER.
    """
    if not value:
        return DEFAULT_RETRY_AFTER
    value = value.strip()

    if value.isdigit():
        return float(int(value))

    try:
        target = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return DEFAULT_RETRY_AFTER
    if target is None:
        return DEFAULT_RETRY_AFTER
    if target.tzinfo is None:
        target = target.replace(tzinfo=timezone.utc)

    delta = (target - (now or datetime.now(timezone.utc))).total_seconds()
    if delta > 0 and math.isfinite(delta):
        return delta
    return DEFAULT_RETRY_AFTER


def parse_beta_rate_limit_policy(policy: str | None) -> tuple[int, int]:
    """Parse `Beta-RateLimit-Policy: 100;w=60` into (limit, window_seconds); (0, 0) when invalid."""
    if not policy:
        return 0, 0
    parts = policy.split(";")
    try:
        limit = int(parts[0].strip())
    except ValueError:
        return 0, 0

    window = 0
    for part in parts[1:]:
        key, sep, raw = part.strip().partition("=")
        if sep and key == "w":
            try:
                window = int(raw)
            except ValueError:
                continue
    return limit, window


def parse_beta_rate_limit(header: str | None) -> int:
    """Parse `Beta-RateLimit: r=85;policy="100;w=60"` into remaining points; -1 when absent."""
    if not header:
        return -1
    for part in header.split(";"):
        key, sep, raw = part.strip().partition("=")
        if sep and key == "r":
            try:
                return int(raw)
            except ValueError:
                return -1
    return -1


def _log_quota(request: ApiRequest, response: httpx.Response) -> None:
    if response.headers.get("X-RateLimit-Remaining") == "0":
        logger.debug("Rate limit quota exhausted after %s %s", request.method, request.path)

    policy = response.headers.get("Beta-RateLimit-Policy")
    if policy and parse_beta_rate_limit(response.headers.get("Beta-RateLimit")) == 0:
        limit, window = parse_beta_rate_limit_policy(policy)
        logger.debug("Rate limit points exhausted (limit=%d window=%ds)", limit, window)


def rate_limit_middleware(buffer: float) -> Middleware:
    """
    Recover from a single 429 by honoring Retry-After.

    The rejected response is closed, the wait (Retry-After plus `buffer`)
    races the context, and the request is re-issued exactly once; whatever that
    attempt returns is final for this layer.
    """
    if buffer < 0:
        raise ValueError("buffer must be non-negative")

    def wrap(next_fn: ExecuteFn) -> ExecuteFn:
        def execute(ctx: CallContext, request: ApiRequest) -> httpx.Response:
            response = next_fn(ctx, request)

            if response.status_code == 429:
                wait = parse_retry_after(response.headers.get("Retry-After")) + buffer
                close_response(response)
                logger.info("Rate limited on %s %s; waiting %.2fs", request.method, request.path, wait)
                ctx.sleep(wait)
                return next_fn(ctx, request)

            _log_quota(request, response)
            return response

        return execute

    return wrap


def resilience_middleware(resilience: Resilience) -> Middleware:
    """Delegate the inner chain to an external Resilience implementation."""

    def wrap(next_fn: ExecuteFn) -> ExecuteFn:
        def execute(ctx: CallContext, request: ApiRequest) -> httpx.Response:
            return resilience.execute_request(ctx, request, next_fn)

        return execute

    return wrap


__all__ = [
    "DEFAULT_RETRY_AFTER",
    "auth_middleware",
    "parse_beta_rate_limit",
    "parse_beta_rate_limit_policy",
    "parse_retry_after",
    "rate_limit_middleware",
    "resilience_middleware",
    "user_agent_middleware",
]
