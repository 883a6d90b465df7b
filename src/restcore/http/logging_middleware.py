# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Structured logging middleware: one record per logical call."""

from __future__ import annotations

import time

import httpx

from ..log import Logger
from ..utils.context import CallContext
from .models import ApiRequest, ExecuteFn, Middleware


def logging_middleware(logger: Logger | None) -> Middleware:
    """
    Log the outcome of everything below this layer, retries included.

    Level follows the final outcome: raised error or 5xx -> error,
    4xx -> warning, anything else -> info.
    """

    def wrap(next_fn: ExecuteFn) -> ExecuteFn:
        if logger is None:
            return next_fn

        def execute(ctx: CallContext, request: ApiRequest) -> httpx.Response:
            start = time.monotonic()
            try:
                response = next_fn(ctx, request)
            except Exception as exc:
                logger.error(
                    ctx,
                    "request_failed",
                    method=request.method,
                    path=request.path,
                    duration=time.monotonic() - start,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                raise

            fields = {
                "method": request.method,
                "path": request.path,
                "status": response.status_code,
                "duration": time.monotonic() - start,
            }
            rate_limit = response.headers.get("X-RateLimit-Limit")
            if rate_limit:
                fields["rate_limit"] = rate_limit
            rate_limit_remaining = response.headers.get("X-RateLimit-Remaining")
            if rate_limit_remaining:
                fields["rate_limit_remaining"] = rate_limit_remaining

            if response.status_code >= 500:
                logger.error(ctx, "request_server_error", **fields)
            elif response.status_code >= 400:
                logger.warning(ctx, "request_client_error", **fields)
            else:
                logger.info(ctx, "request_completed", **fields)
            return response

        return execute

    return wrap


__all__ = ["logging_middleware"]
