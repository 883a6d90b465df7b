# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

from .encoding import decode_json_response, encode_json, parse_error_response
from .httpx_client import HttpxRoundTripper, create_default_httpx_client
from .logging_middleware import logging_middleware
from .middleware import (
    auth_middleware,
    parse_retry_after,
    rate_limit_middleware,
    resilience_middleware,
    user_agent_middleware,
)
from .models import ApiRequest, ExecuteFn, Middleware, close_response
from .retry import calculate_backoff, is_retryable_status, retry_middleware
from .transport import Transport, build_pipeline

__all__ = [
    "ApiRequest",
    "ExecuteFn",
    "HttpxRoundTripper",
    "Middleware",
    "Transport",
    "auth_middleware",
    "build_pipeline",
    "calculate_backoff",
    "close_response",
    "create_default_httpx_client",
    "decode_json_response",
    "encode_json",
    "is_retryable_status",
    "logging_middleware",
    "parse_error_response",
    "parse_retry_after",
    "rate_limit_middleware",
    "resilience_middleware",
    "retry_middleware",
    "user_agent_middleware",
]
