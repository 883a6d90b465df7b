# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
restcore package entrypoint.

restcore is the HTTP core of a remote resource API client: typed calls run
through a middleware pipeline (authentication, user agent, rate-limit
recovery, retry with backoff, logging, custom middleware) and paged list
endpoints are exposed as one lazy iterator.
"""

from .auth import APITokenAuth, Authenticator, BasicAuth, OAuth2Authenticator, OAuth2Config, OAuth2Token, PATAuth
from .client import Client
from .config import ClientSettings
from .errors import (
    ApiError,
    AuthenticationError,
    CancelledError,
    ContextError,
    DeadlineExceededError,
    ErrorKind,
    RestCoreError,
    RetryExhaustedError,
    TransportError,
    classify_error,
)
from .http import ApiRequest, ExecuteFn, Middleware, Transport, build_pipeline
from .log import Logger, NoopLogger, StdlibLogger, setup_logging
from .pagination import CursorKind, PageInfo, PageIterator, PageOptions, PagedResponse
from .resilience import NoopResilience, Resilience, ResilienceAdapter, ResilienceConfig
from .utils.context import CallContext, call_context
from .version import __version__

__all__ = [
    "APITokenAuth",
    "ApiError",
    "ApiRequest",
    "AuthenticationError",
    "Authenticator",
    "BasicAuth",
    "CallContext",
    "CancelledError",
    "Client",
    "ClientSettings",
    "ContextError",
    "CursorKind",
    "DeadlineExceededError",
    "ErrorKind",
    "ExecuteFn",
    "Logger",
    "Middleware",
    "NoopLogger",
    "NoopResilience",
    "OAuth2Authenticator",
    "OAuth2Config",
    "OAuth2Token",
    "PATAuth",
    "PageInfo",
    "PageIterator",
    "PageOptions",
    "PagedResponse",
    "Resilience",
    "ResilienceAdapter",
    "ResilienceConfig",
    "RestCoreError",
    "RetryExhaustedError",
    "StdlibLogger",
    "Transport",
    "TransportError",
    "build_pipeline",
    "call_context",
    "classify_error",
    "setup_logging",
    "__version__",
]
