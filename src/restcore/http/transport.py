# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Transport: builds the middleware pipeline once and runs every call through it."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any, TypeVar
from urllib.parse import urljoin, urlsplit

import httpx

from ..config import DEFAULT_MAX_RETRIES, DEFAULT_RATE_LIMIT_BUFFER, DEFAULT_USER_AGENT
from ..errors import RETRYABLE_STATUS_CODES, ConfigurationError
from ..log import Logger
from ..utils.context import CallContext, get_call_context
from .encoding import decode_json_response, encode_json
from .httpx_client import HttpxRoundTripper
from .logging_middleware import logging_middleware
from .middleware import (
    auth_middleware,
    rate_limit_middleware,
    resilience_middleware,
    user_agent_middleware,
)
from .models import ApiRequest, ExecuteFn, Middleware
from .retry import retry_middleware

if TYPE_CHECKING:  # pragma: no cover - typing-only imports
    from ..auth import Authenticator
    from ..resilience import Resilience

T = TypeVar("T")

# 429 belongs to the rate-limit layer whenever it sits inside the retry layer.
PIPELINE_RETRY_STATUSES = frozenset(RETRYABLE_STATUS_CODES - {429})


def build_pipeline(
    base: ExecuteFn,
    *,
    authenticator: Authenticator | None = None,
    user_agent: str = DEFAULT_USER_AGENT,
    max_retries: int = DEFAULT_MAX_RETRIES,
    rate_limit_buffer: float = DEFAULT_RATE_LIMIT_BUFFER,
    logger: Logger | None = None,
    resilience: Resilience | None = None,
    middlewares: Sequence[Middleware] = (),
) -> ExecuteFn:
    """
    Compose the request pipeline, innermost first.

    base call -> auth -> user agent -> rate limit -> retry (or `resilience`
    in place of both) -> logging -> custom middleware. The first entry of
    `middlewares` ends up outermost.
    """
    execute = base
    if authenticator is not None:
        execute = auth_middleware(authenticator)(execute)
    execute = user_agent_middleware(user_agent)(execute)

    if resilience is not None:
        execute = resilience_middleware(resilience)(execute)
    else:
        execute = rate_limit_middleware(rate_limit_buffer)(execute)
        execute = retry_middleware(max_retries, retry_statuses=PIPELINE_RETRY_STATUSES)(execute)

    execute = logging_middleware(logger)(execute)

    for middleware in reversed(middlewares):
        execute = middleware(execute)
    return execute


class Transport:
    """HTTP transport bound to one base URL, with a pre-built middleware chain."""

    def __init__(
        self,
        base_url: str,
        *,
        http_client: httpx.Client | None = None,
        timeout: float | None = None,
        authenticator: Authenticator | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        rate_limit_buffer: float = DEFAULT_RATE_LIMIT_BUFFER,
        user_agent: str = DEFAULT_USER_AGENT,
        logger: Logger | None = None,
        resilience: Resilience | None = None,
        middlewares: Sequence[Middleware] = (),
        round_tripper: ExecuteFn | None = None,
    ):
        parts = urlsplit(base_url)
        if parts.scheme not in {"http", "https"} or not parts.netloc:
            raise ConfigurationError(f"invalid base URL: {base_url!r}")
        if max_retries < 0:
            raise ConfigurationError("max retries must be non-negative")
        if rate_limit_buffer < 0:
            raise ConfigurationError("rate limit buffer must be non-negative")

        # A trailing slash makes relative paths resolve beneath the base path.
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.authenticator = authenticator
        self._round_tripper: HttpxRoundTripper | None = None
        if round_tripper is None:
            kwargs: dict[str, Any] = {} if timeout is None else {"timeout": timeout}
            self._round_tripper = HttpxRoundTripper(http_client, **kwargs)
            round_tripper = self._round_tripper

        self._execute = build_pipeline(
            round_tripper,
            authenticator=authenticator,
            user_agent=user_agent,
            max_retries=max_retries,
            rate_limit_buffer=rate_limit_buffer,
            logger=logger,
            resilience=resilience,
            middlewares=middlewares,
        )

    def resolve(self, path: str) -> str:
        """Resolve `path` against the base URL; a leading slash resolves from the host root."""
        return urljoin(self.base_url, path)

    def new_request(self, method: str, path: str, body: Any = None) -> ApiRequest:
        """Build a request with JSON headers and, when `body` is not None, a JSON body."""
        headers = {"Accept": "application/json"}
        content: bytes | None = None
        if body is not None:
            content = encode_json(body)
            headers["Content-Type"] = "application/json"
        return ApiRequest(method=method, url=self.resolve(path), headers=headers, body=content)

    def do(self, request: ApiRequest, ctx: CallContext | None = None) -> httpx.Response:
        """Run `request` through the pipeline. The caller owns (and must close) the response."""
        return self._execute(ctx or get_call_context(), request)

    def decode_response(self, response: httpx.Response, target: Callable[[Any], T] | None = None) -> T | Any:
        return decode_json_response(response, target)

    def close(self) -> None:
        if self._round_tripper is not None:
            self._round_tripper.close()


__all__ = ["PIPELINE_RETRY_STATUSES", "Transport", "build_pipeline"]
