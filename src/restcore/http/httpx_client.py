# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""httpx-backed base round trip: the innermost ExecuteFn of every pipeline."""

from __future__ import annotations

import httpx

from ..config import DEFAULT_TIMEOUT
from ..errors import TransportError, categorize_exception
from ..utils.context import CallContext
from .models import ApiRequest


def create_default_httpx_client(timeout: float = DEFAULT_TIMEOUT, *, enable_compression: bool = True) -> httpx.Client:
    """Factory for the default httpx client."""
    headers = {} if enable_compression else {"Accept-Encoding": "identity"}
    return httpx.Client(timeout=timeout, headers=headers)


class HttpxRoundTripper:
    """Synchronous httpx client wrapper that sends one request and streams the body."""

    def __init__(self, client: httpx.Client | None = None, *, timeout: float = DEFAULT_TIMEOUT):
        self._client = client or create_default_httpx_client(timeout)
        self._timeout = timeout

    @property
    def client(self) -> httpx.Client:
        return self._client

    def _timeout_for(self, ctx: CallContext) -> float | httpx.Timeout:
        remaining = ctx.remaining()
        if remaining is None:
            return self._client.timeout
        return httpx.Timeout(min(self._timeout, remaining))

    def __call__(self, ctx: CallContext, request: ApiRequest) -> httpx.Response:
        ctx.raise_if_done()
        http_request = self._client.build_request(
            request.method,
            request.url,
            headers=request.headers,
            content=request.body,
            timeout=self._timeout_for(ctx),
        )
        try:
            return self._client.send(http_request, stream=True)
        except httpx.HTTPError as exc:
            # A deadline that expired mid-flight reports as the context error.
            ctx.raise_if_done()
            raise TransportError(f"HTTP request failed: {exc}", category=categorize_exception(exc)) from exc

    def close(self) -> None:
        self._client.close()


__all__ = ["HttpxRoundTripper", "create_default_httpx_client"]
