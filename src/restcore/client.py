# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""High-level client facade that wires settings, authentication and the transport."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, TypeVar

import httpx

from .auth import APITokenAuth, Authenticator, BasicAuth, OAuth2Authenticator, PATAuth
from .config import ClientSettings
from .errors import ConfigurationError
from .http.httpx_client import create_default_httpx_client
from .http.models import ApiRequest, Middleware
from .http.transport import Transport
from .log import Logger, NoopLogger
from .pagination import Cursor, CursorKind, PageInfo, PageIterator, PageOptions, PagedResponse
from .resilience import Resilience
from .utils.context import CallContext

T = TypeVar("T")


class Client:
    """
    Entry point for calling the remote API.

    One Transport (and so one middleware chain) is built at construction time
    and shared by every call; the instance is safe to use from several threads.
    """

    def __init__(
        self,
        base_url: str,
        *,
        authenticator: Authenticator | None = None,
        settings: ClientSettings | None = None,
        http_client: httpx.Client | None = None,
        logger: Logger | None = None,
        resilience: Resilience | None = None,
        middlewares: Sequence[Middleware] = (),
    ):
        if authenticator is None:
            raise ConfigurationError("authentication method is required")
        base = settings or ClientSettings()
        self.settings = ClientSettings(
            base_url=base_url,
            timeout=base.timeout,
            max_retries=base.max_retries,
            rate_limit_buffer=base.rate_limit_buffer,
            user_agent=base.user_agent,
            enable_compression=base.enable_compression,
        ).validate()
        self.authenticator = authenticator
        self.logger = logger or NoopLogger()
        self.http_client = http_client or create_default_httpx_client(
            self.settings.timeout, enable_compression=self.settings.enable_compression
        )
        self.transport = Transport(
            self.settings.base_url,
            http_client=self.http_client,
            timeout=self.settings.timeout,
            authenticator=authenticator,
            max_retries=self.settings.max_retries,
            rate_limit_buffer=self.settings.rate_limit_buffer,
            user_agent=self.settings.user_agent,
            logger=self.logger,
            resilience=resilience,
            middlewares=middlewares,
        )

    @classmethod
    def with_api_token(cls, base_url: str, email: str, token: str, **kwargs: Any) -> Client:
        if not email or not token:
            raise ConfigurationError("email and token are required")
        return cls(base_url, authenticator=APITokenAuth(email, token), **kwargs)

    @classmethod
    def with_pat(cls, base_url: str, token: str, **kwargs: Any) -> Client:
        if not token:
            raise ConfigurationError("PAT token is required")
        return cls(base_url, authenticator=PATAuth(token), **kwargs)

    @classmethod
    def with_basic_auth(cls, base_url: str, username: str, password: str, **kwargs: Any) -> Client:
        if not username or not password:
            raise ConfigurationError("username and password are required")
        return cls(base_url, authenticator=BasicAuth(username, password), **kwargs)

    @classmethod
    def with_oauth2(cls, base_url: str, oauth: OAuth2Authenticator, **kwargs: Any) -> Client:
        if oauth is None:
            raise ConfigurationError("OAuth 2.0 authenticator is required")
        return cls(base_url, authenticator=oauth, **kwargs)

    def new_request(self, method: str, path: str, body: Any = None) -> ApiRequest:
        return self.transport.new_request(method, path, body)

    def do(self, request: ApiRequest, ctx: CallContext | None = None) -> httpx.Response:
        """Low-level escape hatch: run a prepared request through the pipeline."""
        return self.transport.do(request, ctx)

    def request_json(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        params: dict[str, Any] | None = None,
        target: Callable[[Any], T] | None = None,
        ctx: CallContext | None = None,
    ) -> T | Any:
        """Build, send and decode one JSON call. HTTP errors raise ApiError."""
        request = self.new_request(method, path, body)
        if params:
            request.url = str(httpx.URL(request.url).copy_merge_params(params))
        response = self.do(request, ctx)
        return self.transport.decode_response(response, target)

    def paginate(
        self,
        path: str,
        *,
        options: PageOptions | None = None,
        items_key: str = "values",
        item: Callable[[Any], T] | None = None,
        kind: CursorKind = CursorKind.OFFSET,
        params: dict[str, Any] | None = None,
        ctx: CallContext | None = None,
    ) -> PageIterator[T]:
        """Iterate every item of a paged GET endpoint."""
        options = options or PageOptions()
        options.validate()
        page_params = options.to_params()

        def fetch_page(cursor: Cursor) -> tuple[list[T], PageInfo]:
            query: dict[str, Any] = {**(params or {}), "maxResults": page_params["maxResults"]}
            if kind is CursorKind.OFFSET:
                query["startAt"] = cursor or 0
            elif cursor:
                query["nextPageToken"] = cursor
            payload = self.request_json("GET", path, params=query, ctx=ctx) or {}
            page = PagedResponse.from_payload(payload, items_key=items_key, item=item)
            return page.items, page.page_info

        start: Cursor = options.start_at if kind is CursorKind.OFFSET else None
        return PageIterator(fetch_page, kind=kind, start=start)

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> Client:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.close()


__all__ = ["Client"]
