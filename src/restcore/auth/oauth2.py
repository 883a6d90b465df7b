# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""OAuth 2.0 bearer authentication with refresh-token renewal."""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from ..errors import AuthenticationError, TokenRefreshError
from ..http.encoding import parse_error_response
from ..http.models import ApiRequest
from ..utils.context import CallContext

logger = logging.getLogger(__name__)

DEFAULT_AUTH_URL = "https://auth.atlassian.com/authorize"
DEFAULT_TOKEN_URL = "https://auth.atlassian.com/oauth/token"
EXPIRY_LEEWAY = 10.0
DEFAULT_REFRESH_TIMEOUT = 30.0


@dataclass
class OAuth2Token:
    access_token: str
    refresh_token: str | None = None
    token_type: str = "Bearer"
    expires_at: float | None = None
    """Wall-clock expiry (epoch seconds); None means the token does not expire."""

    def valid(self, *, now: float | None = None) -> bool:
        if not self.access_token:
            return False
        if self.expires_at is None:
            return True
        return (now if now is not None else time.time()) + EXPIRY_LEEWAY < self.expires_at

    @classmethod
    def from_payload(cls, payload: dict[str, Any], *, previous: OAuth2Token | None = None) -> OAuth2Token:
        """Build a token from a token-endpoint JSON reply, keeping the old refresh token if none is sent."""
        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise TokenRefreshError("token response has no access_token", auth_type="oauth2")
        expires_in = payload.get("expires_in")
        expires_at = None
        if isinstance(expires_in, (int, float)) and expires_in > 0:
            expires_at = time.time() + float(expires_in)
        refresh_token = payload.get("refresh_token") or (previous.refresh_token if previous else None)
        return cls(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type=str(payload.get("token_type") or "Bearer"),
            expires_at=expires_at,
        )


@dataclass
class OAuth2Config:
    client_id: str
    client_secret: str
    redirect_url: str = ""
    scopes: list[str] = field(default_factory=list)
    auth_url: str = DEFAULT_AUTH_URL
    token_url: str = DEFAULT_TOKEN_URL


class TokenStore(Protocol):
    """Persistence hook for OAuth 2.0 tokens."""

    def save_token(self, token: OAuth2Token) -> None: ...

    def load_token(self) -> OAuth2Token | None: ...

    def delete_token(self) -> None: ...


class OAuth2Authenticator:
    """
    Bearer-token authenticator that refreshes an expired access token before use.

    The refresh exchange is a `grant_type=refresh_token` form POST to the
    configured token URL. Refresh is serialized so that concurrent calls sharing
    this authenticator renew the token once.
    """

    def __init__(
        self,
        config: OAuth2Config,
        *,
        token: OAuth2Token | None = None,
        http_client: httpx.Client | None = None,
        token_store: TokenStore | None = None,
    ):
        if not config.auth_url:
            config.auth_url = DEFAULT_AUTH_URL
        if not config.token_url:
            config.token_url = DEFAULT_TOKEN_URL
        self.config = config
        self._http_client = http_client
        self._token_store = token_store
        self._lock = threading.Lock()
        if token is None and token_store is not None:
            token = token_store.load_token()
        self._token = token

    @property
    def token(self) -> OAuth2Token | None:
        return self._token

    def set_token(self, token: OAuth2Token | None) -> None:
        with self._lock:
            self._token = token

    def refresh_token(self, ctx: CallContext | None = None) -> OAuth2Token:
        """Exchange the refresh token for a new access token."""
        with self._lock:
            return self._refresh_locked(ctx)

    def _refresh_locked(self, ctx: CallContext | None) -> OAuth2Token:
        current = self._token
        if current is None:
            raise TokenRefreshError("no token to refresh", auth_type=self.type())
        if not current.refresh_token:
            raise TokenRefreshError("token expired and no refresh token is available", auth_type=self.type())
        if ctx is not None:
            ctx.raise_if_done()

        form = {
            "grant_type": "refresh_token",
            "refresh_token": current.refresh_token,
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
        }
        timeout = DEFAULT_REFRESH_TIMEOUT
        remaining = ctx.remaining() if ctx is not None else None
        if remaining is not None:
            timeout = min(timeout, remaining)

        try:
            if self._http_client is not None:
                response = self._http_client.post(self.config.token_url, data=form, timeout=timeout)
            else:
                response = httpx.post(self.config.token_url, data=form, timeout=timeout)
        except httpx.HTTPError as exc:
            raise TokenRefreshError(f"failed to refresh token: {exc}", auth_type=self.type()) from exc

        if response.status_code >= 400:
            error = parse_error_response(response.status_code, response.content)
            raise TokenRefreshError(f"failed to refresh token: {error}", auth_type=self.type()) from error

        try:
            payload = response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise TokenRefreshError(f"failed to refresh token: {exc}", auth_type=self.type()) from exc
        if not isinstance(payload, dict):
            raise TokenRefreshError("failed to refresh token: unexpected response", auth_type=self.type())

        token = OAuth2Token.from_payload(payload, previous=current)
        self._token = token
        logger.info("Refreshed OAuth 2.0 access token")
        if self._token_store is not None:
            self._token_store.save_token(token)
        return token

    def authenticate(self, request: ApiRequest, ctx: CallContext | None = None) -> None:
        with self._lock:
            token = self._token
            if token is None:
                raise AuthenticationError("no OAuth 2.0 token available", auth_type=self.type())
            if not token.valid():
                token = self._refresh_locked(ctx)
        request.set_header("Authorization", f"Bearer {token.access_token}")

    def type(self) -> str:
        return "oauth2"


__all__ = [
    "DEFAULT_AUTH_URL",
    "DEFAULT_TOKEN_URL",
    "OAuth2Authenticator",
    "OAuth2Config",
    "OAuth2Token",
    "TokenStore",
]
