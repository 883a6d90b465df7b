# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authenticator protocol and the static-credential authenticators."""

from __future__ import annotations

import base64
from typing import Protocol

from ..http.models import ApiRequest
from ..utils.context import CallContext


class Authenticator(Protocol):
    """Attaches credentials to an outgoing request, or raises AuthenticationError."""

    def authenticate(self, request: ApiRequest, ctx: CallContext | None = None) -> None: ...

    def type(self) -> str: ...


def _basic_credentials(username: str, secret: str) -> str:
    encoded = base64.b64encode(f"{username}:{secret}".encode()).decode("ascii")
    return f"Basic {encoded}"


class APITokenAuth:
    """Email + API token sent as HTTP Basic credentials (cloud deployments)."""

    def __init__(self, email: str, token: str):
        self._email = email
        self._token = token

    def authenticate(self, request: ApiRequest, ctx: CallContext | None = None) -> None:
        request.set_header("Authorization", _basic_credentials(self._email, self._token))

    def type(self) -> str:
        return "api_token"


class PATAuth:
    """Personal access token sent as a bearer token (server/data center deployments)."""

    def __init__(self, token: str):
        self._token = token

    def authenticate(self, request: ApiRequest, ctx: CallContext | None = None) -> None:
        request.set_header("Authorization", f"Bearer {self._token}")

    def type(self) -> str:
        return "pat"


class BasicAuth:
    """Username + password HTTP Basic auth. Legacy; prefer API tokens."""

    def __init__(self, username: str, password: str):
        self._username = username
        self._password = password

    def authenticate(self, request: ApiRequest, ctx: CallContext | None = None) -> None:
        request.set_header("Authorization", _basic_credentials(self._username, self._password))

    def type(self) -> str:
        return "basic"


__all__ = ["APITokenAuth", "Authenticator", "BasicAuth", "PATAuth"]
