# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP request model and the pipeline function types."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from urllib.parse import urlsplit

import httpx

from ..utils.context import CallContext

Headers = dict[str, str]


@dataclass
class ApiRequest:
    """
    One outgoing call, built once and shared by every attempt.

    Middleware may set headers; method, url and body stay fixed so that a
    retried attempt sends exactly what the first one did.
    """

    method: str
    url: str
    headers: Headers = field(default_factory=dict)
    body: bytes | None = None

    def __post_init__(self) -> None:
        self.method = self.method.upper()

    @property
    def path(self) -> str:
        return urlsplit(self.url).path or "/"

    def set_header(self, name: str, value: str) -> None:
        """Set a header, replacing any existing value regardless of case."""
        lowered = name.lower()
        for key in [key for key in self.headers if key.lower() == lowered]:
            del self.headers[key]
        self.headers[name] = value

    def get_header(self, name: str, default: str | None = None) -> str | None:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    def copy(self) -> ApiRequest:
        return replace(self, headers=dict(self.headers))


ExecuteFn = Callable[[CallContext, ApiRequest], httpx.Response]
"""Performs (or wraps) one HTTP exchange: returns the response or raises."""

Middleware = Callable[[ExecuteFn], ExecuteFn]
"""Wraps one ExecuteFn to add a single concern."""


def close_response(response: httpx.Response | None) -> None:
    """Release the connection held by a response that will not be handed to the caller."""
    if response is not None:
        response.close()


__all__ = ["ApiRequest", "ExecuteFn", "Headers", "Middleware", "close_response"]
