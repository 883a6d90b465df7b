# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy and exception helpers."""

from __future__ import annotations

import socket
import ssl as ssl_module
from enum import Enum
from typing import Any

import httpx

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class ErrorCategory(str, Enum):
    TIMEOUT = "TIMEOUT"
    SSL_ERROR = "SSL_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    DNS_ERROR = "DNS_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class ErrorKind(str, Enum):
    """Coarse answer to "whose fault was it" for a failed call."""

    CLIENT = "CLIENT"
    TRANSIENT = "TRANSIENT"
    CANCELLED = "CANCELLED"
    AUTHENTICATION = "AUTHENTICATION"
    UNKNOWN = "UNKNOWN"


class RestCoreError(Exception):
    """Base class for every error raised by restcore."""


class ConfigurationError(RestCoreError):
    pass


class AuthenticationError(RestCoreError):
    """The authenticator could not attach credentials; no request was sent."""

    def __init__(self, message: str, *, auth_type: str | None = None):
        super().__init__(message)
        self.auth_type = auth_type

    def __str__(self) -> str:
        base = super().__str__()
        if self.auth_type:
            return f"authentication failed ({self.auth_type}): {base}"
        return f"authentication failed: {base}"


class TokenRefreshError(AuthenticationError):
    pass


class TransportError(RestCoreError):
    """A request never produced an HTTP response (DNS, connect, read, timeout)."""

    def __init__(self, message: str, *, category: ErrorCategory = ErrorCategory.UNKNOWN_ERROR):
        super().__init__(message)
        self.category = category


class RetryExhaustedError(RestCoreError):
    """Every allowed attempt failed with an error."""

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"request failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class ContextError(RestCoreError):
    pass


class CancelledError(ContextError):
    def __init__(self, message: str = "context cancelled"):
        super().__init__(message)


class DeadlineExceededError(ContextError):
    def __init__(self, message: str = "context deadline exceeded"):
        super().__init__(message)


class EncodingError(RestCoreError):
    pass


class DecodingError(RestCoreError):
    pass


class CircuitOpenError(RestCoreError):
    pass


class BulkheadFullError(RestCoreError):
    pass


class ApiError(RestCoreError):
    """An HTTP error response (status >= 400) with its parsed error body."""

    def __init__(
        self,
        status_code: int,
        *,
        message: str = "",
        error_messages: list[str] | None = None,
        errors: dict[str, str] | None = None,
    ):
        self.status_code = status_code
        self.message = message
        self.error_messages = list(error_messages or [])
        self.errors = dict(errors or {})
        super().__init__(self._render())

    def _render(self) -> str:
        prefix = f"API error (HTTP {self.status_code})"
        if self.message:
            return f"{prefix}: {self.message}"
        if self.error_messages:
            return f"{prefix}: {self.error_messages[0]}"
        for field_name, field_message in self.errors.items():
            return f"{prefix}: {field_name}: {field_message}"
        return prefix

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401

    @property
    def is_forbidden(self) -> bool:
        return self.status_code == 403

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500 and self.status_code != 429

    @property
    def is_server_error(self) -> bool:
        return self.status_code >= 500


def _status_of(exc: BaseException | None) -> int | None:
    if isinstance(exc, ApiError):
        return exc.status_code
    return None


def is_not_found(exc: BaseException | None) -> bool:
    return _status_of(exc) == 404


def is_unauthorized(exc: BaseException | None) -> bool:
    return _status_of(exc) == 401


def is_forbidden(exc: BaseException | None) -> bool:
    return _status_of(exc) == 403


def is_rate_limited(exc: BaseException | None) -> bool:
    return _status_of(exc) == 429


def _caused_by(exc: BaseException, types: tuple[type[BaseException], ...]) -> bool:
    seen: set[int] = set()
    current: Any = exc.__cause__ or exc.__context__
    while current is not None and id(current) not in seen:
        if isinstance(current, types):
            return True
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return False


def categorize_exception(exc: BaseException) -> ErrorCategory:
    """
    Map Python/httpx exceptions to ErrorCategory.
    """
    if isinstance(exc, httpx.TimeoutException):
        return ErrorCategory.TIMEOUT

    if isinstance(exc, (ssl_module.SSLError, ssl_module.CertificateError)):
        return ErrorCategory.SSL_ERROR

    if isinstance(exc, (socket.gaierror, socket.herror)):
        return ErrorCategory.DNS_ERROR

    if isinstance(exc, httpx.ConnectError) and _caused_by(exc, (socket.gaierror, socket.herror)):
        return ErrorCategory.DNS_ERROR

    if isinstance(exc, (httpx.ConnectError, httpx.RemoteProtocolError, httpx.NetworkError, httpx.ProxyError)):
        return ErrorCategory.CONNECTION_ERROR

    if isinstance(exc, (ConnectionError, ConnectionRefusedError, ConnectionResetError)):
        return ErrorCategory.CONNECTION_ERROR

    return ErrorCategory.UNKNOWN_ERROR


def classify_error(exc: BaseException | None) -> ErrorKind:
    """Classify a failure as the caller's fault, transient, cancelled, or an auth problem."""
    if exc is None:
        return ErrorKind.UNKNOWN
    if isinstance(exc, ContextError):
        return ErrorKind.CANCELLED
    if isinstance(exc, AuthenticationError):
        return ErrorKind.AUTHENTICATION
    if isinstance(exc, RetryExhaustedError):
        return classify_error(exc.last_error)
    if isinstance(exc, (TransportError, CircuitOpenError, BulkheadFullError)):
        return ErrorKind.TRANSIENT
    if isinstance(exc, ApiError):
        if exc.status_code in RETRYABLE_STATUS_CODES:
            return ErrorKind.TRANSIENT
        if 400 <= exc.status_code < 500:
            return ErrorKind.CLIENT
    return ErrorKind.UNKNOWN


__all__ = [
    "ApiError",
    "AuthenticationError",
    "BulkheadFullError",
    "CancelledError",
    "CircuitOpenError",
    "ConfigurationError",
    "ContextError",
    "DeadlineExceededError",
    "DecodingError",
    "EncodingError",
    "ErrorCategory",
    "ErrorKind",
    "RETRYABLE_STATUS_CODES",
    "RestCoreError",
    "RetryExhaustedError",
    "TokenRefreshError",
    "TransportError",
    "categorize_exception",
    "classify_error",
    "is_forbidden",
    "is_not_found",
    "is_rate_limited",
    "is_unauthorized",
]
