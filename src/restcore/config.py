# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Configuration helpers for restcore clients."""

from dataclasses import dataclass
from urllib.parse import urlsplit

from .errors import ConfigurationError
from .version import __version__

DEFAULT_USER_AGENT = f"restcore-python/{__version__}"
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_RATE_LIMIT_BUFFER = 5.0


@dataclass
class ClientSettings:
    """HTTP client defaults. Durations are in seconds."""

    base_url: str = ""
    timeout: float = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    rate_limit_buffer: float = DEFAULT_RATE_LIMIT_BUFFER
    user_agent: str = DEFAULT_USER_AGENT
    enable_compression: bool = True

    def validate(self) -> "ClientSettings":
        """Raise ConfigurationError on the first invalid field, otherwise return self."""
        if not self.base_url:
            raise ConfigurationError("base URL is required")
        parts = urlsplit(self.base_url)
        if parts.scheme not in {"http", "https"} or not parts.netloc:
            raise ConfigurationError("base URL must use http or https scheme")
        if self.timeout <= 0:
            raise ConfigurationError("timeout must be positive")
        if self.max_retries < 0:
            raise ConfigurationError("max retries must be non-negative")
        if self.rate_limit_buffer < 0:
            raise ConfigurationError("rate limit buffer must be non-negative")
        if not self.user_agent:
            raise ConfigurationError("user agent cannot be empty")
        return self


__all__ = [
    "ClientSettings",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_RATE_LIMIT_BUFFER",
    "DEFAULT_TIMEOUT",
    "DEFAULT_USER_AGENT",
]
