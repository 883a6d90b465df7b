# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Resilience extension point for the request pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import httpx

from ..http.models import ApiRequest, ExecuteFn
from ..utils.context import CallContext


class Resilience(Protocol):
    """Wraps the inner pipeline with circuit breaking, bulkheading, rate limiting or retries."""

    def execute_request(self, ctx: CallContext, request: ApiRequest, do: ExecuteFn) -> httpx.Response: ...


@dataclass
class ResilienceConfig:
    """Resilience pattern settings. Durations are in seconds."""

    circuit_breaker_enabled: bool = True
    circuit_breaker_threshold: int = 5
    circuit_breaker_interval: float = 60.0
    circuit_breaker_timeout: float = 30.0
    circuit_breaker_half_open_max_calls: int = 100

    retry_enabled: bool = True
    retry_max_attempts: int = 3
    retry_initial_delay: float = 0.1
    retry_max_delay: float = 10.0
    retry_multiplier: float = 2.0
    retry_jitter: bool = True

    rate_limit_enabled: bool = True
    rate_limit_rate: int = 100
    rate_limit_burst: int = 10
    rate_limit_window: float = 60.0

    timeout_enabled: bool = True
    timeout_duration: float = 30.0

    bulkhead_enabled: bool = True
    bulkhead_max_concurrent: int = 10
    bulkhead_max_queue: int = 20
    bulkhead_queue_timeout: float = 5.0


class NoopResilience:
    """Pass-through Resilience."""

    def execute_request(self, ctx: CallContext, request: ApiRequest, do: ExecuteFn) -> httpx.Response:
        return do(ctx, request)


__all__ = ["NoopResilience", "Resilience", "ResilienceConfig"]
