# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

from .adapter import ResilienceAdapter
from .base import NoopResilience, Resilience, ResilienceConfig
from .patterns import Bulkhead, CircuitBreaker, CircuitState, TokenBucket

__all__ = [
    "Bulkhead",
    "CircuitBreaker",
    "CircuitState",
    "NoopResilience",
    "Resilience",
    "ResilienceAdapter",
    "ResilienceConfig",
    "TokenBucket",
]
