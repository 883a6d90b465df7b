# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import time
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import httpx
import pytest

from restcore.errors import CancelledError, DeadlineExceededError
from restcore.http.middleware import (
    DEFAULT_RETRY_AFTER,
    parse_beta_rate_limit,
    parse_beta_rate_limit_policy,
    parse_retry_after,
    rate_limit_middleware,
)
from restcore.http.models import ApiRequest
from restcore.utils.context import CallContext


def _request() -> ApiRequest:
    return ApiRequest("GET", "https://example.com/rest/api/3/search")


class _Scripted:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.sent: list[httpx.Response] = []

    @property
    def calls(self) -> int:
        return len(self.sent)

    def __call__(self, ctx, request):  # noqa: ANN001
        status, headers = self.responses[min(len(self.sent), len(self.responses) - 1)]
        response = httpx.Response(status, headers=headers, stream=httpx.ByteStream(b"{}"))
        self.sent.append(response)
        return response


def test_parse_retry_after_seconds():
    assert parse_retry_after("120") == 120.0
    assert parse_retry_after(" 3 ") == 3.0
    assert parse_retry_after("0") == 0.0


@pytest.mark.parametrize("value", [None, "", "soon", "-5", "1.5", "Mon, 99 Foo 2024"])
def test_parse_retry_after_falls_back_to_default(value):
    assert parse_retry_after(value) == DEFAULT_RETRY_AFTER


def test_parse_retry_after_http_date():
    now = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    header = format_datetime(now + timedelta(seconds=90), usegmt=True)
    assert parse_retry_after(header, now=now) == pytest.approx(90.0)


def test_parse_retry_after_past_date_uses_default():
    now = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    header = format_datetime(now - timedelta(minutes=5), usegmt=True)
    assert parse_retry_after(header, now=now) == DEFAULT_RETRY_AFTER


def test_parse_beta_rate_limit_policy():
    assert parse_beta_rate_limit_policy("100;w=60") == (100, 60)
    assert parse_beta_rate_limit_policy("250") == (250, 0)
    assert parse_beta_rate_limit_policy("abc;w=60") == (0, 0)
    assert parse_beta_rate_limit_policy("") == (0, 0)
    assert parse_beta_rate_limit_policy(None) == (0, 0)


def test_parse_beta_rate_limit_remaining():
    assert parse_beta_rate_limit('r=85;policy="100;w=60"') == 85
    assert parse_beta_rate_limit("r=0") == 0
    assert parse_beta_rate_limit("policy=x") == -1
    assert parse_beta_rate_limit("r=many") == -1
    assert parse_beta_rate_limit(None) == -1


def test_success_passes_through_once():
    inner = _Scripted((200, {}))
    response = rate_limit_middleware(0)(inner)(CallContext(), _request())
    assert response.status_code == 200
    assert inner.calls == 1


def test_429_then_success_makes_two_calls(monkeypatch):
    waits: list[float] = []
    monkeypatch.setattr(CallContext, "sleep", lambda self, seconds: waits.append(seconds))
    inner = _Scripted((429, {"Retry-After": "7"}), (200, {}))

    response = rate_limit_middleware(5)(inner)(CallContext(), _request())

    assert response.status_code == 200
    assert inner.calls == 2
    assert waits == [12.0]
    assert inner.sent[0].is_closed
    assert not inner.sent[1].is_closed


def test_persistent_429_is_reissued_only_once(monkeypatch):
    monkeypatch.setattr(CallContext, "sleep", lambda self, seconds: None)
    inner = _Scripted((429, {"Retry-After": "1"}))

    response = rate_limit_middleware(0)(inner)(CallContext(), _request())

    assert response.status_code == 429
    assert inner.calls == 2


def test_missing_retry_after_waits_default_plus_buffer(monkeypatch):
    waits: list[float] = []
    monkeypatch.setattr(CallContext, "sleep", lambda self, seconds: waits.append(seconds))
    inner = _Scripted((429, {}), (200, {}))

    rate_limit_middleware(0.5)(inner)(CallContext(), _request())
    assert waits == [DEFAULT_RETRY_AFTER + 0.5]


def test_retry_after_wait_is_real():
    inner = _Scripted((429, {"Retry-After": "2"}), (200, {}))
    start = time.monotonic()

    response = rate_limit_middleware(0.1)(inner)(CallContext(), _request())

    assert response.status_code == 200
    assert inner.calls == 2
    assert time.monotonic() - start >= 2.09


def test_deadline_shorter_than_retry_after_aborts():
    inner = _Scripted((429, {"Retry-After": "30"}), (200, {}))
    ctx = CallContext().with_timeout(0.1)

    with pytest.raises(DeadlineExceededError):
        rate_limit_middleware(0)(inner)(ctx, _request())
    assert inner.calls == 1


def test_cancelled_wait_aborts_without_reissue(monkeypatch):
    def cancelled_sleep(self, seconds):
        raise CancelledError()

    monkeypatch.setattr(CallContext, "sleep", cancelled_sleep)
    inner = _Scripted((429, {"Retry-After": "3"}), (200, {}))

    with pytest.raises(CancelledError):
        rate_limit_middleware(0)(inner)(CallContext(), _request())
    assert inner.calls == 1


def test_negative_buffer_rejected():
    with pytest.raises(ValueError):
        rate_limit_middleware(-1)
