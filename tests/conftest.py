# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from restcore.http.httpx_client import HttpxRoundTripper


class RecordingLogger:
    """Structured Logger double that keeps every record."""

    def __init__(self, records: list[tuple[str, str, dict[str, Any]]] | None = None, fields: dict[str, Any] | None = None):
        self.records = records if records is not None else []
        self.fields = dict(fields or {})

    def _record(self, level: str, message: str, fields: dict[str, Any]) -> None:
        self.records.append((level, message, {**self.fields, **fields}))

    def debug(self, ctx, message, **fields):  # noqa: ANN001
        self._record("debug", message, fields)

    def info(self, ctx, message, **fields):  # noqa: ANN001
        self._record("info", message, fields)

    def warning(self, ctx, message, **fields):  # noqa: ANN001
        self._record("warning", message, fields)

    def error(self, ctx, message, **fields):  # noqa: ANN001
        self._record("error", message, fields)

    def with_fields(self, **fields):  # noqa: ANN003
        return RecordingLogger(self.records, {**self.fields, **fields})

    def levels(self) -> list[str]:
        return [level for level, _, _ in self.records]


class SequenceServer:
    """httpx.MockTransport handler replaying a scripted list of responses or exceptions."""

    def __init__(self, responses: list[httpx.Response | Exception | Callable[[httpx.Request], httpx.Response]]):
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self._responses[min(len(self.requests) - 1, len(self._responses) - 1)]
        if isinstance(item, Exception):
            raise item
        if callable(item) and not isinstance(item, httpx.Response):
            return item(request)
        return httpx.Response(item.status_code, headers=item.headers, content=item.content)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))

    def round_tripper(self) -> HttpxRoundTripper:
        return HttpxRoundTripper(self.client())


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def no_backoff(monkeypatch):
    """Make retry backoff instantaneous."""
    from restcore.http import retry as retry_module

    monkeypatch.setattr(retry_module, "calculate_backoff", lambda attempt, **_: 0.0)


@pytest.fixture
def make_server() -> Callable[..., SequenceServer]:
    return SequenceServer
