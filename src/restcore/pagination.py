# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Pagination helpers for list endpoints.

Offset-paged endpoints report startAt/maxResults/total/isLast; token-paged
endpoints report nextPageToken/isLast. PageIterator turns either kind into a
single lazy sequence of items, fetching one page at a time.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar, Union

from .errors import ConfigurationError

T = TypeVar("T")

DEFAULT_MAX_RESULTS = 50
MAX_MAX_RESULTS = 100

Cursor = Union[int, str, None]


class CursorKind(str, Enum):
    OFFSET = "offset"
    TOKEN = "token"


@dataclass
class PageInfo:
    """Position of a fetched page and whether more pages follow."""

    start_at: int = 0
    max_results: int = 0
    total: int | None = None
    is_last: bool | None = None
    next_page_token: str | None = None

    def has_next_page(self, kind: CursorKind = CursorKind.OFFSET, item_count: int | None = None) -> bool:
        if self.is_last is True:
            return False
        if kind is CursorKind.TOKEN:
            return bool(self.next_page_token)
        if self.is_last is False:
            return True
        if self.total is not None:
            return self.start_at + self._page_size(item_count) < self.total
        # No total and no isLast: a full page suggests there may be more.
        return item_count is not None and item_count > 0 and item_count >= self.max_results

    def next_start_at(self, item_count: int | None = None) -> int:
        return self.start_at + self._page_size(item_count)

    def next_cursor(self, kind: CursorKind = CursorKind.OFFSET, item_count: int | None = None) -> Cursor:
        if kind is CursorKind.TOKEN:
            return self.next_page_token
        return self.next_start_at(item_count)

    def _page_size(self, item_count: int | None) -> int:
        if self.max_results > 0:
            return self.max_results
        return item_count or 0

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> PageInfo:
        total = payload.get("total")
        is_last = payload.get("isLast")
        token = payload.get("nextPageToken")
        return cls(
            start_at=int(payload.get("startAt") or 0),
            max_results=int(payload.get("maxResults") or 0),
            total=int(total) if isinstance(total, (int, float)) else None,
            is_last=is_last if isinstance(is_last, bool) else None,
            next_page_token=token if isinstance(token, str) else None,
        )


@dataclass
class PageOptions:
    """Pagination query options for list requests."""

    start_at: int = 0
    max_results: int = 0

    def validate(self) -> None:
        if self.start_at < 0:
            raise ConfigurationError("startAt must be non-negative")
        if self.max_results < 0:
            raise ConfigurationError("maxResults must be non-negative")
        if self.max_results > MAX_MAX_RESULTS:
            raise ConfigurationError(f"maxResults cannot exceed {MAX_MAX_RESULTS}")

    def to_params(self) -> dict[str, int]:
        """Query parameters; maxResults defaults to DEFAULT_MAX_RESULTS and is capped at MAX_MAX_RESULTS."""
        params: dict[str, int] = {}
        if self.start_at > 0:
            params["startAt"] = self.start_at
        max_results = self.max_results if self.max_results > 0 else DEFAULT_MAX_RESULTS
        params["maxResults"] = min(max_results, MAX_MAX_RESULTS)
        return params


@dataclass
class PagedResponse(Generic[T]):
    items: list[T] = field(default_factory=list)
    page_info: PageInfo = field(default_factory=PageInfo)

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        *,
        items_key: str = "values",
        item: Callable[[Any], T] | None = None,
    ) -> PagedResponse[T]:
        raw_items = payload.get(items_key) or []
        items = [item(entry) for entry in raw_items] if item is not None else list(raw_items)
        return cls(items=items, page_info=PageInfo.from_payload(payload))


FetchPage = Callable[[Cursor], tuple[Sequence[Any], PageInfo]]


class PageIterator(Generic[T]):
    """
    Lazy, finite, non-restartable iterator over paged results.

    `fetch_page(cursor)` returns `(items, page_info)` and raises on failure.
    The cursor is an int offset or an opaque token depending on `kind`. A fetch
    error ends the iteration and stays available on `error`; `advance()` just
    returns False, while the iterator protocol raises it once. Not thread-safe.
    """

    def __init__(self, fetch_page: FetchPage, *, kind: CursorKind = CursorKind.OFFSET, start: Cursor = None):
        self._fetch_page = fetch_page
        self.kind = kind
        self._cursor: Cursor = start if start is not None else (0 if kind is CursorKind.OFFSET else None)
        self._items: Sequence[T] = ()
        self._position = -1
        self._page_info: PageInfo | None = None
        self._need_page = True
        self._finished = False
        self.error: BaseException | None = None
        self._error_raised = False

    @classmethod
    def offset(cls, fetch_page: FetchPage, start_at: int = 0) -> PageIterator[T]:
        return cls(fetch_page, kind=CursorKind.OFFSET, start=start_at)

    @classmethod
    def token(cls, fetch_page: FetchPage, start_token: str | None = None) -> PageIterator[T]:
        return cls(fetch_page, kind=CursorKind.TOKEN, start=start_token)

    @property
    def page_info(self) -> PageInfo | None:
        return self._page_info

    def _load_page(self) -> bool:
        try:
            items, page_info = self._fetch_page(self._cursor)
        except Exception as exc:
            self.error = exc
            self._finished = True
            return False
        self._items = list(items)
        self._page_info = page_info
        self._position = 0
        self._need_page = False
        return bool(self._items)

    def advance(self) -> bool:
        """Move to the next item; False once the sequence is exhausted or a fetch failed."""
        if self._finished:
            return False

        if not self._need_page:
            self._position += 1
            if self._position < len(self._items):
                return True
            page_info = self._page_info
            if page_info is None or not page_info.has_next_page(self.kind, len(self._items)):
                self._finished = True
                return False
            self._cursor = page_info.next_cursor(self.kind, len(self._items))
            self._need_page = True

        if not self._load_page():
            self._finished = True
            return False
        return True

    @property
    def item(self) -> T:
        if self._need_page or not 0 <= self._position < len(self._items):
            raise IndexError("iterator is not positioned on an item")
        return self._items[self._position]

    def __iter__(self) -> Iterator[T]:
        return self

    def __next__(self) -> T:
        if self.advance():
            return self.item
        if self.error is not None and not self._error_raised:
            self._error_raised = True
            raise self.error
        raise StopIteration

    def collect(self) -> list[T]:
        """Drain the iterator into a list, raising the fetch error if one occurred."""
        return list(self)


__all__ = [
    "Cursor",
    "CursorKind",
    "DEFAULT_MAX_RESULTS",
    "FetchPage",
    "MAX_MAX_RESULTS",
    "PageInfo",
    "PageIterator",
    "PageOptions",
    "PagedResponse",
]
