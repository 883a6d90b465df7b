# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Logging helpers for restcore."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from .utils.context import CallContext

DEFAULT_LOG_LEVEL = "WARNING"


def setup_logging(level: str | None = None) -> None:
    """Configure standard logging for CLI/library use."""
    effective_level = (level or DEFAULT_LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, effective_level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )


class Logger(Protocol):
    """Structured request logger consumed by the logging middleware."""

    def debug(self, ctx: CallContext, message: str, **fields: Any) -> None: ...

    def info(self, ctx: CallContext, message: str, **fields: Any) -> None: ...

    def warning(self, ctx: CallContext, message: str, **fields: Any) -> None: ...

    def error(self, ctx: CallContext, message: str, **fields: Any) -> None: ...

    def with_fields(self, **fields: Any) -> Logger: ...


class NoopLogger:
    """Logger that drops every record."""

    def debug(self, ctx: CallContext, message: str, **fields: Any) -> None:
        pass

    def info(self, ctx: CallContext, message: str, **fields: Any) -> None:
        pass

    def warning(self, ctx: CallContext, message: str, **fields: Any) -> None:
        pass

    def error(self, ctx: CallContext, message: str, **fields: Any) -> None:
        pass

    def with_fields(self, **fields: Any) -> NoopLogger:
        return self


def _render_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.3f}"
    text = str(value)
    return f'"{text}"' if " " in text else text


def format_fields(fields: dict[str, Any]) -> str:
    return " ".join(f"{key}={_render_value(value)}" for key, value in fields.items() if value is not None)


class StdlibLogger:
    """
    Structured Logger backed by a stdlib `logging.Logger`.

    Records render as `message key=value ...`; the raw fields travel on the
    record as `record.fields` for handlers that want them.
    """

    def __init__(self, logger: logging.Logger | str | None = None, fields: dict[str, Any] | None = None):
        if logger is None:
            logger = "restcore.requests"
        self._logger = logging.getLogger(logger) if isinstance(logger, str) else logger
        self._fields = dict(fields or {})

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def with_fields(self, **fields: Any) -> StdlibLogger:
        return StdlibLogger(self._logger, {**self._fields, **fields})

    def _log(self, level: int, ctx: CallContext | None, message: str, fields: dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        merged = {**self._fields, **fields}
        if ctx is not None and ctx.correlation_id and "correlation_id" not in merged:
            merged["correlation_id"] = ctx.correlation_id
        rendered = format_fields(merged)
        text = f"{message} {rendered}" if rendered else message
        self._logger.log(level, text, extra={"fields": merged})

    def debug(self, ctx: CallContext, message: str, **fields: Any) -> None:
        self._log(logging.DEBUG, ctx, message, fields)

    def info(self, ctx: CallContext, message: str, **fields: Any) -> None:
        self._log(logging.INFO, ctx, message, fields)

    def warning(self, ctx: CallContext, message: str, **fields: Any) -> None:
        self._log(logging.WARNING, ctx, message, fields)

    def error(self, ctx: CallContext, message: str, **fields: Any) -> None:
        self._log(logging.ERROR, ctx, message, fields)


__all__ = ["Logger", "NoopLogger", "StdlibLogger", "format_fields", "setup_logging"]
