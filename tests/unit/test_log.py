# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import logging

from restcore.log import NoopLogger, StdlibLogger, format_fields
from restcore.utils.context import CallContext


def test_format_fields():
    rendered = format_fields({"method": "GET", "duration": 0.12345, "error": "connection reset", "skip": None})
    assert rendered == 'method=GET duration=0.123 error="connection reset"'


def test_noop_logger_accepts_everything():
    logger = NoopLogger()
    assert logger.with_fields(a=1) is logger
    logger.error(CallContext(), "request_failed", error="x")


def test_stdlib_logger_adds_correlation_id(caplog):
    logger = StdlibLogger("restcore.log-test")
    with caplog.at_level(logging.DEBUG, logger="restcore.log-test"):
        logger.warning(CallContext(correlation_id="req-9"), "request_client_error", status=404)

    (record,) = [r for r in caplog.records if r.name == "restcore.log-test"]
    assert record.levelno == logging.WARNING
    assert record.getMessage() == "request_client_error status=404 correlation_id=req-9"
    assert record.fields == {"status": 404, "correlation_id": "req-9"}


def test_stdlib_logger_skips_disabled_levels(caplog):
    logger = StdlibLogger(logging.getLogger("restcore.log-quiet"))
    with caplog.at_level(logging.WARNING, logger="restcore.log-quiet"):
        logger.debug(CallContext(), "noise")
    assert not [r for r in caplog.records if r.name == "restcore.log-quiet"]
