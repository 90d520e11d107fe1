"""Tests for request correlation ids in log records."""

import logging

from courtbook.logging_context import (
    RequestIdFilter,
    get_request_id,
    get_request_logger,
    set_request_id,
)


class TestRequestId:
    def test_explicit_id(self):
        assert set_request_id("REQ-abc123") == "REQ-abc123"
        assert get_request_id() == "REQ-abc123"

    def test_generated_id(self):
        request_id = set_request_id()
        assert request_id.startswith("REQ-")
        assert len(request_id) == len("REQ-") + 6
        assert get_request_id() == request_id

    def test_filter_injects_id(self):
        set_request_id("REQ-f00f00")
        record = logging.LogRecord("courtbook", logging.INFO, __file__, 1, "hello", None, None)
        assert RequestIdFilter().filter(record) is True
        assert record.request_id == "REQ-f00f00"

    def test_logger_gets_filter_once(self):
        logger = get_request_logger("courtbook.tests.logging")
        get_request_logger("courtbook.tests.logging")
        assert sum(isinstance(f, RequestIdFilter) for f in logger.filters) == 1
