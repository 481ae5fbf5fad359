"""
Tests for log filters.
"""

import logging
import threading

from fluent_http.core.logging.filters import (
    ExtraFieldsFilter,
    RequestIdFilter,
    clear_request_id,
    get_request_id,
    set_request_id,
)


def make_record(**extra):
    record = logging.LogRecord("fluent_http.client", logging.INFO, __file__, 1, "msg", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestRequestId:
    def teardown_method(self):
        clear_request_id()

    def test_set_get_clear(self):
        assert get_request_id() is None

        set_request_id("abc")
        assert get_request_id() == "abc"

        clear_request_id()
        assert get_request_id() is None

    def test_clear_without_value(self):
        clear_request_id()
        assert get_request_id() is None

    def test_thread_local(self):
        set_request_id("main")
        seen = []

        thread = threading.Thread(target=lambda: seen.append(get_request_id()))
        thread.start()
        thread.join()

        assert seen == [None]
        assert get_request_id() == "main"

    def test_filter_adds_request_id(self):
        set_request_id("abc")
        record = make_record()

        assert RequestIdFilter().filter(record) is True
        assert record.request_id == "abc"

    def test_filter_keeps_explicit_request_id(self):
        set_request_id("abc")
        record = make_record(request_id="explicit")

        RequestIdFilter().filter(record)

        assert record.request_id == "explicit"

    def test_filter_without_request_id(self):
        record = make_record()

        RequestIdFilter().filter(record)

        assert not hasattr(record, "request_id")


class TestExtraFields:
    def test_adds_fields(self):
        record = make_record()

        ExtraFieldsFilter({"service": "billing", "env": "prod"}).filter(record)

        assert record.service == "billing"
        assert record.env == "prod"

    def test_does_not_overwrite(self):
        record = make_record(service="orders")

        ExtraFieldsFilter({"service": "billing"}).filter(record)

        assert record.service == "orders"

    def test_fields_copied(self):
        fields = {"service": "billing"}
        log_filter = ExtraFieldsFilter(fields)
        fields["service"] = "changed"

        assert log_filter.extra_fields == {"service": "billing"}
