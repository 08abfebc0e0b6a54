"""Tests for severities and entry records."""

import logging
from dataclasses import dataclass
from datetime import timedelta

import pytest

from grouplogger.entry import Entry, HTTPRequest, format_latency
from grouplogger.severity import (
    Severity,
    from_logging_level,
    max_severity,
    parse_severity,
)


class TestSeverity:
    """Tests for Severity ordering and parsing."""

    def test_total_order(self):
        """Verifies members compare in the documented order."""
        ordered = [
            Severity.DEFAULT,
            Severity.DEBUG,
            Severity.INFO,
            Severity.NOTICE,
            Severity.WARNING,
            Severity.ERROR,
            Severity.CRITICAL,
            Severity.ALERT,
            Severity.EMERGENCY,
        ]
        assert sorted(reversed(ordered)) == ordered

    def test_alert_above_error(self):
        assert Severity.ALERT > Severity.ERROR > Severity.INFO

    def test_str_is_capitalized_name(self):
        assert str(Severity.ALERT) == "Alert"
        assert str(Severity.DEFAULT) == "Default"

    @pytest.mark.parametrize("name", ["Alert", "alert", "ALERT", " alert "])
    def test_parse_ignores_case(self, name):
        assert parse_severity(name) is Severity.ALERT

    def test_parse_unknown_is_default(self):
        assert parse_severity("verbose") is Severity.DEFAULT

    def test_max_of_empty_is_default(self):
        assert max_severity([]) is Severity.DEFAULT

    def test_max_ignores_insertion_order(self):
        assert max_severity([Severity.INFO, Severity.ALERT, Severity.ERROR]) is (
            Severity.ALERT
        )

    @pytest.mark.parametrize(
        ("level", "expected"),
        [
            (logging.NOTSET, Severity.DEFAULT),
            (5, Severity.DEFAULT),
            (logging.DEBUG, Severity.DEBUG),
            (logging.INFO, Severity.INFO),
            (25, Severity.INFO),
            (logging.WARNING, Severity.WARNING),
            (logging.ERROR, Severity.ERROR),
            (logging.CRITICAL, Severity.CRITICAL),
            (60, Severity.CRITICAL),
        ],
    )
    def test_from_logging_level(self, level, expected):
        assert from_logging_level(level) is expected


class TestHTTPRequest:
    """Tests for HTTPRequest serialization."""

    def test_zero_value_is_empty(self):
        assert HTTPRequest().to_dict() == {}

    def test_explicit_fields(self):
        """Verifies field names and formatting of the httpRequest object.

        Arrangement:
        1. HTTPRequest with every scalar field set.

        Action:
        Serializes it.

        Assertion Strategy:
        Validates the backend shape by confirming:
        - camelCase keys.
        - Sizes as strings, latency as "<seconds>s".

        Testing Principle:
        Validates wire compatibility with the structured log format.
        """
        stats = HTTPRequest(
            request_method="POST",
            request_url="https://example.com/items",
            status=201,
            request_size=10,
            response_size=2048,
            latency=timedelta(milliseconds=1500),
            remote_ip="198.51.100.1",
            user_agent="curl/8.0",
            referer="https://example.com/",
            local_ip="10.0.0.2",
            cache_hit=True,
        )

        assert stats.to_dict() == {
            "requestMethod": "POST",
            "requestUrl": "https://example.com/items",
            "requestSize": "10",
            "status": 201,
            "responseSize": "2048",
            "userAgent": "curl/8.0",
            "remoteIp": "198.51.100.1",
            "serverIp": "10.0.0.2",
            "referer": "https://example.com/",
            "latency": "1.5s",
            "cacheHit": True,
        }

    def test_fields_from_request(self, make_request):
        """Verifies method, URL, client and headers fall back to the request."""
        request = make_request(
            {"user-agent": "pytest", "referer": "https://ref/"},
            url="https://www.vimeo.com/x",
            method="PUT",
        )
        data = HTTPRequest(request=request, status=200).to_dict()

        assert data["requestMethod"] == "PUT"
        assert data["requestUrl"] == "https://www.vimeo.com/x"
        assert data["remoteIp"] == "203.0.113.7"
        assert data["userAgent"] == "pytest"
        assert data["referer"] == "https://ref/"

    def test_header_fallback_ignores_case(self, make_request):
        """Verifies canonical-case header names in a plain dict are found."""
        request = make_request({"User-Agent": "Mozilla/5.0", "REFERER": "https://ref/"})
        data = HTTPRequest(request=request).to_dict()

        assert data["userAgent"] == "Mozilla/5.0"
        assert data["referer"] == "https://ref/"

    def test_explicit_fields_win_over_request(self, make_request):
        data = HTTPRequest(request=make_request(), request_method="HEAD").to_dict()
        assert data["requestMethod"] == "HEAD"

    @pytest.mark.parametrize(
        ("latency", "expected"),
        [
            (timedelta(seconds=1), "1s"),
            (timedelta(milliseconds=250), "0.25s"),
            (timedelta(microseconds=1), "0.000001s"),
        ],
    )
    def test_format_latency(self, latency, expected):
        assert format_latency(latency) == expected


@dataclass
class _Payload:
    user: str
    count: int


class TestEntry:
    """Tests for Entry defaults and payload handling."""

    def test_defaults(self):
        entry = Entry()
        assert entry.severity is Severity.DEFAULT
        assert entry.trace == ""
        assert entry.labels == {}
        assert entry.http_request is None

    def test_string_payload_is_message(self):
        assert Entry(payload="hello").payload_fields() == {"message": "hello"}

    def test_mapping_payload_is_copied(self):
        payload = {"message": "m", "n": 1}
        fields = Entry(payload=payload).payload_fields()
        assert fields == payload
        assert fields is not payload

    def test_dataclass_payload(self):
        fields = Entry(payload=_Payload("ann", 2)).payload_fields()
        assert fields == {"user": "ann", "count": 2}

    def test_none_payload(self):
        assert Entry().payload_fields() == {}

    def test_scalar_payload(self):
        assert Entry(payload=[1, 2]).payload_fields() == {"message": [1, 2]}
