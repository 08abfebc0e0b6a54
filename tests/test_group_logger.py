"""Tests for GroupLogger accumulation and closing."""

from datetime import timedelta

import pytest

from grouplogger.entry import Entry, HTTPRequest
from grouplogger.group_logger import GroupLogger
from grouplogger.severity import Severity, parse_severity


def logged_entries(stream_logger):
    """Return the entries passed to a recording stream logger."""
    return [call.args[0] for call in stream_logger.log.call_args_list]


@pytest.fixture
def group(make_request, outer_logger, inner_logger):
    return GroupLogger(
        make_request(), "fake_GroupID", outer_logger, inner_logger
    )


class TestCloseWith:
    """Tests for GroupLogger.close_with()."""

    def test_close_with(self, make_request, outer_logger, inner_logger):
        """Verifies the outer entry takes the highest inner severity.

        Arrangement:
        1. Group bound to a request for https://www.vimeo.com.
        2. Inner entries with severities Info, Alert, Error in that order.
        3. Statistics with a latency of one second.

        Action:
        Closes the group with the statistics.

        Assertion Strategy:
        Validates the outer entry by confirming:
        - Severity is Alert (highest, not last).
        - Latency is preserved unchanged.
        - The statistics point at the original request.

        Testing Principle:
        Validates severity aggregation, ensuring the console ranks the
        whole request by its worst inner entry.
        """
        request = make_request(url="https://www.vimeo.com")
        group = GroupLogger(
            request,
            "fake_GroupID",
            outer_logger,
            inner_logger,
            inner_entries=[
                Entry(severity=parse_severity("Info")),
                Entry(severity=parse_severity("Alert")),
                Entry(severity=parse_severity("Error")),
            ],
        )
        stats = HTTPRequest(latency=timedelta(seconds=1))

        group.close_with(stats)

        (outer_entry,) = logged_entries(outer_logger)
        assert str(outer_entry.severity) == "Alert"
        assert outer_entry.http_request.latency == timedelta(seconds=1)
        assert outer_entry.http_request.request.url == "https://www.vimeo.com"
        assert outer_entry.trace == "fake_GroupID"

    def test_no_inner_entries_gives_default(self, group, outer_logger):
        """Verifies an empty group closes with severity DEFAULT."""
        group.close_with(HTTPRequest())

        (outer_entry,) = logged_entries(outer_logger)
        assert outer_entry.severity is Severity.DEFAULT
        assert outer_entry.http_request is not None

    def test_sets_request_even_when_none(self, outer_logger, inner_logger):
        """Verifies stats.request is overwritten with a None request."""
        group = GroupLogger(None, "gid", outer_logger, inner_logger)
        stats = HTTPRequest(request="stale")

        group.close_with(stats)

        assert stats.request is None

    def test_sets_request_to_exact_object(self, group):
        stats = HTTPRequest()
        group.close_with(stats)
        assert stats.request is group.request

    def test_inner_entries_not_cleared(self, group):
        group.warning("w")
        group.close()
        assert len(group.inner_entries) == 1

    def test_does_not_write_inner_stream(self, group, inner_logger):
        group.close()
        inner_logger.log.assert_not_called()

    def test_double_close_writes_two_outer_entries(self, group, outer_logger):
        """Verifies each close computes its severity independently.

        Arrangement:
        1. Group with one INFO entry, closed once.
        2. An ERROR entry logged after the first close.

        Action:
        Closes the group a second time.

        Assertion Strategy:
        Validates repeat closing by confirming:
        - Two outer entries were written.
        - The first keeps INFO, the second reports ERROR.

        Testing Principle:
        Validates that closing is unguarded and that entries logged
        after a close do not rewrite an outer entry already written.
        """
        group.info("first")
        group.close()
        group.error("late")
        group.close()

        first, second = logged_entries(outer_logger)
        assert first.severity is Severity.INFO
        assert second.severity is Severity.ERROR

    def test_close_uses_zero_statistics(self, group, outer_logger):
        group.close()

        (outer_entry,) = logged_entries(outer_logger)
        stats = outer_entry.http_request
        assert stats.status == 0
        assert stats.latency is None
        assert stats.response_size == 0
        assert stats.request is group.request

    def test_context_manager_closes(self, group, outer_logger):
        with group as active:
            active.notice("inside")
        assert outer_logger.log.call_count == 1
        assert logged_entries(outer_logger)[0].severity is Severity.NOTICE


class TestInnerEntries:
    """Tests for logging inner entries."""

    @pytest.mark.parametrize(
        ("method", "severity"),
        [
            ("default", Severity.DEFAULT),
            ("debug", Severity.DEBUG),
            ("info", Severity.INFO),
            ("notice", Severity.NOTICE),
            ("warning", Severity.WARNING),
            ("error", Severity.ERROR),
            ("critical", Severity.CRITICAL),
            ("alert", Severity.ALERT),
            ("emergency", Severity.EMERGENCY),
        ],
    )
    def test_convenience_methods(self, group, inner_logger, method, severity):
        """Verifies each level method writes one entry at its severity."""
        getattr(group, method)({"message": "body"})

        (entry,) = logged_entries(inner_logger)
        assert entry.severity is severity
        assert entry.payload == {"message": "body"}
        assert entry.trace == "fake_GroupID"
        assert group.inner_entries == [entry]

    def test_trace_overrides_caller_value(self, group, inner_logger):
        """Verifies a caller-supplied trace is replaced by the group id."""
        group.log_inner_entry(Entry(payload="x", trace="caller-trace"))

        (entry,) = logged_entries(inner_logger)
        assert entry.trace == "fake_GroupID"

    def test_log_alias(self, group, inner_logger):
        group.log(Entry(severity=Severity.ERROR, payload="x"))
        assert logged_entries(inner_logger)[0].severity is Severity.ERROR

    def test_entries_kept_in_call_order(self, group):
        group.info("a")
        group.debug("b")
        group.alert("c")
        assert [e.payload for e in group.inner_entries] == ["a", "b", "c"]

    def test_labels_attached(self, group, inner_logger):
        group.info("x", labels={"step": "load"})
        assert logged_entries(inner_logger)[0].labels == {"step": "load"}

    def test_outer_entry_stamped(self, group, outer_logger):
        group.log_outer_entry(Entry(trace="other", http_request=HTTPRequest()))
        assert logged_entries(outer_logger)[0].trace == "fake_GroupID"

    def test_max_severity_tracks_entries(self, group):
        assert group.max_severity() is Severity.DEFAULT
        group.warning("w")
        group.debug("d")
        assert group.max_severity() is Severity.WARNING

    def test_outer_matches_max_of_any_sequence(self, group, outer_logger):
        severities = [Severity.NOTICE, Severity.DEBUG, Severity.CRITICAL, Severity.INFO]
        for severity in severities:
            group.log(Entry(severity=severity))
        group.close()
        assert logged_entries(outer_logger)[0].severity is max(severities)
