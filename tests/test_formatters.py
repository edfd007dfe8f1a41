"""Tests for display formatting helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from trace_viewer.formatters import (
    DEFAULT_SPAN_STYLE,
    PLACEHOLDER,
    SPAN_STYLES,
    format_absolute_time,
    format_duration,
    format_iso_timestamp,
    format_relative_time,
    format_trace_timestamp,
    get_span_style,
    get_span_type_icon,
    truncate_string,
)

NOW = datetime(2025, 2, 9, 14, 30, tzinfo=timezone.utc)


class TestSpanStyles:
    """Tests for span type styling."""

    def test_known_type(self):
        assert get_span_style("agent_run") == SPAN_STYLES["agent_run"]
        assert get_span_type_icon("tool_call") == "wrench"

    def test_unknown_type_uses_default(self):
        assert get_span_style("something_new") == DEFAULT_SPAN_STYLE
        assert get_span_style(None) == DEFAULT_SPAN_STYLE


class TestFormatDuration:
    """Tests for format_duration."""

    def test_formats_milliseconds(self):
        assert format_duration("2025-01-01T00:00:00Z", "2025-01-01T00:00:00.450Z") == "450ms"

    def test_formats_seconds(self):
        assert format_duration("2025-01-01T00:00:00Z", "2025-01-01T00:00:02.350Z") == "2.35s"

    def test_formats_minutes(self):
        assert format_duration("2025-01-01T00:00:00Z", "2025-01-01T00:01:05Z") == "1m 5s"

    def test_running_span(self):
        assert format_duration("2025-01-01T00:00:00Z", None) == "running"

    @pytest.mark.parametrize("started_at, ended_at", [
        (None, None),
        ("garbage", "2025-01-01T00:00:00Z"),
        ("2025-01-01T00:00:05Z", "2025-01-01T00:00:00Z"),
    ])
    def test_unusable_timestamps(self, started_at, ended_at):
        assert format_duration(started_at, ended_at) == PLACEHOLDER


class TestTruncateString:
    """Tests for truncate_string."""

    def test_short_text_unchanged(self):
        assert truncate_string("agent", 10) == "agent"

    def test_long_text_ends_with_ellipsis(self):
        result = truncate_string("a" * 50, 10)

        assert len(result) == 10
        assert result.endswith("…")


class TestFormatTimes:
    """Tests for absolute and relative time formatting."""

    def test_absolute_time(self):
        assert format_absolute_time("2025-02-09T14:30:00Z") == "Feb 9, 2:30 PM"
        assert format_absolute_time("2025-02-09T00:05:00Z") == "Feb 9, 12:05 AM"

    def test_just_now(self):
        assert format_relative_time(NOW - timedelta(seconds=30), NOW) == "just now"

    def test_minutes_ago(self):
        assert format_relative_time(NOW - timedelta(minutes=1), NOW) == "1 minute ago"
        assert format_relative_time(NOW - timedelta(minutes=5), NOW) == "5 minutes ago"

    def test_hours_ago(self):
        assert format_relative_time(NOW - timedelta(hours=3), NOW) == "3 hours ago"

    def test_older_than_a_day_is_absolute(self):
        assert format_relative_time(NOW - timedelta(days=2), NOW) == "Feb 7, 2:30 PM"

    def test_trace_timestamp_today_is_relative(self):
        assert format_trace_timestamp(NOW - timedelta(hours=2), NOW) == "2 hours ago"

    def test_trace_timestamp_other_day_is_absolute(self):
        assert format_trace_timestamp("2025-02-08T23:00:00Z", NOW) == "Feb 8, 11:00 PM"

    def test_invalid_input(self):
        assert format_relative_time(None) == PLACEHOLDER
        assert format_trace_timestamp("not a date") == "not a date"

    def test_iso_timestamp(self):
        assert format_iso_timestamp("2025-02-09T14:30:00Z") == "2025-02-09T14:30:00+00:00"
