"""Unit tests for utility functions."""

from datetime import datetime, timedelta, timezone

import pytest

from azimuth_sync.utils import (
    format_size,
    format_timestamp,
    parse_iso_timestamp,
    resolve_within_root,
    timestamp_to_datetime,
)


class TestParseIsoTimestamp:
    """Tests for parse_iso_timestamp."""

    def test_z_suffix(self):
        assert parse_iso_timestamp("2025-01-15T10:30:00Z") == datetime(
            2025, 1, 15, 10, 30, tzinfo=timezone.utc
        )

    def test_fractional_seconds(self):
        """Google Drive and Graph report milliseconds or 7-digit fractions."""
        assert parse_iso_timestamp("2025-01-15T10:30:00.123Z") is not None
        parsed = parse_iso_timestamp("2025-01-15T10:30:00.1234567Z")
        assert parsed is not None
        assert parsed.replace(microsecond=0) == datetime(
            2025, 1, 15, 10, 30, tzinfo=timezone.utc
        )

    def test_offset_converted_to_utc(self):
        parsed = parse_iso_timestamp("2025-01-15T12:30:00+02:00")
        assert parsed == datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(0)

    def test_naive_assumed_utc(self):
        parsed = parse_iso_timestamp("2025-01-15T10:30:00")
        assert parsed.tzinfo == timezone.utc

    @pytest.mark.parametrize("value", [None, "", "not a date"])
    def test_invalid(self, value):
        assert parse_iso_timestamp(value) is None


class TestFormatting:
    """Tests for timestamp and size formatting."""

    def test_format_timestamp_round_trip(self):
        dt = timestamp_to_datetime(1736937000)
        assert parse_iso_timestamp(format_timestamp(dt)) == dt

    def test_format_timestamp_none(self):
        assert format_timestamp(None) is None

    @pytest.mark.parametrize(
        "size, expected",
        [
            (0, "0 B"),
            (1023, "1023 B"),
            (1536, "1.5 KB"),
            (5 * 1024 * 1024, "5.0 MB"),
            (3 * 1024 * 1024 * 1024, "3.0 GB"),
        ],
    )
    def test_format_size(self, size, expected):
        assert format_size(size) == expected


class TestResolveWithinRoot:
    """Tests for resolve_within_root."""

    def test_nested_path(self, tmp_path):
        assert resolve_within_root(tmp_path, "a/b.md") == (
            tmp_path.resolve() / "a" / "b.md"
        )

    @pytest.mark.parametrize(
        "relative_path", ["", "/etc/passwd", "../x.md", "a/../../x.md", "."]
    )
    def test_rejected(self, tmp_path, relative_path):
        assert resolve_within_root(tmp_path, relative_path) is None

    def test_backslashes_treated_as_separators(self, tmp_path):
        assert resolve_within_root(tmp_path, "..\\x.md") is None
