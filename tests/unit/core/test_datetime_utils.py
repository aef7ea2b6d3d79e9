"""Unit tests for the datetime helpers."""

from datetime import datetime

from saaskit.core.datetime_utils import from_unix_timestamp, utc_now, utc_now_naive


def test_utc_now_is_timezone_aware():
    """utc_now carries UTC tzinfo, utc_now_naive does not."""
    assert utc_now().utcoffset().total_seconds() == 0
    assert utc_now_naive().tzinfo is None


def test_from_unix_timestamp_converts_to_naive_utc():
    """Stripe timestamps are seconds since the epoch in UTC."""
    assert from_unix_timestamp(1_700_000_000) == datetime(2023, 11, 14, 22, 13, 20)


def test_from_unix_timestamp_handles_missing_values():
    """Absent and unrepresentable timestamps become None."""
    assert from_unix_timestamp(None) is None
    assert from_unix_timestamp(10**20) is None
