"""
Tests for time helpers.
"""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from agentlinks.utils.timeutils import (
    days_between,
    ensure_utc,
    from_epoch_ms,
    parse_timestamp,
    recency_score,
)


class TestTimestamps:
    """Tests for timestamp parsing and conversion."""

    def test_from_epoch_ms(self):
        assert from_epoch_ms(1_700_000_000_000) == datetime.fromtimestamp(1_700_000_000, UTC)

    def test_from_epoch_ms_numeric_string(self):
        assert from_epoch_ms("1700000000000") == datetime.fromtimestamp(1_700_000_000, UTC)

    @pytest.mark.parametrize("value", [None, "abc", True, {}])
    def test_from_epoch_ms_invalid(self, value):
        assert from_epoch_ms(value) is None

    def test_parse_iso_with_offset(self):
        parsed = parse_timestamp("2025-03-14T14:00:00+02:00")
        assert parsed == datetime(2025, 3, 14, 12, 0, tzinfo=UTC)

    def test_parse_iso_zulu(self):
        assert parse_timestamp("2025-03-14T12:00:00Z") == datetime(2025, 3, 14, 12, tzinfo=UTC)

    def test_parse_epoch_ms_number(self):
        assert parse_timestamp(0) == datetime(1970, 1, 1, tzinfo=UTC)

    @pytest.mark.parametrize("value", [None, "", "not a date"])
    def test_parse_invalid(self, value):
        assert parse_timestamp(value) is None

    def test_ensure_utc_naive(self):
        assert ensure_utc(datetime(2025, 1, 1)).tzinfo == UTC

    def test_ensure_utc_converts(self):
        value = datetime(2025, 1, 1, 5, tzinfo=timezone(timedelta(hours=5)))
        assert ensure_utc(value) == datetime(2025, 1, 1, 0, tzinfo=UTC)


class TestRecency:
    """Tests for recency decay."""

    def test_days_between(self):
        start = datetime(2025, 1, 1, tzinfo=UTC)
        assert days_between(start, start + timedelta(hours=36)) == pytest.approx(1.5)

    def test_same_instant_is_one(self):
        assert recency_score(0, 14) == 1.0

    def test_window_edge_is_zero(self):
        assert recency_score(14, 14) == 0.0

    def test_linear_decay(self):
        assert recency_score(2, 14) == pytest.approx(1 - 2 / 14)

    def test_clamped(self):
        assert recency_score(30, 14) == 0.0
        assert recency_score(-1, 14) == 1.0

    def test_zero_window(self):
        assert recency_score(0, 0) == 0.0
