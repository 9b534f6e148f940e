"""Tests for month arithmetic and bucket windows."""
from datetime import date, datetime, timedelta, timezone

import pytest

from app.schemas.records import parse_date
from app.services.reconciliation.periods import (
    add_months,
    build_month_buckets,
    current_month_start,
    month_key,
    months_between,
    window_start,
)


class TestMonthArithmetic:
    """Month addition and distance."""

    def test_add_months_crosses_year_boundary(self):
        assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 1)
        assert add_months(date(2024, 1, 31), -1) == date(2023, 12, 1)

    def test_add_zero_months_returns_month_start(self):
        assert add_months(date(2024, 3, 20), 0) == date(2024, 3, 1)

    def test_months_between(self):
        assert months_between(date(2024, 3, 1), date(2024, 6, 30)) == 3
        assert months_between(date(2024, 11, 1), date(2025, 2, 1)) == 3
        assert months_between(date(2024, 3, 1), date(2024, 1, 1)) == -2


class TestMonthKey:
    """Month keys from date-like values."""

    def test_date_and_string(self):
        assert month_key(date(2024, 3, 5)) == "2024-03"
        assert month_key("2024-03-05") == "2024-03"

    def test_timestamp_is_keyed_in_utc(self):
        # 23:30 on 31 March at UTC-5 is already April in UTC
        local = datetime(2024, 3, 31, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        assert month_key(local) == "2024-04"
        assert month_key("2024-03-31T23:30:00-05:00") == "2024-04"
        assert month_key("2024-03-31T23:30:00Z") == "2024-03"

    @pytest.mark.parametrize("value", [None, "", "not a date", 42])
    def test_unparseable_values_have_no_key(self, value):
        assert month_key(value) is None

    def test_parse_date_keeps_plain_dates(self):
        assert parse_date(date(2024, 2, 29)) == date(2024, 2, 29)


class TestMonthBuckets:
    """Reporting window construction."""

    def test_twelve_buckets_end_at_current_month(self):
        now = datetime(2024, 3, 15, 10, 0, tzinfo=timezone.utc)
        buckets = build_month_buckets(now, 12)

        assert len(buckets) == 12
        assert buckets[0].key == "2023-04"
        assert buckets[0].label == "Apr"
        assert buckets[-1].key == "2024-03"
        assert buckets[-1].label == "Mar"

    def test_bucket_keys_are_unique_and_ordered(self):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        keys = [bucket.key for bucket in build_month_buckets(now, 24)]

        assert keys == sorted(keys)
        assert len(set(keys)) == 24

    def test_window_start_matches_first_bucket(self):
        now = datetime(2024, 3, 15, tzinfo=timezone.utc)
        assert window_start(now, 12) == date(2023, 4, 1)
        assert current_month_start(now) == date(2024, 3, 1)

    def test_current_month_uses_utc_calendar(self):
        # Still 29 February locally, already March in UTC
        now = datetime(2024, 2, 29, 22, 0, tzinfo=timezone(timedelta(hours=-3)))
        assert current_month_start(now) == date(2024, 3, 1)
