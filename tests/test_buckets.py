"""Unit tests for nvdgrab.buckets — calendar-month windows."""

import datetime as dt

import pytest

from nvdgrab.buckets import MonthBucket, month_buckets
from nvdgrab.errors import ArgumentError


class TestMonthBucket:
    def test_leap_february(self):
        assert MonthBucket(2020, 2).days == 29

    def test_common_february(self):
        assert MonthBucket(2019, 2).days == 28

    def test_century_not_leap(self):
        assert MonthBucket(1900, 2).days == 28

    def test_start_and_end(self):
        b = MonthBucket(2020, 2)
        assert b.start == dt.datetime(2020, 2, 1, 0, 0, 0)
        assert b.end == dt.datetime(2020, 2, 29, 23, 59, 59)

    def test_iso_format_has_no_offset(self):
        b = MonthBucket(2023, 4)
        assert b.start.isoformat() == "2023-04-01T00:00:00"
        assert b.end.isoformat() == "2023-04-30T23:59:59"

    def test_str(self):
        assert str(MonthBucket(2020, 3)) == "2020-03"

    def test_invalid_month(self):
        with pytest.raises(ValueError):
            MonthBucket(2020, 13)


class TestMonthBuckets:
    def test_single_year(self):
        buckets = month_buckets(2020, 2020)
        assert len(buckets) == 12
        assert buckets[0] == MonthBucket(2020, 1)
        assert buckets[-1] == MonthBucket(2020, 12)

    def test_multi_year_chronological(self):
        buckets = month_buckets(2019, 2021)
        assert len(buckets) == 36
        assert buckets == sorted(buckets)
        assert buckets[12] == MonthBucket(2020, 1)

    def test_inverted_range(self):
        with pytest.raises(ArgumentError, match="less than or equal"):
            month_buckets(2021, 2020)

    @pytest.mark.parametrize("years", [(0, 2020), (2020, 10000), (0, 0)])
    def test_year_out_of_range(self, years):
        with pytest.raises(ArgumentError, match="out of range"):
            month_buckets(*years)

    def test_last_representable_year(self):
        assert month_buckets(9999, 9999)[-1].end == dt.datetime(9999, 12, 31, 23, 59, 59)
