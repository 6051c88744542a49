"""
Tests for DateRangeBuilder.
"""

from datetime import date

import pendulum
import pytest

from slotresolver.domain.date_range import DEFAULT_TOTAL_DAYS, DateRangeBuilder
from slotresolver.domain.exceptions import InvalidRequest
from slotresolver.domain.time_arithmetic import TimeArithmetic


class TestDateRangeBuilder:
    """Tests for DateRangeBuilder."""

    def setup_method(self):
        self.builder = DateRangeBuilder(TimeArithmetic("America/Denver"))

    def test_consecutive_days_from_anchor(self):
        date_range = self.builder.build_range("2025-09-15", 3)

        assert date_range.days == ["2025-09-15", "2025-09-16", "2025-09-17"]

    def test_window_spans_local_days(self):
        """The window starts at local midnight of the first day and ends on the last day."""
        date_range = self.builder.build_range("2025-09-15", 2)

        assert date_range.window.start == pendulum.parse("2025-09-15T06:00:00Z")
        assert date_range.window.end.to_date_string() == "2025-09-16"
        assert date_range.window.end.timezone_name == "America/Denver"

    def test_range_across_dst_change_has_no_gaps(self):
        date_range = self.builder.build_range("2025-11-01", 3)

        assert date_range.days == ["2025-11-01", "2025-11-02", "2025-11-03"]

    def test_default_length_and_today(self):
        date_range = self.builder.build_range(today=pendulum.date(2025, 9, 15))

        assert len(date_range.days) == DEFAULT_TOTAL_DAYS
        assert date_range.first_day == "2025-09-15"
        assert date_range.last_day == "2025-10-14"

    def test_blank_anchor_means_today(self):
        date_range = self.builder.build_range("  ", 1, today=pendulum.date(2025, 9, 15))

        assert date_range.days == ["2025-09-15"]

    def test_date_anchor(self):
        date_range = self.builder.build_range(date(2025, 9, 15), 1)

        assert date_range.days == ["2025-09-15"]

    @pytest.mark.parametrize("anchor", ["15/09/2025", "2025-02-30", "tomorrow", 20250915])
    def test_invalid_anchor(self, anchor):
        with pytest.raises(InvalidRequest):
            self.builder.build_range(anchor, 7)

    @pytest.mark.parametrize("total_days", [0, -3, 2.5, True, "7", 367, 10_000_000])
    def test_invalid_total_days(self, total_days):
        with pytest.raises(InvalidRequest):
            self.builder.build_range("2025-09-15", total_days)
