"""Tests for business day arithmetic."""

from datetime import date

from payroll_recon.calculators.business_calendar import (
    business_days_in_period,
    holiday_days_in_period,
    iter_dates,
)


class TestBusinessDays:
    """Test business day counting."""

    def test_four_full_weeks(self):
        """Mon 2026-02-02 to Fri 2026-02-27 is 20 business days."""
        assert business_days_in_period(date(2026, 2, 2), date(2026, 2, 27)) == 20

    def test_weekend_only_period(self):
        """A period entirely on one weekend yields 0."""
        assert business_days_in_period(date(2026, 2, 7), date(2026, 2, 8)) == 0

    def test_single_weekday(self):
        """Start == end on a weekday counts that day."""
        assert business_days_in_period(date(2026, 2, 4), date(2026, 2, 4)) == 1

    def test_holidays_excluded(self):
        """Weekday holidays reduce business days."""
        holidays = {date(2026, 2, 16)}
        assert business_days_in_period(date(2026, 2, 2), date(2026, 2, 27), holidays) == 19

    def test_weekend_holiday_ignored(self):
        """A holiday on a Saturday does not change the count."""
        holidays = {date(2026, 2, 14)}
        assert business_days_in_period(date(2026, 2, 2), date(2026, 2, 27), holidays) == 20

    def test_end_before_start(self):
        """An inverted range has no dates."""
        assert business_days_in_period(date(2026, 2, 27), date(2026, 2, 2)) == 0
        assert list(iter_dates(date(2026, 2, 27), date(2026, 2, 2))) == []


class TestHolidayDays:
    """Test weekday holiday counting."""

    def test_counts_weekday_holidays_in_range(self):
        holidays = {date(2026, 2, 16), date(2026, 2, 14), date(2026, 3, 2)}
        assert holiday_days_in_period(date(2026, 2, 2), date(2026, 2, 27), holidays) == 1

    def test_no_holidays(self):
        assert holiday_days_in_period(date(2026, 2, 2), date(2026, 2, 27)) == 0
