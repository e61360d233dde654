"""Unit tests for DateDifferenceCalculator."""
import logging
from datetime import date, datetime, timedelta
from itertools import product

import pytest
from dateutil.relativedelta import relativedelta

from calculator.date_calculator import DateDifferenceCalculator
from calculator.dates import InvalidDateInput
from calculator.models import DateDifference, Event, EventDirection, NextOccurrence


SAMPLE_DATES = [
    date(1999, 12, 31),
    date(2000, 2, 29),
    date(2019, 1, 31),
    date(2020, 2, 29),
    date(2023, 1, 20),
    date(2023, 1, 30),
    date(2023, 2, 28),
    date(2023, 3, 1),
    date(2023, 12, 31),
    date(2024, 1, 1),
    date(2024, 1, 31),
    date(2024, 2, 29),
    date(2024, 3, 1),
    date(2024, 3, 15),
    date(2024, 4, 30),
    date(2024, 5, 31),
    date(2024, 7, 4),
    date(2025, 1, 10),
    date(2025, 2, 28),
    date(2025, 3, 31),
]


def add_calendar(start, years, months, days):
    """Add years, then months, then days; days past a month's end roll over."""
    month_index = start.month - 1 + months
    year = start.year + years + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, 1) + timedelta(days=start.day - 1 + days)


@pytest.fixture
def calculator():
    """Create a DateDifferenceCalculator."""
    return DateDifferenceCalculator()


class TestComputeBreakdown:
    """Test cases for the years/months/days breakdown."""

    def test_same_date_is_zero(self, calculator):
        """Test that a date compared with itself gives an all-zero breakdown."""
        for day in SAMPLE_DATES:
            assert calculator.compute_breakdown(day, day) == DateDifference(0, 0, 0)

    def test_borrows_days_from_previous_month(self, calculator):
        """Test the borrow from February of a leap year."""
        breakdown = calculator.compute_breakdown(date(2023, 1, 20), date(2024, 3, 15))

        assert breakdown == DateDifference(years=1, months=1, days=24)

    def test_borrows_months_from_year(self, calculator):
        """Test that a negative month difference borrows a year."""
        breakdown = calculator.compute_breakdown(date(2024, 3, 15), date(2025, 1, 20))

        assert breakdown == DateDifference(years=0, months=10, days=5)

    def test_year_boundary(self, calculator):
        """Test a one-day difference across New Year."""
        breakdown = calculator.compute_breakdown(date(2023, 12, 31), date(2024, 1, 1))

        assert breakdown == DateDifference(years=0, months=0, days=1)

    def test_month_end_past_short_february(self, calculator):
        """Test that Jan 31 to Mar 1 never yields negative days."""
        leap = calculator.compute_breakdown(date(2024, 1, 31), date(2024, 3, 1))
        common = calculator.compute_breakdown(date(2023, 1, 30), date(2023, 3, 1))

        assert leap == DateDifference(years=0, months=0, days=30)
        assert common == DateDifference(years=0, months=0, days=30)

    def test_month_end_into_leap_day(self, calculator):
        """Test Jan 31 to Feb 29."""
        breakdown = calculator.compute_breakdown(date(2024, 1, 31), date(2024, 2, 29))

        assert breakdown == DateDifference(years=0, months=0, days=29)

    def test_whole_years(self, calculator):
        """Test that exact anniversaries give whole years."""
        breakdown = calculator.compute_breakdown(date(2000, 7, 4), date(2024, 7, 4))

        assert breakdown == DateDifference(years=24, months=0, days=0)

    def test_accepts_datetimes_and_strings(self, calculator):
        """Test that inputs are resolved to calendar dates first."""
        breakdown = calculator.compute_breakdown(
            "2023-01-20", datetime(2024, 3, 15, 18, 45)
        )

        assert breakdown == DateDifference(years=1, months=1, days=24)

    def test_rejects_reversed_dates(self, calculator):
        """Test that earlier after later raises ValueError."""
        with pytest.raises(ValueError):
            calculator.compute_breakdown(date(2024, 3, 16), date(2024, 3, 15))

    def test_rejects_invalid_dates(self, calculator):
        """Test that impossible calendar dates are refused."""
        with pytest.raises(InvalidDateInput):
            calculator.compute_breakdown("2024-02-30", date(2024, 3, 15))

    def test_components_are_normalized(self, calculator):
        """Test that every component is non-negative and months stay below 12."""
        for earlier, later in product(SAMPLE_DATES, SAMPLE_DATES):
            if earlier > later:
                continue
            breakdown = calculator.compute_breakdown(earlier, later)

            assert breakdown.years >= 0
            assert 0 <= breakdown.months <= 11
            assert 0 <= breakdown.days <= 30

    def test_breakdown_reconstructs_later_date(self, calculator):
        """Test that adding years, months and days to earlier lands on later."""
        for earlier, later in product(SAMPLE_DATES, SAMPLE_DATES):
            if earlier > later:
                continue
            breakdown = calculator.compute_breakdown(earlier, later)

            rebuilt = add_calendar(
                earlier, breakdown.years, breakdown.months, breakdown.days
            )
            assert rebuilt == later, (earlier, later, breakdown)

    def test_matches_relativedelta_for_early_month_days(self, calculator):
        """Test agreement with dateutil when no month-end clamping is involved."""
        for earlier, later in product(SAMPLE_DATES, SAMPLE_DATES):
            if earlier > later or earlier.day > 28:
                continue
            breakdown = calculator.compute_breakdown(earlier, later)
            expected = relativedelta(later, earlier)

            assert (breakdown.years, breakdown.months, breakdown.days) == (
                expected.years, expected.months, expected.days
            )


class TestDetermineDirection:
    """Test cases for direction inference."""

    def test_future_date_counts_down(self, calculator):
        """Test that a future date counts down."""
        direction = calculator.determine_direction(date(2024, 3, 15), date(2024, 3, 16))
        assert direction == EventDirection.DOWN

    def test_past_date_counts_up(self, calculator):
        """Test that a past date counts up."""
        direction = calculator.determine_direction(date(2024, 3, 15), date(2020, 1, 1))
        assert direction == EventDirection.UP

    def test_today_counts_up(self, calculator):
        """Test that today, at any time of day, counts up."""
        direction = calculator.determine_direction(
            datetime(2024, 3, 15, 23, 59), date(2024, 3, 15)
        )
        assert direction == EventDirection.UP


class TestNextOccurrence:
    """Test cases for the next anniversary."""

    def test_later_this_year(self, calculator):
        """Test an anniversary still ahead in the current year."""
        upcoming = calculator.next_occurrence(date(2024, 3, 15), date(2000, 12, 25))

        assert upcoming == NextOccurrence(months=9, days=10)

    def test_already_passed_this_year(self, calculator):
        """Test that a passed anniversary moves to next year."""
        assert calculator.next_occurrence_date(
            date(2024, 3, 15), date(2023, 1, 20)
        ) == date(2025, 1, 20)
        assert calculator.next_occurrence(
            date(2024, 3, 15), date(2023, 1, 20)
        ) == NextOccurrence(months=10, days=5)

    def test_anniversary_today(self, calculator):
        """Test that an anniversary falling today is reported as today."""
        upcoming = calculator.next_occurrence(date(2024, 3, 15), date(1990, 3, 15))

        assert upcoming.is_today

    def test_leap_day_skips_to_next_leap_year(self, calculator):
        """Test that a Feb 29 anchor waits for the next leap year."""
        assert calculator.next_occurrence_date(
            date(2024, 3, 1), date(2020, 2, 29)
        ) == date(2028, 2, 29)
        assert calculator.next_occurrence_date(
            date(2025, 1, 10), date(2020, 2, 29)
        ) == date(2028, 2, 29)
        assert calculator.next_occurrence_date(
            date(2023, 2, 28), date(2020, 2, 29)
        ) == date(2024, 2, 29)

    def test_leap_day_never_lands_on_common_year(self, calculator):
        """Test that Feb 29 is only produced for leap years."""
        for year in range(1895, 2110):
            for now in (date(year, 1, 1), date(year, 3, 1)):
                upcoming = calculator.next_occurrence_date(now, date(2000, 2, 29))

                assert (upcoming.month, upcoming.day) == (2, 29)
                assert upcoming >= now
                assert upcoming.year % 4 == 0
                assert upcoming.year % 100 != 0 or upcoming.year % 400 == 0

    def test_leap_day_years_fold_into_months(self, calculator):
        """Test that years until the next Feb 29 are reported as months."""
        upcoming = calculator.next_occurrence(date(2024, 3, 1), date(2020, 2, 29))
        assert upcoming == NextOccurrence(months=47, days=28)

        upcoming = calculator.next_occurrence(date(2023, 2, 28), date(2020, 2, 29))
        assert upcoming == NextOccurrence(months=12, days=1)

    def test_leap_day_today(self, calculator):
        """Test a Feb 29 anchor on Feb 29."""
        upcoming = calculator.next_occurrence(date(2024, 2, 29), date(2020, 2, 29))

        assert upcoming.is_today

    def test_from_leap_day_to_month_end_anchor(self, calculator):
        """Test counting from Feb 29 to an ordinary Feb 28 anniversary."""
        upcoming = calculator.next_occurrence(date(2024, 2, 29), date(2023, 2, 28))

        assert upcoming == NextOccurrence(months=11, days=30)


class TestFormatDifference:
    """Test cases for the display text."""

    def test_count_up_with_next_occurrence(self, calculator):
        """Test the elapsed text and the next-anniversary fragment."""
        text = calculator.format_difference(
            date(2024, 3, 15), date(2023, 1, 20), EventDirection.UP
        )

        assert text == "1 year 1 month 24 days ago | next: 10 months 5 days"

    def test_count_down_one_day(self, calculator):
        """Test a one-day countdown with no next-occurrence fragment."""
        text = calculator.format_difference(
            date(2024, 3, 15), date(2024, 3, 16), EventDirection.DOWN
        )

        assert text == "1 day left"
        assert 'next' not in text

    def test_count_down_pluralizes(self, calculator):
        """Test pluralized components in a countdown."""
        text = calculator.format_difference(
            date(2024, 3, 15), date(2025, 6, 20), EventDirection.DOWN
        )

        assert text == "1 year 3 months 5 days left"

    def test_zero_components_are_omitted(self, calculator):
        """Test that zero components do not appear in the text."""
        text = calculator.format_difference(
            date(2024, 3, 15), date(2024, 4, 15), EventDirection.DOWN
        )

        assert text == "1 month left"

    def test_today_sentinel(self, calculator):
        """Test that an event dated today shows the today text."""
        for direction in (EventDirection.UP, EventDirection.DOWN, None):
            text = calculator.format_difference(
                datetime(2024, 3, 15, 14, 30), date(2024, 3, 15), direction
            )

            assert text == DateDifferenceCalculator.TODAY_TEXT
            assert '0 days' not in text

    def test_anniversary_today_fragment(self, calculator):
        """Test a count-up event whose anniversary is today."""
        text = calculator.format_difference(
            date(2024, 3, 15), date(2020, 3, 15), EventDirection.UP
        )

        assert text == "4 years ago | next: today"

    def test_leap_day_anchor_on_leap_day(self, calculator):
        """Test a Feb 29 anchor viewed on a later Feb 29."""
        text = calculator.format_difference(
            date(2024, 2, 29), date(2020, 2, 29), EventDirection.UP
        )

        assert text == "4 years ago | next: today"

    def test_inferred_direction(self, calculator):
        """Test that direction is inferred when not given."""
        assert calculator.format_difference(
            date(2024, 3, 15), date(2024, 3, 20)
        ) == "5 days left"
        assert calculator.format_difference(
            date(2024, 3, 15), date(2024, 3, 10)
        ) == "5 days ago | next: 11 months 23 days"

    def test_passed_countdown_counts_to_recurrence(self, calculator):
        """Test that a countdown whose date has passed counts to its next recurrence."""
        text = calculator.format_difference(
            date(2024, 3, 15), date(2023, 12, 25), EventDirection.DOWN
        )

        assert text == "9 months 10 days left"

    def test_count_up_before_date_shows_remaining(self, calculator):
        """Test that a count-up event dated in the future shows the time left."""
        text = calculator.format_difference(
            date(2024, 3, 15), date(2024, 3, 20), EventDirection.UP
        )

        assert text == "5 days left"

    def test_accepts_direction_values(self, calculator):
        """Test that stored direction values are accepted."""
        text = calculator.format_difference(date(2024, 3, 15), date(2024, 3, 16), 'Down')

        assert text == "1 day left"

    def test_invalid_date_raises(self, calculator):
        """Test that an impossible date is refused."""
        with pytest.raises(InvalidDateInput):
            calculator.format_difference(date(2024, 3, 15), "2023-02-29")


class TestFormatEventDifferences:
    """Test cases for formatting a whole event list."""

    def test_maps_index_to_text(self, calculator):
        """Test one text per event index."""
        events = [
            Event(title="Birthday", date=date(2023, 1, 20), direction=EventDirection.UP),
            Event(title="Vacation", date=date(2024, 3, 16), direction=EventDirection.DOWN),
            Event(title="Started", date=date(2024, 3, 15), direction=EventDirection.UP,
                  visible=False),
        ]

        differences = calculator.format_event_differences(datetime(2024, 3, 15, 8, 0), events)

        assert differences == {
            0: "1 year 1 month 24 days ago | next: 10 months 5 days",
            1: "1 day left",
            2: DateDifferenceCalculator.TODAY_TEXT,
        }

    def test_invalid_date_uses_placeholder(self, calculator, caplog):
        """Test that a bad date degrades to a placeholder instead of raising."""
        events = [
            Event(title="Broken", date="2024-02-30", direction=EventDirection.UP),
            Event(title="Missing", date=None, direction=EventDirection.UP),
            Event(title="Fine", date=date(2024, 3, 14), direction=EventDirection.UP),
        ]

        with caplog.at_level(logging.WARNING):
            differences = calculator.format_event_differences(date(2024, 3, 15), events)

        assert differences[0] == DateDifferenceCalculator.INVALID_DATE_TEXT
        assert differences[1] == DateDifferenceCalculator.INVALID_DATE_TEXT
        assert differences[2] == "1 day ago | next: 11 months 27 days"
        assert any('Broken' in record.message for record in caplog.records)

    def test_empty_list(self, calculator):
        """Test that no events give no differences."""
        assert calculator.format_event_differences(date(2024, 3, 15), []) == {}


class TestEmphasizeNumbers:
    """Test cases for digit emphasis markup."""

    def test_wraps_digit_runs(self):
        """Test that each run of digits is wrapped once."""
        text = DateDifferenceCalculator.emphasize_numbers("1 year 12 days ago | next: 10 months")

        assert text == "<b>1</b> year <b>12</b> days ago | next: <b>10</b> months"

    def test_custom_tag(self):
        """Test wrapping with another tag."""
        text = DateDifferenceCalculator.emphasize_numbers("3 days left", tag='strong')

        assert text == "<strong>3</strong> days left"

    def test_text_without_digits(self):
        """Test that text without digits is unchanged."""
        assert DateDifferenceCalculator.emphasize_numbers("today") == "today"
