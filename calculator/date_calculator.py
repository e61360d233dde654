"""Calendar date-difference calculator for tracked events."""
import logging
import re
from datetime import date
from typing import Any, Dict, List, Optional

from calculator.dates import (
    InvalidDateInput,
    days_in_month,
    is_leap_year,
    previous_month,
    to_calendar_date,
)
from calculator.models import DateDifference, Event, EventDirection, NextOccurrence

logger = logging.getLogger(__name__)

_DIGIT_RUN = re.compile(r'(\d+)')


class DateDifferenceCalculator:
    """Stateless calculator turning event dates into "time since/until" text."""

    TODAY_TEXT = '< < < Today > > >'
    INVALID_DATE_TEXT = 'Invalid date'
    NEXT_TODAY_TEXT = 'today'

    SUFFIXES = {
        EventDirection.UP: 'ago',
        EventDirection.DOWN: 'left',
    }

    def compute_breakdown(self, earlier: Any, later: Any) -> DateDifference:
        """
        Calculate the exact years, months and days between two dates.

        Negative day and month components are borrowed from the next higher
        unit. Nothing is folded back the other way.

        Args:
            earlier: Start date
            later: End date, not before ``earlier``

        Returns:
            DateDifference with all components >= 0

        Raises:
            InvalidDateInput: If either value is not a calendar date
            ValueError: If ``earlier`` is after ``later``
        """
        earlier = to_calendar_date(earlier)
        later = to_calendar_date(later)
        if earlier > later:
            raise ValueError(
                f"earlier date {earlier.isoformat()} is after {later.isoformat()}"
            )

        years = later.year - earlier.year
        months = later.month - earlier.month
        days = later.day - earlier.day

        # Borrow the length of the month before ``later``'s month; a day
        # past the end of a short February (Jan 31 -> Mar 1) needs a second one
        borrow_year, borrow_month = later.year, later.month
        while days < 0:
            months -= 1
            borrow_year, borrow_month = previous_month(borrow_year, borrow_month)
            days += days_in_month(borrow_year, borrow_month)

        if months < 0:
            years -= 1
            months += 12

        return DateDifference(years=years, months=months, days=days)

    def determine_direction(self, now: Any, event_date: Any) -> EventDirection:
        """Future dates count down, today and past dates count up."""
        if to_calendar_date(event_date) > to_calendar_date(now):
            return EventDirection.DOWN
        return EventDirection.UP

    def next_occurrence_date(self, now: Any, event_date: Any) -> date:
        """
        Find the next anniversary of the event's month and day.

        Today counts as the next occurrence. A Feb 29 anchor only recurs on
        leap years.

        Args:
            now: Reference date
            event_date: Event anchor date

        Returns:
            The next date, on or after ``now``, matching the anchor's month/day
        """
        now = to_calendar_date(now)
        event_date = to_calendar_date(event_date)

        if event_date.month == 2 and event_date.day == 29:
            year = now.year
            while not is_leap_year(year) or date(year, 2, 29) < now:
                year += 1
            return date(year, 2, 29)

        candidate = date(now.year, event_date.month, event_date.day)
        if candidate < now:
            candidate = candidate.replace(year=candidate.year + 1)
        return candidate

    def next_occurrence(self, now: Any, event_date: Any) -> NextOccurrence:
        """
        Calculate months and days until the next anniversary.

        A years component only appears for Feb 29 anchors waiting on a leap
        year; it is folded into months.

        Args:
            now: Reference date
            event_date: Event anchor date

        Returns:
            NextOccurrence; ``is_today`` when the anniversary is today
        """
        target = self.next_occurrence_date(now, event_date)
        breakdown = self.compute_breakdown(now, target)
        return NextOccurrence(
            months=breakdown.years * 12 + breakdown.months,
            days=breakdown.days,
        )

    def format_difference(
        self,
        now: Any,
        event_date: Any,
        direction: Optional[EventDirection] = None
    ) -> str:
        """
        Format the difference between now and an event date.

        Args:
            now: Current date or datetime
            event_date: Event anchor date
            direction: Counting direction; inferred from the dates when None

        Returns:
            Text such as "1 year 1 month 24 days ago | next: 10 months 5 days",
            "1 day left", or TODAY_TEXT

        Raises:
            InvalidDateInput: If either date cannot be resolved
        """
        now = to_calendar_date(now)
        event_date = to_calendar_date(event_date)
        if direction is None:
            direction = self.determine_direction(now, event_date)
        direction = EventDirection(direction)

        # Nothing has elapsed yet for a count-up event dated in the future
        if direction == EventDirection.UP and event_date > now:
            direction = EventDirection.DOWN

        if direction == EventDirection.DOWN:
            # A passed countdown counts down to its next recurrence
            target = event_date
            if target < now:
                target = self.next_occurrence_date(now, event_date)
            breakdown = self.compute_breakdown(now, target)
        else:
            breakdown = self.compute_breakdown(event_date, now)

        if breakdown.is_zero:
            return self.TODAY_TEXT

        result = self.format_breakdown(breakdown, self.SUFFIXES[direction])
        if direction == EventDirection.UP:
            result += self.format_next_occurrence(now, event_date)
        return result

    def format_breakdown(self, breakdown: DateDifference, suffix: str) -> str:
        """Join the non-zero components of a breakdown and append the suffix."""
        parts = [
            self._pluralize(breakdown.years, 'year'),
            self._pluralize(breakdown.months, 'month'),
            self._pluralize(breakdown.days, 'day'),
        ]
        return ' '.join([part for part in parts if part] + [suffix])

    def format_next_occurrence(self, now: Any, event_date: Any) -> str:
        """Return the " | next: ..." fragment appended to count-up events."""
        upcoming = self.next_occurrence(now, event_date)
        if upcoming.is_today:
            return f" | next: {self.NEXT_TODAY_TEXT}"

        parts = [
            self._pluralize(upcoming.months, 'month'),
            self._pluralize(upcoming.days, 'day'),
        ]
        return ' | next: ' + ' '.join(part for part in parts if part)

    def format_event_differences(self, now: Any, events: List[Event]) -> Dict[int, str]:
        """
        Format every event against a single reference instant.

        Args:
            now: Current date or datetime, shared by all events
            events: Events in display order

        Returns:
            Dictionary mapping event index to display text. Events whose
            dates cannot be resolved map to INVALID_DATE_TEXT.
        """
        differences = {}

        for index, event in enumerate(events):
            try:
                differences[index] = self.format_difference(
                    now, event.date, event.direction
                )
            except InvalidDateInput as e:
                logger.warning(
                    f"Failed to format difference for event '{event.title}': {e}"
                )
                differences[index] = self.INVALID_DATE_TEXT

        logger.debug(f"Formatted differences for {len(differences)} events")
        return differences

    @staticmethod
    def emphasize_numbers(text: str, tag: str = 'b') -> str:
        """Wrap every run of decimal digits in ``<tag>...</tag>`` markup."""
        return _DIGIT_RUN.sub(rf'<{tag}>\1</{tag}>', text)

    @staticmethod
    def _pluralize(count: int, unit: str) -> str:
        if count <= 0:
            return ''
        return f"{count} {unit}{'' if count == 1 else 's'}"
